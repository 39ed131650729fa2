"""Unit tests for section inference."""

from __future__ import annotations

import pytest

from specrecon.canonical.sections import NO_SECTION, SECTIONS, detect_section


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Кабель ВВГ 3х2,5", "Электрика"),
        ("Светильник LED", "Электрика"),
        ("Труба полипропиленовая", "ВК"),
        ("Задвижка чугунная", "ВК"),
        ("Вентилятор канальный", "Вентиляция"),
        ("Радиатор стальной", "Отопление"),
        ("Котёл газовый", "Отопление"),
    ],
)
def test_detect_from_name(name, expected):
    assert detect_section(name) == expected


def test_detect_from_characteristics():
    assert detect_section("Изделие", "кабель медный") == "Электрика"


def test_unknown_item():
    assert detect_section("Стол офисный") is None


def test_inferred_sections_are_known():
    assert detect_section("Воздуховод") in SECTIONS
    assert NO_SECTION not in SECTIONS
