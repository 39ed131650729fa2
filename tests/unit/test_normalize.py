"""Unit tests for matching-key normalization."""

from __future__ import annotations

import pytest

from specrecon.canonical.normalize import STOP_WORDS, normalize_for_matching


class TestNormalizeForMatching:
    def test_lowercase_and_punctuation(self):
        assert normalize_for_matching("Кабель ВВГ-П 3х2.5") == "кабель ввг 3х2 5"

    def test_stop_words_removed(self):
        assert normalize_for_matching("  Труба ПП, 20 мм ") == "труба пп 20"

    def test_underscore_is_separator(self):
        assert normalize_for_matching("Кран_шаровый") == "кран шаровый"

    def test_only_stop_words(self):
        assert normalize_for_matching("для и в с шт") == ""

    @pytest.mark.parametrize("value", [None, "", "   ", "--//--"])
    def test_empty_results(self, value):
        assert normalize_for_matching(value) == ""

    @pytest.mark.parametrize(
        "value",
        [
            "Кабель ВВГнг(А)-LS 3х2,5 мм²",
            "Радиатор стальной 22 тип 500х1000",
            "Светильник LED 36Вт, IP65",
            "Кран шаровый д/у 20 для воды",
        ],
    )
    def test_idempotent(self, value):
        once = normalize_for_matching(value)
        assert normalize_for_matching(once) == once

    def test_stop_words_include_units(self):
        assert {"мм", "шт", "м", "кг"} <= STOP_WORDS
