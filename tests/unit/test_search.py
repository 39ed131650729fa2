"""Unit tests for specification item search."""

from __future__ import annotations

import pytest

from specrecon.matching.search import search_spec_items
from specrecon.models import SpecificationItem


@pytest.fixture
def items() -> list[SpecificationItem]:
    return [
        SpecificationItem(name="Кабель ВВГ 3х2,5", equipment_code="ВВГ-325"),
        SpecificationItem(name="Труба полипропиленовая 20", equipment_code="Т-20"),
        SpecificationItem(name="Светильник LED", characteristics="36 Вт"),
    ]


def test_code_contains_query(items):
    hits = search_spec_items(items, "т-20")

    assert hits[0].item is items[1]
    assert hits[0].score == 100.0


def test_name_query(items):
    hits = search_spec_items(items, "кабель ввг")

    assert hits[0].item is items[0]


def test_word_order_ignored(items):
    hits = search_spec_items(items, "LED светильник")

    assert hits[0].item is items[2]


@pytest.mark.parametrize("query", ["", " ", "к"])
def test_short_query(items, query):
    assert search_spec_items(items, query) == []


def test_unrelated_query(items):
    assert search_spec_items(items, "zzzz") == []


def test_limit(items):
    assert len(search_spec_items(items, "20", limit=1)) == 1
