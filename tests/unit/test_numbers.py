"""Unit tests for tolerant price/quantity parsing."""

from __future__ import annotations

import math

import pytest

from specrecon.ingestion.numbers import parse_price


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1 234,56 руб.", 1234.56),
        ("1 234,56", 1234.56),
        ("50,00", 50.0),
        ("5 000,00", 5000.0),
        ("100", 100.0),
        ("99.9₽", 99.9),
        ("120 р.", 120.0),
        ("15,5 руб", 15.5),
        ("-3,5", -3.5),
        ("12 шт", 12.0),
    ],
)
def test_parses_formatted_numbers(raw, expected):
    assert parse_price(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", ["abc", "", "   ", "руб.", None, True])
def test_unparsable_values_give_none(raw):
    assert parse_price(raw) is None


def test_numeric_values_pass_through():
    assert parse_price(42) == 42.0
    assert parse_price(3.25) == 3.25


def test_nan_gives_none():
    assert parse_price(math.nan) is None
