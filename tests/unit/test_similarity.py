"""Unit tests for the bigram Dice coefficient."""

from __future__ import annotations

import pytest

from specrecon.matching.similarity import dice_similarity


def test_identical_strings():
    assert dice_similarity("кабель ввг", "кабель ввг") == 1.0


def test_whitespace_ignored():
    assert dice_similarity("к а б", "каб") == 1.0


def test_empty_strings():
    assert dice_similarity("", "") == 0.0
    assert dice_similarity("", "кабель") == 0.0


def test_short_strings():
    assert dice_similarity("a", "ab") == 0.0


def test_known_value():
    # ni ig gh ht vs na ac ch ht: one shared bigram
    assert dice_similarity("night", "nacht") == pytest.approx(0.25)


def test_repeated_bigrams_overlap_as_multiset():
    assert dice_similarity("aaaa", "aa") == pytest.approx(2 * 1 / (4 + 2 - 2))


def test_symmetric():
    first, second = "кабель ввг 3х2 5", "кабель ввг 3х2 5мм"
    assert dice_similarity(first, second) == dice_similarity(second, first)
    assert dice_similarity(first, second) == pytest.approx(24 / 26)
