"""Unit tests for text-quality checks and parse-quality categories."""

from __future__ import annotations

from specrecon.ingestion.quality import classify_parse_quality, garbage_ratio, is_text_reliable
from specrecon.models import ParseQuality


def test_clean_text_has_no_garbage():
    assert garbage_ratio("Счет № 15 от 01.02.2024\nИтого: 100,00") == 0.0


def test_replacement_and_control_characters_count_as_garbage():
    text = "ab�\x01"

    assert garbage_ratio(text) == 0.5
    assert not is_text_reliable(text)


def test_newlines_and_tabs_are_not_garbage():
    assert garbage_ratio("a\tb\nc\r") == 0.0


def test_empty_text_ratio_is_zero():
    assert garbage_ratio("") == 0.0


def test_items_found_is_category_a():
    quality, reason = classify_parse_quality(3, "whatever")

    assert quality == ParseQuality.A
    assert "3" in reason


def test_readable_text_without_items_is_category_b():
    quality, _ = classify_parse_quality(0, "Счет на оплату без таблицы")

    assert quality == ParseQuality.B


def test_garbled_text_is_category_c():
    quality, reason = classify_parse_quality(0, "�" * 8 + "ok")

    assert quality == ParseQuality.C
    assert reason


def test_missing_text_is_category_c():
    assert classify_parse_quality(0, None)[0] == ParseQuality.C
    assert classify_parse_quality(0, "   ")[0] == ParseQuality.C
