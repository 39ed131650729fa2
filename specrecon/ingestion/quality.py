"""Extracted-text quality checks and parse-quality categorisation."""

from __future__ import annotations

import unicodedata

from specrecon.models import ParseQuality

GARBAGE_RATIO_THRESHOLD = 0.3

_ALLOWED_CONTROLS = {"\n", "\r", "\t"}


def _is_garbage(char: str) -> bool:
    if char == "\ufffd":
        return True
    category = unicodedata.category(char)
    if category == "Cc":
        return char not in _ALLOWED_CONTROLS
    # Co: private use area, Cs: unpaired surrogate halves
    return category in ("Co", "Cs")


def garbage_ratio(text: str) -> float:
    """Share of characters that indicate a broken text layer."""
    if not text:
        return 0.0
    garbage = sum(1 for char in text if _is_garbage(char))
    return garbage / len(text)


def is_text_reliable(text: str, threshold: float = GARBAGE_RATIO_THRESHOLD) -> bool:
    """True unless the garbage ratio exceeds ``threshold``."""
    return garbage_ratio(text) <= threshold


def classify_parse_quality(
    item_count: int,
    text: str | None,
    threshold: float = GARBAGE_RATIO_THRESHOLD,
) -> tuple[ParseQuality, str]:
    """Classify a parse outcome as A, B or C with a human-readable reason.

    A: items were produced from a structured table.
    B: readable text but no recognised column structure.
    C: no text or a garbled text layer.
    """
    if item_count > 0:
        return ParseQuality.A, f"Таблица распознана, найдено позиций: {item_count}"

    if not text or not text.strip():
        return ParseQuality.C, "Не удалось извлечь текст из документа"

    ratio = garbage_ratio(text)
    if ratio > threshold:
        return (
            ParseQuality.C,
            f"Текст документа повреждён ({ratio:.0%} нечитаемых символов), "
            "нужен исходный файл лучшего качества",
        )

    return (
        ParseQuality.B,
        "Текст извлечён, но структура колонок не распознана; "
        "укажите колонки вручную или выберите другой разделитель",
    )
