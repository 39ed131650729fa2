"""Tolerant numeric parsing for prices and quantities."""

from __future__ import annotations

import math
import re

_WHITESPACE = re.compile(r"\s")
_RUB = re.compile(r"руб\.?", re.IGNORECASE)
_TRAILING_R = re.compile(r"р\.?$", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_price(value: object) -> float | None:
    """Parse a price/quantity cell such as ``"1 234,56 руб."``.

    Strips whitespace (including space-grouped thousands and NBSP), the
    currency markers ``руб``, ``₽`` and a trailing ``р.``, converts the
    first comma to a dot and reads the leading number. Returns None instead
    of raising when nothing numeric is found.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number

    text = str(value)
    if not text:
        return None

    cleaned = _WHITESPACE.sub("", text)
    cleaned = _RUB.sub("", cleaned)
    cleaned = cleaned.replace("₽", "")
    cleaned = _TRAILING_R.sub("", cleaned)
    cleaned = cleaned.replace(",", ".", 1).strip()
    if not cleaned:
        return None

    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    number = float(match.group(0))
    return None if math.isnan(number) or math.isinf(number) else number
