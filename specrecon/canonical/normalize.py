"""Text normalization used as the comparison and rule-storage key."""

from __future__ import annotations

import re

# Measurement units and short function words of the documents' language
STOP_WORDS: frozenset[str] = frozenset(
    {
        "мм", "см", "м", "шт", "кг", "г", "л", "мл", "компл", "комплект",
        "набор", "ед", "пог", "кв", "куб", "п", "к", "и", "в", "с", "на",
        "для", "из", "по", "от", "до",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_for_matching(text: str | None) -> str:
    """Canonical form of an item name.

    Lowercase and trim, replace everything but letters, digits and
    whitespace with a space, collapse whitespace, drop stop words.
    Idempotent.
    """
    if not text:
        return ""

    s = text.lower().strip()
    # \w also matches "_", which is not a letter or digit
    s = _NON_WORD.sub(" ", s).replace("_", " ")
    s = _WHITESPACE.sub(" ", s).strip()
    words = [word for word in s.split(" ") if word and word not in STOP_WORDS]
    return " ".join(words)
