"""Dice coefficient over character bigrams."""

from __future__ import annotations

from collections import Counter


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def dice_similarity(first: str, second: str) -> float:
    """Bigram Dice coefficient in [0, 1], whitespace ignored.

    Identical strings score 1.0; strings shorter than two characters that
    differ score 0.0.
    """
    a = "".join(first.split())
    b = "".join(second.split())

    if a == b:
        return 1.0 if a else 0.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    first_bigrams = _bigrams(a)
    second_bigrams = _bigrams(b)
    overlap = sum((first_bigrams & second_bigrams).values())

    return (2.0 * overlap) / (len(a) + len(b) - 2)
