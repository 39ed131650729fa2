"""Free-text search over specification items for manual matching.

Ranks items by RapidFuzz token_sort_ratio on normalized text, so word
order and punctuation differences between documents do not matter.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from rapidfuzz import fuzz

from specrecon.canonical.normalize import normalize_for_matching
from specrecon.models import SpecificationItem

MIN_QUERY_LENGTH = 2
DEFAULT_LIMIT = 20
DEFAULT_MIN_SCORE = 50


class SearchHit(NamedTuple):
    item: SpecificationItem
    score: float  # 0-100


def _item_text(item: SpecificationItem) -> str:
    parts = [item.name]
    if item.characteristics:
        parts.append(item.characteristics)
    if item.equipment_code:
        parts.append(item.equipment_code)
    return normalize_for_matching(" ".join(parts))


def search_spec_items(
    items: Sequence[SpecificationItem],
    query: str,
    limit: int = DEFAULT_LIMIT,
    min_score: float = DEFAULT_MIN_SCORE,
) -> list[SearchHit]:
    """Rank specification items against a query.

    Queries shorter than two characters return nothing. Items whose code
    contains the query verbatim always score 100.

    Returns:
        Hits sorted by descending score, at most ``limit``
    """
    stripped = query.strip()
    if len(stripped) < MIN_QUERY_LENGTH:
        return []

    normalized_query = normalize_for_matching(stripped)
    lowered_query = stripped.lower()
    hits: list[SearchHit] = []

    for item in items:
        if item.equipment_code and lowered_query in item.equipment_code.lower():
            hits.append(SearchHit(item, 100.0))
            continue

        text = _item_text(item)
        score = max(
            fuzz.token_sort_ratio(normalized_query, text),
            fuzz.partial_ratio(normalized_query, text) if normalized_query else 0.0,
        )
        if score >= min_score:
            hits.append(SearchHit(item, float(score)))

    hits.sort(key=lambda hit: hit.score, reverse=True)
    return hits[:limit]
