"""Choosing the product table among tables extracted from a PDF.

Invoices usually carry several tables: the bank requisites block, the seller
and buyer block, the product table (possibly split across pages) and the
signature block. Tables are merged by dominant column count, requisites are
excluded by keyword density, and the remaining candidates are ranked by
product-table keywords in their header area.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from specrecon.ingestion.columns import INVOICE_COLUMN_KEYWORDS

logger = logging.getLogger(__name__)

Table = list[list[str]]

REQUISITES_KEYWORDS: tuple[str, ...] = (
    "бик",
    "банк",
    "р/с",
    "к/с",
    "инн",
    "кпп",
    "корр",
    "расчетный счет",
    "расчётный счет",
    "получатель",
    "огрн",
)
REQUISITES_MIN_HITS = 3

PRODUCT_KEYWORDS: tuple[str, ...] = tuple(
    dict.fromkeys(
        keyword
        for field_name in ("name", "quantity", "price", "amount", "unit")
        for keyword in INVOICE_COLUMN_KEYWORDS[field_name]
    )
)
PRODUCT_HEADER_ROWS = 10
MIN_TABLE_ROWS = 2


def _clean_table(table: Sequence[Sequence[object]]) -> Table:
    return [
        ["" if cell is None else str(cell) for cell in row]
        for row in table
        if row is not None
    ]


def dominant_width(table: Sequence[Sequence[str]]) -> int:
    """Most common row length of a table (0 for an empty table)."""
    widths = Counter(len(row) for row in table if row)
    if not widths:
        return 0
    return widths.most_common(1)[0][0]


def merge_tables(tables: Sequence[Sequence[Sequence[object]]]) -> list[Table]:
    """Concatenate consecutive tables sharing a dominant column count.

    A product table split over pages comes back as several tables of equal
    width; gluing them restores the full table.
    """
    merged: list[Table] = []
    last_width: int | None = None

    for raw in tables:
        table = _clean_table(raw)
        if not table:
            continue
        width = dominant_width(table)
        if merged and width == last_width:
            merged[-1].extend(table)
        else:
            merged.append(table)
            last_width = width

    return merged


def _table_text(table: Sequence[Sequence[str]], limit: int | None = None) -> str:
    rows = table[:limit] if limit is not None else table
    return " ".join(cell for row in rows for cell in row if cell).lower()


def keyword_hits(text: str, keywords: Sequence[str]) -> int:
    """Number of distinct keywords present in ``text``."""
    return sum(1 for keyword in keywords if keyword in text)


def is_requisites_table(table: Sequence[Sequence[str]]) -> bool:
    return keyword_hits(_table_text(table), REQUISITES_KEYWORDS) >= REQUISITES_MIN_HITS


def product_score(table: Sequence[Sequence[str]]) -> int:
    return keyword_hits(_table_text(table, PRODUCT_HEADER_ROWS), PRODUCT_KEYWORDS)


def select_product_table(
    tables: Sequence[Sequence[Sequence[object]]],
) -> Table | None:
    """Pick the best product table, or None when no usable table exists.

    Highest product score wins; equal scores go to the table with more rows.
    """
    best: Table | None = None
    best_key: tuple[int, int] | None = None

    for table in merge_tables(tables):
        if len(table) < MIN_TABLE_ROWS:
            continue
        if is_requisites_table(table):
            logger.debug("Skipping requisites table with %d rows", len(table))
            continue

        key = (product_score(table), len(table))
        if best_key is None or key > best_key:
            best, best_key = table, key

    if best_key is not None:
        logger.debug("Selected table: score=%d rows=%d", *best_key)
    return best
