"""Header row detection and column mapping by keyword heuristics.

Keyword lists are calibration data: order matters (first hit wins per
field) and matching is a case-folded substring test, so edit with care.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from specrecon.models import ColumnMapping

logger = logging.getLogger(__name__)

INVOICE_COLUMN_KEYWORDS: dict[str, list[str]] = {
    "article": [
        "артикул", "article", "код", "арт.", "арт", "код товара",
        "каталожный номер", "номенклатурный номер",
    ],
    "name": [
        "наименование", "товар", "название", "описание", "номенклатура",
        "товар/услуга", "материал", "продукция", "товары",
    ],
    "quantity": ["количество", "кол-во", "qty", "кол.", "кол"],
    "price": [
        "цена", "price", "цена за ед", "цена с ндс", "цена с учетом ндс",
        "стоимость за ед", "цена за единицу",
    ],
    "amount": [
        "сумма", "total", "стоимость", "итого", "сумма с ндс", "всего с ндс",
        "сумма с учётом ндс",
    ],
    "unit": [
        "ед.", "unit", "ед. изм", "единица", "изм", "ед. измерения",
        "ед.изм.", "ед.изм",
    ],
}

SPECIFICATION_HEADER_KEYWORDS: dict[str, list[str]] = {
    "position_number": ["№", "п/п", "поз", "номер"],
    "name": ["наименование", "название", "товар", "материал"],
    "characteristics": ["характеристик", "описание", "параметр"],
    "equipment_code": ["код", "артикул", "article"],
    "manufacturer": ["производител", "бренд", "марка", "завод"],
    "unit": ["ед", "единиц", "изм"],
    "quantity": ["кол", "количеств", "qty", "объём", "объем"],
}

INVOICE_HEADER_SEARCH_ROWS = 10
SPEC_HEADER_SEARCH_ROWS = 30
MIN_HEADER_MATCHES = 2


def normalize_cell(value: object) -> str:
    """Case-fold and trim a header cell."""
    if value is None:
        return ""
    return str(value).lower().strip()


def _match_row(
    row: Sequence[str], keywords: Mapping[str, Sequence[str]]
) -> tuple[dict[str, int | None], int]:
    columns: dict[str, int | None] = {field_name: None for field_name in keywords}
    match_count = 0

    for col, cell in enumerate(row):
        cell_text = normalize_cell(cell)
        if not cell_text:
            continue

        for field_name, field_keywords in keywords.items():
            if columns[field_name] is not None:
                continue
            for keyword in field_keywords:
                if keyword.lower() in cell_text:
                    columns[field_name] = col
                    match_count += 1
                    break

    return columns, match_count


def detect_columns(
    grid: Sequence[Sequence[str]],
    keywords: Mapping[str, Sequence[str]] = INVOICE_COLUMN_KEYWORDS,
    search_limit: int = INVOICE_HEADER_SEARCH_ROWS,
) -> ColumnMapping | None:
    """Find the header row and map logical fields to column indices.

    Scans at most ``search_limit`` rows. The first row where ``name`` is
    matched together with at least one other field is the header.

    Returns:
        ColumnMapping, or None when no row qualifies (caller falls back to
        manual mapping)
    """
    for row_index, row in enumerate(grid[:search_limit]):
        columns, match_count = _match_row(row, keywords)
        if columns.get("name") is not None and match_count >= MIN_HEADER_MATCHES:
            logger.debug(
                "Header row %d detected with %d matched fields", row_index, match_count
            )
            return ColumnMapping(columns=columns, header_row=row_index)

    return None


def detect_invoice_columns(
    grid: Sequence[Sequence[str]], search_limit: int = INVOICE_HEADER_SEARCH_ROWS
) -> ColumnMapping | None:
    return detect_columns(grid, INVOICE_COLUMN_KEYWORDS, search_limit)


def detect_specification_columns(
    grid: Sequence[Sequence[str]], search_limit: int = SPEC_HEADER_SEARCH_ROWS
) -> ColumnMapping | None:
    return detect_columns(grid, SPECIFICATION_HEADER_KEYWORDS, search_limit)
