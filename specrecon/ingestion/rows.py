"""Grid rows below the header -> structured line items."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from specrecon.ingestion.numbers import parse_price
from specrecon.models import ColumnMapping, InvoiceItem, SpecificationItem

SUBTOTAL_PREFIXES = ("итого", "всего")
SUBTOTAL_EXACT = ("total",)


@dataclass
class RowParseOutcome:
    """Items built from a grid plus per-row warnings."""

    items: list = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: int = 0
    non_empty_rows: int = 0


def is_blank_row(row: Sequence[str]) -> bool:
    return not any(cell and str(cell).strip() for cell in row)


def is_subtotal_name(name: str) -> bool:
    """Subtotal / grand-total rows such as ``Итого по разделу``."""
    lowered = name.lower()
    return lowered.startswith(SUBTOTAL_PREFIXES) or lowered in SUBTOTAL_EXACT


def cell_text(row: Sequence[str], index: int | None) -> str | None:
    """Trimmed cell text; None for unmapped columns and blank cells."""
    if index is None or index < 0 or index >= len(row):
        return None
    value = row[index]
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def cell_number(row: Sequence[str], index: int | None) -> float | None:
    if index is None or index < 0 or index >= len(row):
        return None
    return parse_price(row[index])


def missing_name_warning(row_index: int) -> str:
    return f"Строка {row_index + 1}: пропущена — отсутствует наименование"


def parse_invoice_rows(
    grid: Sequence[Sequence[str]], mapping: ColumnMapping, start_row: int
) -> RowParseOutcome:
    """Build invoice items from ``grid[start_row:]``.

    Blank rows are ignored, rows without a name are counted as skipped with
    a warning citing the 1-based row number, subtotal rows are dropped
    silently. Numeric cells that do not parse become None.
    """
    outcome = RowParseOutcome()

    for row_index in range(max(start_row, 0), len(grid)):
        row = grid[row_index]
        if is_blank_row(row):
            continue
        outcome.non_empty_rows += 1

        name = cell_text(row, mapping.get("name"))
        if not name:
            outcome.skipped += 1
            outcome.errors.append(missing_name_warning(row_index))
            continue

        if is_subtotal_name(name):
            continue

        outcome.items.append(
            InvoiceItem(
                article=cell_text(row, mapping.get("article")),
                name=name,
                unit=cell_text(row, mapping.get("unit")),
                quantity=cell_number(row, mapping.get("quantity")),
                price=cell_number(row, mapping.get("price")),
                amount=cell_number(row, mapping.get("amount")),
                row_index=row_index,
            )
        )

    return outcome


def parse_specification_rows(
    grid: Sequence[Sequence[str]], mapping: ColumnMapping, start_row: int
) -> RowParseOutcome:
    """Build specification items from ``grid[start_row:]``.

    Same skipping rules as invoices; ``section`` is left for the caller.
    """
    outcome = RowParseOutcome()

    for row_index in range(max(start_row, 0), len(grid)):
        row = grid[row_index]
        if is_blank_row(row):
            continue
        outcome.non_empty_rows += 1

        name = cell_text(row, mapping.get("name"))
        if not name:
            outcome.skipped += 1
            outcome.errors.append(missing_name_warning(row_index))
            continue

        if is_subtotal_name(name):
            continue

        outcome.items.append(
            SpecificationItem(
                position_number=cell_text(row, mapping.get("position_number")),
                name=name,
                characteristics=cell_text(row, mapping.get("characteristics")),
                equipment_code=cell_text(row, mapping.get("equipment_code")),
                manufacturer=cell_text(row, mapping.get("manufacturer")),
                unit=cell_text(row, mapping.get("unit")),
                quantity=cell_number(row, mapping.get("quantity")),
            )
        )

    return outcome
