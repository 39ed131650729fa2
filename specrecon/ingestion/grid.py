"""Raw tabular data -> rectangular grid of strings."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

Grid = list[list[str]]

_MULTI_SPACE = re.compile(r"\s{2,}")


def cell_to_str(value: Any) -> str:
    """Render a raw cell value as text; missing values become ''."""
    if value is None:
        return ""
    if isinstance(value, float):
        if value != value:  # NaN from spreadsheet readers
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def normalize_grid(rows: Iterable[Sequence[Any] | None]) -> Grid:
    """Pad rows to the widest row, converting every cell to a string.

    Row and column order are preserved. An empty input gives an empty grid.
    """
    grid = [[cell_to_str(cell) for cell in (row or [])] for row in rows]
    if not grid:
        return []

    width = max(len(row) for row in grid)
    for row in grid:
        if len(row) < width:
            row.extend([""] * (width - len(row)))
    return grid


def text_to_rows(text: str) -> Grid:
    """Split extracted text into rows of cells.

    Each non-empty line is split on tabs, or on runs of two or more spaces
    when there are no tabs. Lines yielding fewer than two cells are dropped.
    """
    rows: Grid = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        cells = [cell.strip() for cell in stripped.split("\t")]
        if len(cells) < 2:
            cells = [cell.strip() for cell in _MULTI_SPACE.split(stripped)]
        if len(cells) >= 2:
            rows.append(cells)
    return rows
