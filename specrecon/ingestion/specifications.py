"""Customer specification parsing.

Specifications carry title blocks above the table, so the header search
goes deeper than for invoices. Items receive the section they were uploaded
under, or one inferred from their text.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from specrecon.canonical.sections import detect_section
from specrecon.config import ParsingConfig
from specrecon.ingestion.columns import detect_specification_columns
from specrecon.ingestion.rows import parse_specification_rows
from specrecon.ingestion.sources import EmptyWorkbookError, check_file, read_rows
from specrecon.models import ColumnMapping, ParseResult

logger = logging.getLogger(__name__)

NO_SHEETS_ERROR = "Файл не содержит листов"
TOO_FEW_ROWS_ERROR = "Файл содержит менее 2 строк"
NO_HEADER_ERROR = (
    "Не удалось определить строку заголовков. Убедитесь, что в таблице есть "
    "заголовки: наименование, количество и т.д."
)


def parse_specification_grid(
    rows: Sequence[Sequence[str]],
    section: str | None = None,
    saved_mapping: ColumnMapping | None = None,
    config: ParsingConfig | None = None,
) -> ParseResult:
    """Parse specification items from a normalized grid.

    ``total_rows`` counts the non-blank rows below the header.
    """
    config = config or ParsingConfig()
    if len(rows) < 2:
        return ParseResult(errors=[TOO_FEW_ROWS_ERROR])

    if saved_mapping is not None and saved_mapping.is_valid:
        mapping = saved_mapping
    else:
        mapping = detect_specification_columns(rows, config.spec_header_search_rows)

    if mapping is None:
        logger.info(
            "Specification header not found in first %d rows", config.spec_header_search_rows
        )
        return ParseResult(errors=[NO_HEADER_ERROR])

    outcome = parse_specification_rows(rows, mapping, mapping.header_row + 1)
    for item in outcome.items:
        item.section = section or detect_section(item.name, item.characteristics)

    return ParseResult(
        items=outcome.items,
        errors=outcome.errors,
        total_rows=outcome.non_empty_rows,
        skipped_rows=outcome.skipped,
    )


def parse_specification_file(
    file_path: Path,
    section: str | None = None,
    saved_mapping: ColumnMapping | None = None,
    config: ParsingConfig | None = None,
) -> ParseResult:
    """Read and parse a specification file; never raises for bad input."""
    config = config or ParsingConfig()
    try:
        check_file(file_path, config.max_file_size_mb)
        rows, _ = read_rows(file_path)
    except EmptyWorkbookError:
        return ParseResult(errors=[NO_SHEETS_ERROR])
    except Exception as e:
        logger.warning("Failed to read specification %s: %s", file_path, e)
        return ParseResult(errors=[f"Не удалось прочитать файл: {e}"])

    return parse_specification_grid(rows, section, saved_mapping, config)
