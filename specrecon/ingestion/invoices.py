"""Supplier invoice parsing (PDF / XLSX / CSV).

Pipeline: raw document -> grid -> column mapping (saved or detected) ->
row parser, with header metadata extracted from the same document.
Parsing never raises for document problems; issues end up in
``InvoiceParseResult.errors`` and the parse-quality category.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from specrecon.config import ParsingConfig
from specrecon.ingestion.columns import detect_invoice_columns
from specrecon.ingestion.metadata import extract_metadata
from specrecon.ingestion.quality import classify_parse_quality
from specrecon.ingestion.rows import parse_invoice_rows
from specrecon.ingestion.sources import (
    PDF_SUFFIXES,
    EmptyWorkbookError,
    check_file,
    read_rows,
)
from specrecon.models import ColumnMapping, InvoiceParseResult

logger = logging.getLogger(__name__)

NO_SHEETS_ERROR = "Файл не содержит листов"
TOO_FEW_ROWS_ERROR = "Файл содержит менее 2 строк"
NO_PDF_TABLE_ERROR = "Не удалось найти таблицу в PDF"
NO_COLUMNS_ERROR = "Не удалось определить колонки таблицы в {source}"


def _grid_text(rows: Sequence[Sequence[str]]) -> str:
    return "\n".join("\t".join(cell for cell in row if cell) for row in rows)


def _finish(
    result: InvoiceParseResult, quality_text: str | None, config: ParsingConfig
) -> InvoiceParseResult:
    result.quality, result.quality_reason = classify_parse_quality(
        len(result.items), quality_text, config.garbage_ratio_threshold
    )
    return result


def parse_invoice_grid(
    rows: Sequence[Sequence[str]],
    text: str | None = None,
    saved_mapping: ColumnMapping | None = None,
    *,
    is_pdf: bool = False,
    config: ParsingConfig | None = None,
) -> InvoiceParseResult:
    """Parse an invoice from its normalized grid and optional full text.

    A valid ``saved_mapping`` takes precedence over header detection.
    When no total is declared in the header, the sum of item amounts is used
    if it is positive.
    """
    config = config or ParsingConfig()
    metadata = extract_metadata(
        text,
        rows,
        threshold=config.garbage_ratio_threshold,
        snippet_length=config.metadata_text_snippet,
        search_rows=config.metadata_search_rows,
    )
    result = InvoiceParseResult()
    result.apply_metadata(metadata)
    quality_text = text if text is not None else _grid_text(rows)

    if len(rows) < 2:
        result.errors.append(NO_PDF_TABLE_ERROR if is_pdf else TOO_FEW_ROWS_ERROR)
        return _finish(result, quality_text, config)

    if saved_mapping is not None and saved_mapping.is_valid:
        mapping = saved_mapping
    else:
        mapping = detect_invoice_columns(rows, config.invoice_header_search_rows)

    if mapping is None:
        source = "PDF" if is_pdf else "Excel-файле"
        result.errors.append(NO_COLUMNS_ERROR.format(source=source))
        result.total_rows = len(rows)
        logger.info("Invoice columns not detected in %d rows", len(rows))
        return _finish(result, quality_text, config)

    outcome = parse_invoice_rows(rows, mapping, mapping.header_row + 1)
    result.mapping = mapping
    result.items = outcome.items
    result.errors.extend(outcome.errors)
    result.skipped_rows = outcome.skipped
    result.total_rows = max(len(rows) - mapping.header_row - 1, 0)

    if not result.total_amount and result.items:
        items_sum = sum(item.amount or 0.0 for item in result.items)
        if items_sum > 0:
            result.total_amount = items_sum

    logger.info(
        "Invoice parsed: header_row=%d items=%d skipped=%d",
        mapping.header_row,
        len(result.items),
        result.skipped_rows,
    )
    return _finish(result, quality_text, config)


def parse_invoice_file(
    file_path: Path,
    saved_mapping: ColumnMapping | None = None,
    config: ParsingConfig | None = None,
) -> InvoiceParseResult:
    """Read and parse an invoice file; unreadable files give an error result."""
    config = config or ParsingConfig()
    is_pdf = file_path.suffix.lower() in PDF_SUFFIXES
    try:
        check_file(file_path, config.max_file_size_mb)
        rows, text = read_rows(file_path)
    except EmptyWorkbookError:
        result = InvoiceParseResult(errors=[NO_SHEETS_ERROR])
        return _finish(result, None, config)
    except Exception as e:
        logger.warning("Failed to read invoice %s: %s", file_path, e)
        result = InvoiceParseResult(errors=[f"Не удалось прочитать файл: {e}"])
        return _finish(result, None, config)

    return parse_invoice_grid(rows, text, saved_mapping, is_pdf=is_pdf, config=config)
