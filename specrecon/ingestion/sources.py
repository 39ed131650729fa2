"""Raw readers for uploaded documents.

Spreadsheets yield the raw cell rows of their first sheet; PDFs yield the
flattened text plus every table pdfplumber finds. Everything downstream
works on the normalized grid.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd
import pdfplumber

from specrecon.ingestion.grid import Grid, normalize_grid, text_to_rows
from specrecon.ingestion.tables import Table, select_product_table

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls", ".xlsm")
CSV_SUFFIXES = (".csv",)
PDF_SUFFIXES = (".pdf",)
SUPPORTED_SUFFIXES = SPREADSHEET_SUFFIXES + CSV_SUFFIXES + PDF_SUFFIXES

MAX_FILE_SIZE_MB = 50


class EmptyWorkbookError(ValueError):
    """Spreadsheet without any sheet."""


@dataclass
class PdfExtraction:
    """Flattened text and candidate tables of a PDF."""

    text: str
    tables: list[Table] = field(default_factory=list)


def check_file(file_path: Path, max_size_mb: int = MAX_FILE_SIZE_MB) -> None:
    """Validate existence, size and extension of an uploaded file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is too large or of an unsupported type
    """
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")

    file_size_mb = file_path.stat().st_size / (1024 * 1024)
    if file_size_mb > max_size_mb:
        raise ValueError(
            f"File too large ({file_size_mb:.1f}MB). Maximum allowed: {max_size_mb}MB"
        )

    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported file format: {file_path.suffix}. Use PDF, XLSX, XLS or CSV."
        )


def read_spreadsheet_rows(file_path: Path) -> Grid:
    """Raw rows of the first sheet, every cell rendered as text.

    Raises:
        EmptyWorkbookError: If the workbook has no sheets
    """
    with pd.ExcelFile(file_path) as workbook:
        if not workbook.sheet_names:
            raise EmptyWorkbookError(f"Workbook has no sheets: {file_path}")
        df = workbook.parse(workbook.sheet_names[0], header=None, dtype=object)

    df = df.astype(object).where(pd.notna(df), None)
    return normalize_grid(df.values.tolist())


def read_csv_rows(file_path: Path) -> Grid:
    """Raw rows of a delimited text file (delimiter sniffed)."""
    try:
        content = file_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError:
        content = file_path.read_text(encoding="cp1251")

    try:
        dialect = csv.Sniffer().sniff(content[:4096], delimiters=";,\t")
    except csv.Error:
        dialect = csv.excel
    return normalize_grid(csv.reader(content.splitlines(), dialect))


def extract_pdf(file_path: Path) -> PdfExtraction:
    """Text of all pages plus all tables, in page order."""
    text_parts: list[str] = []
    tables: list[Table] = []

    with pdfplumber.open(file_path) as pdf:
        for page in pdf.pages:
            text_parts.append(page.extract_text() or "")
            for table in page.extract_tables() or []:
                tables.append(
                    [["" if cell is None else str(cell) for cell in row] for row in table]
                )

    return PdfExtraction(text="\n".join(text_parts), tables=tables)


def pdf_rows(extraction: PdfExtraction) -> Grid:
    """Best product table of a PDF, or rows split out of its text."""
    table = select_product_table(extraction.tables)
    if table is not None:
        return normalize_grid(table)

    logger.debug("No usable PDF table, splitting text into rows")
    return normalize_grid(text_to_rows(extraction.text))


def read_rows(file_path: Path) -> tuple[Grid, str | None]:
    """Grid and (for PDFs) full text of any supported document."""
    suffix = file_path.suffix.lower()
    if suffix in PDF_SUFFIXES:
        extraction = extract_pdf(file_path)
        return pdf_rows(extraction), extraction.text
    if suffix in CSV_SUFFIXES:
        return read_csv_rows(file_path), None
    return read_spreadsheet_rows(file_path), None
