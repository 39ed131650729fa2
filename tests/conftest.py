"""Pytest configuration and fixtures for specrecon tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from specrecon.config import reset_config
from specrecon.ingestion import sources
from specrecon.models import InvoiceItem, SpecificationItem

INVOICE_HEADER = ["Арт.", "Наименование", "Ед.", "Кол-во", "Цена", "Сумма"]
SPEC_HEADER = ["№", "Наименование", "Характеристики", "Код", "Ед. изм.", "Кол-во"]


def write_xlsx(path: Path, rows: list[list[object]]) -> Path:
    """Write rows to the first sheet of a new workbook."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


@pytest.fixture
def invoice_grid() -> list[list[str]]:
    """Minimal invoice grid: header, one item, one subtotal row."""
    return [
        list(INVOICE_HEADER),
        ["А-100", "Кабель ВВГ 3х2.5", "м", "100", "50,00", "5 000,00"],
        ["", "Итого:", "", "", "", "5000"],
    ]


@pytest.fixture
def cable_spec_item() -> SpecificationItem:
    return SpecificationItem(name="Кабель ВВГ 3х2,5", unit="м", quantity=120)


@pytest.fixture
def cable_invoice_item() -> InvoiceItem:
    return InvoiceItem(name="Кабель ВВГ-П 3х2.5мм", quantity=100, price=50.0)


@pytest.fixture
def invoice_xlsx(tmp_path: Path) -> Path:
    """Invoice workbook with header metadata above the product table."""
    return write_xlsx(
        tmp_path / "invoice.xlsx",
        [
            ["Счет № 123 от 15.01.2024"],
            ["Поставщик: ООО Электросила"],
            INVOICE_HEADER,
            ["А-100", "Кабель ВВГ 3х2.5", "м", 100, 50, 5000],
            ["Т-20", "Труба ПП 20", "м", 10, 30.5, 305],
            [None, "Итого:", None, None, None, 5305],
        ],
    )


@pytest.fixture
def spec_xlsx(tmp_path: Path) -> Path:
    """Specification workbook with a title row above the table."""
    return write_xlsx(
        tmp_path / "spec.xlsx",
        [
            ["Спецификация оборудования"],
            SPEC_HEADER,
            [1, "Кабель ВВГ 3х2,5", None, None, "м", 120],
            [2, "Труба полипропиленовая 20", "PN20", "Т-20", "м", 15],
            [3, "Светильник LED", None, None, "шт", 4],
        ],
    )


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    reset_config()
    yield
    reset_config()


class FakePage:
    """Stand-in for a pdfplumber page."""

    def __init__(self, text: str | None, tables: list[list[list[object]]] | None = None):
        self._text = text
        self._tables = tables or []

    def extract_text(self) -> str | None:
        return self._text

    def extract_tables(self) -> list[list[list[object]]]:
        return self._tables


class FakePdf:
    def __init__(self, pages: list[FakePage]):
        self.pages = pages

    def __enter__(self) -> FakePdf:
        return self

    def __exit__(self, *exc_info) -> None:
        return None


@pytest.fixture
def fake_pdf(monkeypatch, tmp_path: Path):
    """Write a placeholder .pdf and make pdfplumber return the given pages."""

    def install(*pages: FakePage) -> Path:
        path = tmp_path / "invoice.pdf"
        path.write_bytes(b"%PDF-1.4 placeholder")
        monkeypatch.setattr(sources.pdfplumber, "open", lambda _path: FakePdf(list(pages)))
        return path

    return install
