"""Unit tests for raw document readers."""

from __future__ import annotations

from pathlib import Path

import pytest

from specrecon.ingestion.sources import (
    PdfExtraction,
    check_file,
    extract_pdf,
    pdf_rows,
    read_rows,
)
from tests.conftest import FakePage

REQUISITES = [
    ["ПАО Сбербанк г. Москва", "БИК", "044525225"],
    ["Банк получателя", "К/с", "30101810400000000225"],
    ["ИНН 7701234567 КПП 770101001", "Р/с", "40702810000000000001"],
]
PRODUCTS = [
    ["Наименование", "Кол-во", "Цена", "Сумма"],
    ["Лампа E27", "10", "120,00", "1 200,00"],
]


class TestPdfRows:
    def test_product_table_wins_over_requisites(self):
        rows = pdf_rows(PdfExtraction(text="Счет № 1", tables=[REQUISITES, PRODUCTS]))

        assert rows == PRODUCTS

    def test_text_split_without_tables(self):
        rows = pdf_rows(PdfExtraction(text="a  b\nc\td\nsingle", tables=[]))

        assert rows == [["a", "b"], ["c", "d"]]

    def test_text_split_when_only_requisites(self):
        rows = pdf_rows(
            PdfExtraction(text="Лампа  10  120\nРозетка  5  80", tables=[REQUISITES])
        )

        assert rows == [["Лампа", "10", "120"], ["Розетка", "5", "80"]]


class TestExtractPdf:
    def test_collects_text_and_tables_in_page_order(self, fake_pdf):
        path = fake_pdf(
            FakePage("Счет № 55", [REQUISITES]),
            FakePage(None, [[["Лампа", None], ["Розетка", 5]]]),
        )

        extraction = extract_pdf(path)

        assert extraction.text == "Счет № 55\n"
        assert extraction.tables == [REQUISITES, [["Лампа", ""], ["Розетка", "5"]]]

    def test_read_rows_returns_grid_and_text(self, fake_pdf):
        path = fake_pdf(FakePage("Счет № 55", [REQUISITES, PRODUCTS]))

        rows, text = read_rows(path)

        assert rows == PRODUCTS
        assert text == "Счет № 55"


class TestCheckFile:
    def test_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            check_file(tmp_path / "absent.pdf")

    def test_too_large(self, tmp_path: Path):
        path = tmp_path / "big.csv"
        path.write_bytes(b"x" * (1024 * 1024 + 1))

        with pytest.raises(ValueError, match="File too large"):
            check_file(path, max_size_mb=1)

    def test_unsupported(self, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        with pytest.raises(ValueError, match="Unsupported file format"):
            check_file(path)
