"""Unit tests for header row detection and column mapping."""

from __future__ import annotations

import pytest

from specrecon.ingestion.columns import (
    detect_columns,
    detect_invoice_columns,
    detect_specification_columns,
)


class TestInvoiceColumns:
    def test_maps_standard_header(self, invoice_grid):
        mapping = detect_invoice_columns(invoice_grid)

        assert mapping is not None
        assert mapping.header_row == 0
        assert mapping.columns == {
            "article": 0,
            "name": 1,
            "quantity": 3,
            "price": 4,
            "amount": 5,
            "unit": 2,
        }

    def test_finds_header_below_title_rows(self):
        grid = [
            ["Счет на оплату № 15", "", ""],
            ["", "", ""],
            ["Товар", "Количество", "Цена"],
            ["Кабель", "1", "10"],
        ]

        mapping = detect_invoice_columns(grid)

        assert mapping is not None
        assert mapping.header_row == 2
        assert mapping.get("name") == 0
        assert mapping.get("quantity") == 1
        assert mapping.get("article") is None

    def test_name_alone_is_not_a_header(self):
        grid = [["Наименование", "Примечание"], ["Кабель", ""]]

        assert detect_invoice_columns(grid) is None

    def test_header_without_name_is_rejected(self):
        grid = [["Кол-во", "Цена", "Сумма"], ["1", "2", "2"]]

        assert detect_invoice_columns(grid) is None

    def test_header_outside_search_window_is_ignored(self):
        grid = [[""]] * 10 + [["Наименование", "Цена"]]

        assert detect_invoice_columns(grid) is None
        assert detect_invoice_columns(grid, search_limit=11) is not None

    def test_first_qualifying_row_wins(self):
        grid = [
            ["Наименование", "Цена"],
            ["Наименование", "Кол-во", "Цена", "Сумма"],
        ]

        mapping = detect_invoice_columns(grid)

        assert mapping.header_row == 0

    def test_first_column_per_field_wins(self):
        grid = [["Наименование", "Цена", "Цена с НДС"]]

        mapping = detect_invoice_columns(grid)

        assert mapping.get("price") == 1

    def test_matching_is_case_insensitive(self):
        mapping = detect_invoice_columns([["  НАИМЕНОВАНИЕ ТОВАРА ", "КОЛ-ВО"]])

        assert mapping is not None
        assert mapping.get("name") == 0


class TestSpecificationColumns:
    def test_maps_specification_header(self):
        grid = [
            ["Спецификация"],
            ["№ п/п", "Наименование", "Характеристики", "Код", "Производитель", "Ед. изм.", "Кол-во"],
        ]

        mapping = detect_specification_columns(grid)

        assert mapping is not None
        assert mapping.header_row == 1
        assert mapping.get("position_number") == 0
        assert mapping.get("name") == 1
        assert mapping.get("characteristics") == 2
        assert mapping.get("equipment_code") == 3
        assert mapping.get("manufacturer") == 4
        assert mapping.get("unit") == 5
        assert mapping.get("quantity") == 6

    def test_searches_deeper_than_invoices(self):
        grid = [[""]] * 25 + [["Наименование", "Кол-во"]]

        assert detect_specification_columns(grid) is not None
        assert detect_invoice_columns(grid) is None


@pytest.mark.parametrize(
    "grid",
    [
        [],
        [[""]],
        [["Цена", "Сумма"]],
        [["Наименование", "Кол-во"], ["a", "1"]],
        [["x", "y"], ["Товар", "Ед."]],
    ],
)
def test_result_is_none_or_has_name(grid):
    mapping = detect_columns(grid)

    assert mapping is None or mapping.get("name") is not None
