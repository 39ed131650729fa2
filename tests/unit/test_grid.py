"""Unit tests for grid normalization and the text -> rows splitter."""

from __future__ import annotations

import math

from specrecon.ingestion.grid import cell_to_str, normalize_grid, text_to_rows


class TestNormalizeGrid:
    def test_pads_short_rows_to_widest(self):
        grid = normalize_grid([["a"], ["b", "c", "d"], []])

        assert grid == [["a", "", ""], ["b", "c", "d"], ["", "", ""]]

    def test_converts_cells_to_strings(self):
        grid = normalize_grid([[None, 100.0, 2.5, 7, math.nan]])

        assert grid == [["", "100", "2.5", "7", ""]]

    def test_none_row_becomes_blank_row(self):
        assert normalize_grid([["x", "y"], None]) == [["x", "y"], ["", ""]]

    def test_empty_input(self):
        assert normalize_grid([]) == []


def test_cell_to_str_keeps_text():
    assert cell_to_str("Кабель ВВГ") == "Кабель ВВГ"


class TestTextToRows:
    def test_splits_on_tabs(self):
        assert text_to_rows("Кабель\tм\t100") == [["Кабель", "м", "100"]]

    def test_splits_on_runs_of_spaces(self):
        rows = text_to_rows("Кабель ВВГ 3х2.5   м   100")

        assert rows == [["Кабель ВВГ 3х2.5", "м", "100"]]

    def test_drops_single_cell_and_blank_lines(self):
        text = "Счет на оплату\n\n   \nТруба  10\n"

        assert text_to_rows(text) == [["Труба", "10"]]
