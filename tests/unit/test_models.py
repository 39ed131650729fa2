"""Unit tests for Pydantic models."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from specrecon.models import (
    ColumnMapping,
    InvoiceItem,
    InvoiceParseResult,
    InvoiceStatus,
    MatchCandidate,
    MatchType,
    SpecificationItem,
)


class TestColumnMapping:
    def test_from_saved(self):
        mapping = ColumnMapping.from_saved({"name": 1, "price": 3, "headerRow": 2})

        assert mapping.header_row == 2
        assert mapping.get("name") == 1
        assert mapping.get("price") == 3
        assert mapping.get("article") is None
        assert mapping.is_valid

    def test_saved_shape_round_trip(self):
        mapping = ColumnMapping.from_saved({"name": 0, "amount": 4, "headerRow": 0})

        assert ColumnMapping.from_saved(mapping.to_saved()) == mapping

    @pytest.mark.parametrize(
        "config",
        [
            {"name": 1},
            {"name": 1, "headerRow": "0"},
            {"name": 1, "headerRow": True},
            {"price": 2, "headerRow": 0},
        ],
    )
    def test_from_saved_rejects(self, config):
        assert ColumnMapping.from_saved(config) is None

    def test_non_integer_column_is_unmapped(self):
        mapping = ColumnMapping.from_saved({"name": "B", "headerRow": 0})

        assert mapping.get("name") is None
        assert not mapping.is_valid


class TestItems:
    @pytest.mark.parametrize("name", ["", "   "])
    def test_name_required(self, name):
        with pytest.raises(ValidationError):
            SpecificationItem(name=name)
        with pytest.raises(ValidationError):
            InvoiceItem(name=name)


class TestMatchCandidate:
    def test_confidence_rounded(self):
        candidate = MatchCandidate(
            spec_item_id=uuid4(),
            invoice_item_id=uuid4(),
            confidence=0.83079,
            match_type=MatchType.NAME_SIMILARITY,
        )

        assert candidate.confidence == 0.831

    def test_confidence_range(self):
        with pytest.raises(ValidationError):
            MatchCandidate(
                spec_item_id=uuid4(),
                invoice_item_id=uuid4(),
                confidence=1.2,
                match_type=MatchType.EXACT_ARTICLE,
            )


def test_invoice_status_follows_items():
    result = InvoiceParseResult()
    assert result.status == InvoiceStatus.NEEDS_MAPPING

    result.items.append(InvoiceItem(name="Кабель"))
    assert result.status == InvoiceStatus.PARSED
