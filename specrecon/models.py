"""specrecon Pydantic models for type-safe data validation.

Parsed documents, match candidates and learned rules all pass through these
models; persistence rows in ``specrecon.db.models`` mirror them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

INVOICE_FIELDS: tuple[str, ...] = ("article", "name", "unit", "quantity", "price", "amount")


class MatchType(str, Enum):
    """Strategy that produced a candidate, in priority order."""

    EXACT_ARTICLE = "exact_article"
    LEARNED_RULE = "learned_rule"
    NAME_SIMILARITY = "name_similarity"
    NAME_CHARACTERISTICS = "name_characteristics"
    MANUAL = "manual"  # Picked by hand, never produced by the engine


class ConfirmationKind(str, Enum):
    """How a human validated a match."""

    EXACT = "exact"
    ANALOG = "analog"  # Acceptable substitute, not the same product


class ParseQuality(str, Enum):
    """Usability category of an extracted document."""

    A = "A"  # Structured table parsed, items found
    B = "B"  # Text extracted, no column structure recognized
    C = "C"  # Text unreadable / garbled


class InvoiceStatus(str, Enum):
    PARSED = "parsed"
    NEEDS_MAPPING = "needs_mapping"


class ColumnMapping(BaseModel):
    """Logical field -> column index assignment plus the header row index."""

    columns: dict[str, int | None]
    header_row: int

    def get(self, field_name: str) -> int | None:
        return self.columns.get(field_name)

    @property
    def is_valid(self) -> bool:
        """A mapping is usable only when the name column is known."""
        return self.columns.get("name") is not None

    def to_saved(self) -> dict[str, Any]:
        """Serialize in the stored supplier-config shape."""
        return {**self.columns, "headerRow": self.header_row}

    @classmethod
    def from_saved(
        cls, config: dict[str, Any], fields: tuple[str, ...] = INVOICE_FIELDS
    ) -> ColumnMapping | None:
        """Build a mapping from a stored supplier config.

        Returns None when the config lacks an integer ``headerRow`` or a
        ``name`` key.
        """
        header_row = config.get("headerRow")
        if not isinstance(header_row, int) or isinstance(header_row, bool):
            return None
        if "name" not in config:
            return None
        columns: dict[str, int | None] = {}
        for field_name in fields:
            value = config.get(field_name)
            columns[field_name] = value if isinstance(value, int) else None
        return cls(columns=columns, header_row=header_row)


class SpecificationItem(BaseModel):
    """Line of a customer's equipment specification."""

    id: UUID = Field(default_factory=uuid4)
    project_id: UUID | None = None
    specification_id: UUID | None = None
    position_number: str | None = None
    name: str
    characteristics: str | None = None
    equipment_code: str | None = None
    manufacturer: str | None = None
    unit: str | None = None
    quantity: float | None = None
    section: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name must be non-empty")
        return v


class InvoiceItem(BaseModel):
    """Line of a supplier invoice.

    ``amount`` is kept as printed; it is not reconciled with price x quantity.
    """

    id: UUID = Field(default_factory=uuid4)
    invoice_id: UUID | None = None
    article: str | None = None
    name: str
    unit: str | None = None
    quantity: float | None = None
    price: float | None = None
    amount: float | None = None
    row_index: int | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name must be non-empty")
        return v


class MatchCandidate(BaseModel):
    """Scored proposed link between a specification item and an invoice item."""

    spec_item_id: UUID
    invoice_item_id: UUID
    confidence: float = Field(ge=0.0, le=1.0)
    match_type: MatchType

    @field_validator("confidence")
    @classmethod
    def round_confidence(cls, v: float) -> float:
        return round(v, 3)


class MatchingRule(BaseModel):
    """Learned (specification pattern, invoice pattern) association."""

    id: UUID = Field(default_factory=uuid4)
    specification_pattern: str
    invoice_pattern: str
    confidence: float = Field(ge=0.0, le=1.0)
    times_used: int = 1
    supplier_id: UUID | None = None
    is_analog: bool = False


class InvoiceMetadata(BaseModel):
    """Header data found around an invoice table."""

    invoice_number: str | None = None
    invoice_date: str | None = None
    supplier_name: str | None = None
    total_amount: float | None = None
    bik: str | None = None
    correspondent_account: str | None = None


class ParseResult(BaseModel):
    """Outcome of parsing a specification document."""

    items: list[SpecificationItem] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_rows: int = 0
    skipped_rows: int = 0


class InvoiceParseResult(BaseModel):
    """Outcome of parsing an invoice document."""

    items: list[InvoiceItem] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_rows: int = 0
    skipped_rows: int = 0
    invoice_number: str | None = None
    invoice_date: str | None = None
    supplier_name: str | None = None
    total_amount: float | None = None
    bik: str | None = None
    correspondent_account: str | None = None
    mapping: ColumnMapping | None = None
    quality: ParseQuality = ParseQuality.B
    quality_reason: str = ""

    @property
    def status(self) -> InvoiceStatus:
        return InvoiceStatus.PARSED if self.items else InvoiceStatus.NEEDS_MAPPING

    def apply_metadata(self, metadata: InvoiceMetadata) -> None:
        self.invoice_number = metadata.invoice_number
        self.invoice_date = metadata.invoice_date
        self.supplier_name = metadata.supplier_name
        self.total_amount = metadata.total_amount
        self.bik = metadata.bik
        self.correspondent_account = metadata.correspondent_account
