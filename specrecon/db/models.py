"""SQLAlchemy async database models for specrecon.

Works on SQLite (aiosqlite) and PostgreSQL. Child rows are removed by
``ON DELETE CASCADE``; SQLite connections enable foreign keys on connect.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ProjectModel(Base):
    """Reconciliation project: one customer specification, many invoices."""

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SpecificationModel(Base):
    """Uploaded specification document (one per engineering section)."""

    __tablename__ = "specifications"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    section: Mapped[str | None] = mapped_column(Text)
    file_name: Mapped[str | None] = mapped_column(Text)
    # Upload order within the project; created_at only has second resolution on SQLite
    upload_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SpecificationItemModel(Base):
    """Line of a customer specification."""

    __tablename__ = "specification_items"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    specification_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("specifications.id", ondelete="CASCADE"),
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    position_number: Mapped[str | None] = mapped_column(Text)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    characteristics: Mapped[str | None] = mapped_column(Text)
    equipment_code: Mapped[str | None] = mapped_column(Text)
    manufacturer: Mapped[str | None] = mapped_column(Text)
    unit: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[float | None] = mapped_column(Float)
    section: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("idx_spec_items_name", "name"),)


class SupplierModel(Base):
    """Invoice issuer, found or created by the name on the invoice."""

    __tablename__ = "suppliers"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    contact_info: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class InvoiceModel(Base):
    """Uploaded supplier invoice with extracted header metadata."""

    __tablename__ = "invoices"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    supplier_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        index=True,
    )

    invoice_number: Mapped[str | None] = mapped_column(Text)
    invoice_date: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[float | None] = mapped_column(Float)
    bik: Mapped[str | None] = mapped_column(Text)
    correspondent_account: Mapped[str | None] = mapped_column(Text)

    file_name: Mapped[str | None] = mapped_column(Text)
    file_path: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="needs_mapping")
    parsing_category: Mapped[str | None] = mapped_column(Text)
    parsing_category_reason: Mapped[str | None] = mapped_column(Text)
    upload_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('parsed', 'needs_mapping')", name="check_invoice_status_valid"
        ),
        CheckConstraint(
            "parsing_category IS NULL OR parsing_category IN ('A', 'B', 'C')",
            name="check_parsing_category_valid",
        ),
    )


class InvoiceItemModel(Base):
    """Line of a supplier invoice."""

    __tablename__ = "invoice_items"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    article: Mapped[str | None] = mapped_column(Text, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str | None] = mapped_column(Text)
    quantity: Mapped[float | None] = mapped_column(Float)
    price: Mapped[float | None] = mapped_column(Float)
    amount: Mapped[float | None] = mapped_column(Float)
    row_index: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class MatchedItemModel(Base):
    """Candidate link between a specification item and an invoice item.

    Per specification item at most one row is selected and at most one is
    confirmed. Confirmed rows survive matching reruns.
    """

    __tablename__ = "matched_items"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    specification_item_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("specification_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invoice_item_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("invoice_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    match_type: Mapped[str] = mapped_column(Text, nullable=False)
    is_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "confidence >= 0 AND confidence <= 1", name="check_match_confidence_range"
        ),
        CheckConstraint(
            "match_type IN ('exact_article', 'learned_rule', 'name_similarity', "
            "'name_characteristics', 'manual')",
            name="check_match_type_valid",
        ),
    )


class MatchingRuleModel(Base):
    """Learned (spec pattern, invoice pattern) association, optionally per supplier."""

    __tablename__ = "matching_rules"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    specification_pattern: Mapped[str] = mapped_column(Text, nullable=False)
    invoice_pattern: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_analog: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supplier_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "confidence >= 0 AND confidence <= 1", name="check_rule_confidence_range"
        ),
        CheckConstraint("times_used >= 1", name="check_times_used_positive"),
        # NULL never equals NULL in a unique constraint, so unscoped rules
        # need their own partial index
        Index(
            "idx_rules_unscoped_pair",
            "specification_pattern",
            "invoice_pattern",
            unique=True,
            postgresql_where=text("supplier_id IS NULL"),
            sqlite_where=text("supplier_id IS NULL"),
        ),
        Index(
            "idx_rules_scoped_pair",
            "specification_pattern",
            "invoice_pattern",
            "supplier_id",
            unique=True,
            postgresql_where=text("supplier_id IS NOT NULL"),
            sqlite_where=text("supplier_id IS NOT NULL"),
        ),
    )


class SupplierParserConfigModel(Base):
    """Saved column mapping for a supplier's invoice layout."""

    __tablename__ = "supplier_parser_configs"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    supplier_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    config: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
