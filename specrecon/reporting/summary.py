"""Priced project summary grouped by engineering section.

Each specification item is priced with its selected candidate:
``amount = round(price * quantity, 2)`` (missing quantity counts as 0,
missing price leaves the line unpriced). Section subtotals and the grand
total are rounded to 2 decimals.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from specrecon.canonical.sections import NO_SECTION
from specrecon.db.ingest import get_project
from specrecon.db.models import (
    InvoiceItemModel,
    InvoiceModel,
    MatchedItemModel,
    SpecificationItemModel,
    SpecificationModel,
    SupplierModel,
)


@dataclass
class SummaryLine:
    """Specification item with the price of its selected candidate."""

    name: str
    position_number: str | None = None
    unit: str | None = None
    quantity: float | None = None
    section: str | None = None
    price: float | None = None
    invoice_name: str | None = None
    article: str | None = None
    supplier_name: str | None = None

    @property
    def amount(self) -> float | None:
        if self.price is None:
            return None
        return round(self.price * (self.quantity or 0), 2)


@dataclass
class SectionSummary:
    name: str
    lines: list[SummaryLine] = field(default_factory=list)

    @property
    def subtotal(self) -> float:
        return round(sum(line.amount for line in self.lines if line.amount is not None), 2)

    @property
    def priced_count(self) -> int:
        return sum(1 for line in self.lines if line.price is not None)


@dataclass
class ProjectSummary:
    project_name: str
    sections: list[SectionSummary] = field(default_factory=list)

    @property
    def grand_total(self) -> float:
        return round(sum(section.subtotal for section in self.sections), 2)

    @property
    def item_count(self) -> int:
        return sum(len(section.lines) for section in self.sections)


def group_by_section(lines: Iterable[SummaryLine]) -> list[SectionSummary]:
    """Group lines by section, keeping first-appearance order.

    Lines without a section land in ``Без раздела``.
    """
    sections: dict[str, SectionSummary] = {}
    for line in lines:
        name = line.section or NO_SECTION
        if name not in sections:
            sections[name] = SectionSummary(name=name)
        sections[name].lines.append(line)
    return list(sections.values())


async def project_summary(session: AsyncSession, project_id: UUID) -> ProjectSummary:
    """Build the priced summary of a project from its selected candidates.

    Raises:
        LookupError: If the project doesn't exist
    """
    project = await get_project(session, project_id)

    stmt = (
        select(
            SpecificationItemModel,
            InvoiceItemModel.price,
            InvoiceItemModel.name,
            InvoiceItemModel.article,
            SupplierModel.name,
        )
        .outerjoin(
            SpecificationModel,
            SpecificationItemModel.specification_id == SpecificationModel.id,
        )
        .outerjoin(
            MatchedItemModel,
            and_(
                MatchedItemModel.specification_item_id == SpecificationItemModel.id,
                MatchedItemModel.is_selected.is_(True),
            ),
        )
        .outerjoin(InvoiceItemModel, MatchedItemModel.invoice_item_id == InvoiceItemModel.id)
        .outerjoin(InvoiceModel, InvoiceItemModel.invoice_id == InvoiceModel.id)
        .outerjoin(SupplierModel, InvoiceModel.supplier_id == SupplierModel.id)
        .where(SpecificationItemModel.project_id == project_id)
        # NULL sections first, as the database sorts them
        .order_by(
            SpecificationItemModel.section.is_not(None),
            SpecificationItemModel.section,
            SpecificationModel.upload_seq,
            SpecificationItemModel.position,
        )
    )
    result = await session.execute(stmt)

    lines = [
        SummaryLine(
            name=spec.name,
            position_number=spec.position_number,
            unit=spec.unit,
            quantity=spec.quantity,
            section=spec.section,
            price=price,
            invoice_name=invoice_name,
            article=article,
            supplier_name=supplier_name,
        )
        for spec, price, invoice_name, article, supplier_name in result.all()
    ]

    return ProjectSummary(project_name=project.name, sections=group_by_section(lines))
