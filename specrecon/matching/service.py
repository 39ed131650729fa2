"""Matching business operations: runs, confirmations, manual matches.

All operations work inside the caller's session; ``get_session()`` commits
on success and rolls back on error, so a failed run leaves the previous
candidate set in place. Runs for the same project must not overlap.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from uuid import UUID

import structlog
from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from specrecon.config import LearningConfig, MatchingConfig
from specrecon.db.ingest import get_project, list_invoice_items, list_spec_items
from specrecon.db.models import (
    InvoiceItemModel,
    InvoiceModel,
    MatchedItemModel,
    SpecificationItemModel,
    SupplierModel,
)
from specrecon.db.rules import SqlRuleStore
from specrecon.mapping.rules import RuleLearner
from specrecon.matching.engine import MatchingEngine
from specrecon.matching.search import DEFAULT_LIMIT, SearchHit, search_spec_items
from specrecon.models import ConfirmationKind, MatchingRule, MatchType, SpecificationItem

logger = structlog.get_logger(__name__)

MATCH_NOT_FOUND = "Матч не найден"
SPEC_ITEM_NOT_FOUND = "Позиция спецификации не найдена"
INVOICE_ITEM_NOT_FOUND = "Позиция счёта не найдена"


@dataclass
class MatchingRunStats:
    total: int
    matched: int
    unmatched: int
    candidates: int = 0


@dataclass
class MatchView:
    """One candidate as shown next to its specification item."""

    id: UUID
    invoice_item_id: UUID
    invoice_name: str
    article: str | None
    supplier_name: str | None
    unit: str | None
    quantity: float | None
    price: float | None
    amount: float | None
    confidence: float
    match_type: str
    is_confirmed: bool
    is_selected: bool


@dataclass
class SpecItemMatches:
    spec_item: SpecificationItem
    matches: list[MatchView] = field(default_factory=list)

    @property
    def selected(self) -> MatchView | None:
        return next((m for m in self.matches if m.is_selected), None)


@dataclass
class MatchingSummary:
    total: int
    matched: int
    confirmed: int
    unmatched: int


@dataclass
class MatchingView:
    items: list[SpecItemMatches]
    summary: MatchingSummary


def _project_spec_ids(project_id: UUID):
    return select(SpecificationItemModel.id).where(
        SpecificationItemModel.project_id == project_id
    )


async def run_matching(
    session: AsyncSession,
    project_id: UUID,
    config: MatchingConfig | None = None,
) -> MatchingRunStats:
    """Recompute unconfirmed candidates of a project.

    Unconfirmed candidates are replaced; confirmed ones stay untouched and
    keep their selection. Every other spec item with new candidates gets
    its best new candidate selected.

    Raises:
        LookupError: If the project doesn't exist
        SQLAlchemyError: If the store is unavailable
    """
    await get_project(session, project_id)
    spec_ids = _project_spec_ids(project_id)

    await session.execute(
        delete(MatchedItemModel).where(
            and_(
                MatchedItemModel.is_confirmed.is_(False),
                MatchedItemModel.specification_item_id.in_(spec_ids),
            )
        )
    )

    spec_items = await list_spec_items(session, project_id)
    invoice_items, invoice_suppliers = await list_invoice_items(session, project_id)
    rules = await SqlRuleStore(session).list_rules()

    candidates = MatchingEngine(config).match(
        spec_items, invoice_items, rules, invoice_suppliers
    )

    confirmed = await session.execute(
        select(MatchedItemModel.specification_item_id, MatchedItemModel.invoice_item_id).where(
            and_(
                MatchedItemModel.is_confirmed.is_(True),
                MatchedItemModel.specification_item_id.in_(spec_ids),
            )
        )
    )
    confirmed_pairs = {(spec_id, inv_id) for spec_id, inv_id in confirmed.all()}
    confirmed_specs = {spec_id for spec_id, _ in confirmed_pairs}

    # Items with a confirmed candidate keep it selected
    matched_specs: set[UUID] = set(confirmed_specs)
    inserted = 0
    for candidate in candidates:
        if (candidate.spec_item_id, candidate.invoice_item_id) in confirmed_pairs:
            continue
        # Candidates arrive best-first per spec item
        select_it = candidate.spec_item_id not in matched_specs
        matched_specs.add(candidate.spec_item_id)
        session.add(
            MatchedItemModel(
                specification_item_id=candidate.spec_item_id,
                invoice_item_id=candidate.invoice_item_id,
                confidence=candidate.confidence,
                match_type=candidate.match_type.value,
                is_confirmed=False,
                is_selected=select_it,
            )
        )
        inserted += 1
    await session.flush()

    stats = MatchingRunStats(
        total=len(spec_items),
        matched=len(matched_specs),
        unmatched=len(spec_items) - len(matched_specs),
        candidates=inserted,
    )
    logger.info(
        "matching_run_completed",
        project_id=str(project_id),
        total=stats.total,
        matched=stats.matched,
        candidates=stats.candidates,
        rules=len(rules),
    )
    return stats


async def _match_context(
    session: AsyncSession, match_id: UUID
) -> tuple[MatchedItemModel, str, str, UUID | None]:
    result = await session.execute(
        select(
            MatchedItemModel,
            SpecificationItemModel.name,
            InvoiceItemModel.name,
            InvoiceModel.supplier_id,
        )
        .join(
            SpecificationItemModel,
            MatchedItemModel.specification_item_id == SpecificationItemModel.id,
        )
        .join(InvoiceItemModel, MatchedItemModel.invoice_item_id == InvoiceItemModel.id)
        .join(InvoiceModel, InvoiceItemModel.invoice_id == InvoiceModel.id)
        .where(MatchedItemModel.id == match_id)
    )
    row = result.one_or_none()
    if row is None:
        raise LookupError(MATCH_NOT_FOUND)
    return row[0], row[1], row[2], row[3]


async def _confirm_and_select(session: AsyncSession, match: MatchedItemModel) -> None:
    """Make ``match`` the only confirmed and selected candidate of its item."""
    await session.execute(
        update(MatchedItemModel)
        .where(
            and_(
                MatchedItemModel.specification_item_id == match.specification_item_id,
                MatchedItemModel.id != match.id,
            )
        )
        .values(is_selected=False, is_confirmed=False)
        .execution_options(synchronize_session="fetch")
    )
    match.is_confirmed = True
    match.is_selected = True
    await session.flush()


async def confirm_match(
    session: AsyncSession,
    match_id: UUID,
    kind: ConfirmationKind = ConfirmationKind.EXACT,
    learning: LearningConfig | None = None,
) -> MatchingRule | None:
    """Confirm a candidate (as exact or analog) and learn from it.

    Returns:
        The created or updated rule, None when the names carry no pattern

    Raises:
        LookupError: If the candidate doesn't exist
    """
    match, spec_name, invoice_name, supplier_id = await _match_context(session, match_id)
    await _confirm_and_select(session, match)

    rule = await RuleLearner(SqlRuleStore(session), learning).confirm(
        spec_name, invoice_name, supplier_id, kind
    )
    logger.info("match_confirmed", match_id=str(match_id), kind=kind.value)
    return rule


async def reject_match(session: AsyncSession, match_id: UUID) -> None:
    """Delete a candidate.

    Raises:
        LookupError: If the candidate doesn't exist
    """
    match = await session.get(MatchedItemModel, match_id)
    if match is None:
        raise LookupError(MATCH_NOT_FOUND)
    await session.delete(match)
    await session.flush()
    logger.info("match_rejected", match_id=str(match_id))


async def manual_match(
    session: AsyncSession,
    spec_item_id: UUID,
    invoice_item_id: UUID,
    learning: LearningConfig | None = None,
) -> MatchedItemModel:
    """Link a hand-picked pair, confirm and select it, learn a rule.

    Raises:
        LookupError: If either item doesn't exist
        ValueError: If the items belong to different projects
    """
    learning = learning or LearningConfig()

    spec_row = await session.get(SpecificationItemModel, spec_item_id)
    if spec_row is None:
        raise LookupError(SPEC_ITEM_NOT_FOUND)

    result = await session.execute(
        select(InvoiceItemModel, InvoiceModel)
        .join(InvoiceModel, InvoiceItemModel.invoice_id == InvoiceModel.id)
        .where(InvoiceItemModel.id == invoice_item_id)
    )
    row = result.one_or_none()
    if row is None:
        raise LookupError(INVOICE_ITEM_NOT_FOUND)
    invoice_row, invoice = row[0], row[1]

    if invoice.project_id != spec_row.project_id:
        raise ValueError("Spec item and invoice item belong to different projects")

    existing = await session.execute(
        select(MatchedItemModel).where(
            and_(
                MatchedItemModel.specification_item_id == spec_item_id,
                MatchedItemModel.invoice_item_id == invoice_item_id,
            )
        )
    )
    match = existing.scalar_one_or_none()
    if match is None:
        match = MatchedItemModel(
            specification_item_id=spec_item_id,
            invoice_item_id=invoice_item_id,
            confidence=learning.manual_confidence,
            match_type=MatchType.MANUAL.value,
        )
        session.add(match)
        await session.flush()

    await _confirm_and_select(session, match)
    await RuleLearner(SqlRuleStore(session), learning).confirm_manual(
        spec_row.name, invoice_row.name, invoice.supplier_id
    )
    logger.info(
        "manual_match_created",
        spec_item_id=str(spec_item_id),
        invoice_item_id=str(invoice_item_id),
    )
    return match


async def get_matching_view(session: AsyncSession, project_id: UUID) -> MatchingView:
    """Spec items of a project with their candidates, best first.

    Raises:
        LookupError: If the project doesn't exist
    """
    await get_project(session, project_id)
    spec_items = await list_spec_items(session, project_id)
    spec_ids = _project_spec_ids(project_id)

    result = await session.execute(
        select(MatchedItemModel, InvoiceItemModel, SupplierModel.name)
        .join(InvoiceItemModel, MatchedItemModel.invoice_item_id == InvoiceItemModel.id)
        .join(InvoiceModel, InvoiceItemModel.invoice_id == InvoiceModel.id)
        .outerjoin(SupplierModel, InvoiceModel.supplier_id == SupplierModel.id)
        .where(MatchedItemModel.specification_item_id.in_(spec_ids))
        .order_by(MatchedItemModel.confidence.desc())
    )

    by_spec: dict[UUID, list[MatchView]] = defaultdict(list)
    for match, inv, supplier_name in result.all():
        by_spec[match.specification_item_id].append(
            MatchView(
                id=match.id,
                invoice_item_id=inv.id,
                invoice_name=inv.name,
                article=inv.article,
                supplier_name=supplier_name,
                unit=inv.unit,
                quantity=inv.quantity,
                price=inv.price,
                amount=inv.amount,
                confidence=match.confidence,
                match_type=match.match_type,
                is_confirmed=match.is_confirmed,
                is_selected=match.is_selected,
            )
        )

    items = [SpecItemMatches(spec_item=item, matches=by_spec.get(item.id, [])) for item in spec_items]
    matched = sum(1 for entry in items if entry.matches)
    confirmed = sum(1 for entry in items if any(m.is_confirmed for m in entry.matches))

    return MatchingView(
        items=items,
        summary=MatchingSummary(
            total=len(items),
            matched=matched,
            confirmed=confirmed,
            unmatched=len(items) - matched,
        ),
    )


async def search_project_spec_items(
    session: AsyncSession, project_id: UUID, query: str, limit: int = DEFAULT_LIMIT
) -> list[SearchHit]:
    """Rank a project's spec items against a free-text query.

    Raises:
        LookupError: If the project doesn't exist
    """
    await get_project(session, project_id)
    items = await list_spec_items(session, project_id)
    return search_spec_items(items, query, limit=limit)
