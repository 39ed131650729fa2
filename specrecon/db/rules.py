"""Database-backed rule store."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from specrecon.db.models import MatchingRuleModel
from specrecon.models import MatchingRule


def rule_from_row(row: MatchingRuleModel) -> MatchingRule:
    return MatchingRule(
        id=row.id,
        specification_pattern=row.specification_pattern,
        invoice_pattern=row.invoice_pattern,
        confidence=row.confidence,
        times_used=row.times_used,
        supplier_id=row.supplier_id,
        is_analog=row.is_analog,
    )


class SqlRuleStore:
    """Rule store on the ``matching_rules`` table.

    Writes are flushed, not committed: the caller's session decides the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        """Initialize store with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def find(
        self, spec_pattern: str, invoice_pattern: str, supplier_id: UUID | None
    ) -> MatchingRule | None:
        """Exact lookup by pattern pair and supplier scope.

        Raises:
            SQLAlchemyError: If database query fails
        """
        scope = (
            MatchingRuleModel.supplier_id.is_(None)
            if supplier_id is None
            else MatchingRuleModel.supplier_id == supplier_id
        )
        stmt = select(MatchingRuleModel).where(
            and_(
                MatchingRuleModel.specification_pattern == spec_pattern,
                MatchingRuleModel.invoice_pattern == invoice_pattern,
                scope,
            )
        )
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return rule_from_row(row) if row else None

    async def save(self, rule: MatchingRule) -> MatchingRule:
        """Insert or update a rule by id.

        Raises:
            IntegrityError: If another rule already holds the same key
            SQLAlchemyError: If database operation fails
        """
        row = await self.session.get(MatchingRuleModel, rule.id)
        if row is None:
            row = MatchingRuleModel(
                id=rule.id,
                specification_pattern=rule.specification_pattern,
                invoice_pattern=rule.invoice_pattern,
                supplier_id=rule.supplier_id,
            )
            self.session.add(row)

        row.confidence = rule.confidence
        row.times_used = rule.times_used
        row.is_analog = rule.is_analog
        await self.session.flush()
        return rule

    async def list_rules(self, supplier_id: UUID | None = None) -> list[MatchingRule]:
        """All rules, or only those scoped to ``supplier_id`` when given."""
        stmt = select(MatchingRuleModel).order_by(
            MatchingRuleModel.times_used.desc(), MatchingRuleModel.specification_pattern
        )
        if supplier_id is not None:
            stmt = stmt.where(MatchingRuleModel.supplier_id == supplier_id)
        result = await self.session.execute(stmt)
        return [rule_from_row(row) for row in result.scalars().all()]
