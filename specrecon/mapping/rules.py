"""Learned matching rules: storage protocol and confirmation learner.

A rule is keyed by (normalized spec pattern, normalized invoice pattern,
supplier scope). ``None`` scope is a bucket of its own: a lookup without a
supplier never returns a supplier-scoped rule and vice versa.
"""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from specrecon.canonical.normalize import normalize_for_matching
from specrecon.config import LearningConfig
from specrecon.models import ConfirmationKind, MatchingRule

logger = logging.getLogger(__name__)

MAX_RULE_CONFIDENCE = 1.0

RuleKey = tuple[str, str, UUID | None]


class RuleStore(Protocol):
    """Persistence for learned rules. Readers always see the latest state."""

    async def find(
        self, spec_pattern: str, invoice_pattern: str, supplier_id: UUID | None
    ) -> MatchingRule | None: ...

    async def save(self, rule: MatchingRule) -> MatchingRule: ...

    async def list_rules(self) -> list[MatchingRule]: ...


class InMemoryRuleStore:
    """Dictionary-backed store for tests and one-off runs."""

    def __init__(self, rules: list[MatchingRule] | None = None) -> None:
        self._store: dict[RuleKey, MatchingRule] = {}
        for rule in rules or []:
            self._store[self._key(rule)] = rule

    @staticmethod
    def _key(rule: MatchingRule) -> RuleKey:
        return (rule.specification_pattern, rule.invoice_pattern, rule.supplier_id)

    async def find(
        self, spec_pattern: str, invoice_pattern: str, supplier_id: UUID | None
    ) -> MatchingRule | None:
        rule = self._store.get((spec_pattern, invoice_pattern, supplier_id))
        return rule.model_copy() if rule is not None else None

    async def save(self, rule: MatchingRule) -> MatchingRule:
        self._store[self._key(rule)] = rule.model_copy()
        return rule

    async def list_rules(self) -> list[MatchingRule]:
        return [rule.model_copy() for rule in self._store.values()]

    def __len__(self) -> int:
        return len(self._store)


def apply_confirmation(
    existing: MatchingRule | None,
    spec_pattern: str,
    invoice_pattern: str,
    supplier_id: UUID | None,
    kind: ConfirmationKind,
    config: LearningConfig,
    initial_confidence: float | None = None,
) -> MatchingRule:
    """New state of a rule after one confirmation.

    Existing rules gain a use; exact confirmations also raise confidence by
    ``exact_increment`` up to 1.0, analog confirmations leave it as is.
    New rules start at the kind's initial confidence unless
    ``initial_confidence`` is given.
    """
    if existing is not None:
        confidence = existing.confidence
        if kind == ConfirmationKind.EXACT:
            confidence = min(
                MAX_RULE_CONFIDENCE, round(confidence + config.exact_increment, 6)
            )
        return existing.model_copy(
            update={"confidence": confidence, "times_used": existing.times_used + 1}
        )

    if initial_confidence is None:
        initial_confidence = (
            config.exact_initial_confidence
            if kind == ConfirmationKind.EXACT
            else config.analog_initial_confidence
        )
    return MatchingRule(
        specification_pattern=spec_pattern,
        invoice_pattern=invoice_pattern,
        confidence=initial_confidence,
        times_used=1,
        supplier_id=supplier_id,
        is_analog=kind == ConfirmationKind.ANALOG,
    )


class RuleLearner:
    """Turns human confirmations into learned rules."""

    def __init__(self, store: RuleStore, config: LearningConfig | None = None) -> None:
        """Initialize learner.

        Args:
            store: Rule persistence
            config: Initial confidences and increments
        """
        self.store = store
        self.config = config or LearningConfig()

    async def confirm(
        self,
        spec_name: str,
        invoice_name: str,
        supplier_id: UUID | None = None,
        kind: ConfirmationKind = ConfirmationKind.EXACT,
        initial_confidence: float | None = None,
    ) -> MatchingRule | None:
        """Record a confirmed (spec name, invoice name) pair.

        Returns:
            Updated or created rule, or None when either name normalizes to
            an empty pattern (nothing to learn)

        Raises:
            SQLAlchemyError: If a database-backed store fails
        """
        spec_pattern = normalize_for_matching(spec_name)
        invoice_pattern = normalize_for_matching(invoice_name)
        if not spec_pattern or not invoice_pattern:
            logger.info("Skipping rule for empty pattern: %r -> %r", spec_name, invoice_name)
            return None

        existing = await self.store.find(spec_pattern, invoice_pattern, supplier_id)
        rule = apply_confirmation(
            existing,
            spec_pattern,
            invoice_pattern,
            supplier_id,
            kind,
            self.config,
            initial_confidence,
        )
        saved = await self.store.save(rule)

        logger.info(
            "Rule %s: %r -> %r confidence=%.2f times_used=%d",
            "updated" if existing else "created",
            spec_pattern,
            invoice_pattern,
            saved.confidence,
            saved.times_used,
        )
        return saved

    async def confirm_manual(
        self, spec_name: str, invoice_name: str, supplier_id: UUID | None = None
    ) -> MatchingRule | None:
        """Learn from a hand-picked match: exact kind, new rules at 0.95."""
        return await self.confirm(
            spec_name,
            invoice_name,
            supplier_id,
            ConfirmationKind.EXACT,
            initial_confidence=self.config.manual_confidence,
        )
