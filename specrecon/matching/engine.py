"""Four-tier matching of specification items against invoice items.

Strategies are evaluated in priority order for every (spec item, invoice
item) pair:

1. Exact article: equipment code equals the invoice article -> 0.95
2. Learned rule: both names resemble a confirmed pair -> rule confidence (max 0.95)
3. Name similarity: Dice similarity of normalized names -> up to 0.94
4. Name + characteristics vs invoice name -> up to 0.94

Evaluation stops as soon as a strategy reaches 0.95. The engine is pure:
persistence of candidates and rules lives in the service layer.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import NamedTuple
from uuid import UUID

from specrecon.canonical.normalize import normalize_for_matching
from specrecon.config import MatchingConfig
from specrecon.matching.similarity import dice_similarity
from specrecon.models import InvoiceItem, MatchCandidate, MatchingRule, MatchType, SpecificationItem

logger = logging.getLogger(__name__)

EXACT_ARTICLE_CONFIDENCE = 0.95
RULE_CONFIDENCE_CAP = 0.95
FUZZY_CONFIDENCE_CAP = 0.94  # Strictly below an exact article match
UNIT_BONUS = 0.05
NAME_SIMILARITY_WEIGHT = 0.9
FULL_SIMILARITY_WEIGHT = 0.8


class PairScore(NamedTuple):
    confidence: float
    match_type: MatchType


@dataclass(frozen=True)
class _PreparedSpec:
    item: SpecificationItem
    name: str
    full: str | None
    code: str | None


@dataclass(frozen=True)
class _PreparedInvoice:
    item: InvoiceItem
    name: str
    supplier_id: UUID | None


@dataclass(frozen=True)
class _PreparedRule:
    rule: MatchingRule
    spec_pattern: str
    invoice_pattern: str


def units_match(first: str | None, second: str | None) -> bool:
    if not first or not second:
        return False
    return first.strip().lower() == second.strip().lower()


def rule_applies(rule: MatchingRule, supplier_id: UUID | None) -> bool:
    """Unscoped rules apply everywhere; scoped rules only to their supplier."""
    return rule.supplier_id is None or rule.supplier_id == supplier_id


class MatchingEngine:
    """Score and prune match candidates."""

    def __init__(self, config: MatchingConfig | None = None) -> None:
        """Initialize engine.

        Args:
            config: Thresholds; calibrated defaults when omitted
        """
        self.config = config or MatchingConfig()

    def match(
        self,
        spec_items: Sequence[SpecificationItem],
        invoice_items: Sequence[InvoiceItem],
        rules: Sequence[MatchingRule] = (),
        invoice_suppliers: Mapping[UUID, UUID | None] | None = None,
    ) -> list[MatchCandidate]:
        """Produce ranked candidates for every specification item.

        Args:
            spec_items: Items of the customer specification
            invoice_items: Items of all invoices considered
            rules: Learned rules visible to this run
            invoice_suppliers: invoice id -> supplier id, used to scope rules

        Returns:
            Candidates with confidence >= ``min_confidence``, at most
            ``max_candidates_per_item`` per spec item, best first. Ties keep
            invoice order.
        """
        if not spec_items or not invoice_items:
            return []

        suppliers = invoice_suppliers or {}
        invoices = [
            _PreparedInvoice(
                item=inv,
                name=normalize_for_matching(inv.name),
                supplier_id=suppliers.get(inv.invoice_id) if inv.invoice_id else None,
            )
            for inv in invoice_items
        ]
        prepared_rules = [
            _PreparedRule(
                rule=rule,
                spec_pattern=normalize_for_matching(rule.specification_pattern),
                invoice_pattern=normalize_for_matching(rule.invoice_pattern),
            )
            for rule in rules
        ]

        candidates: list[MatchCandidate] = []
        for spec_item in spec_items:
            spec = self._prepare_spec(spec_item)
            scored: list[MatchCandidate] = []

            for inv in invoices:
                score = self.score_pair(spec, inv, prepared_rules)
                if score is None or score.confidence < self.config.min_confidence:
                    continue
                scored.append(
                    MatchCandidate(
                        spec_item_id=spec_item.id,
                        invoice_item_id=inv.item.id,
                        confidence=round(score.confidence, 3),
                        match_type=score.match_type,
                    )
                )

            # list.sort is stable: equal confidences keep invoice order
            scored.sort(key=lambda c: c.confidence, reverse=True)
            candidates.extend(scored[: self.config.max_candidates_per_item])

        logger.info(
            "Matching produced %d candidates for %d spec items x %d invoice items (%d rules)",
            len(candidates),
            len(spec_items),
            len(invoice_items),
            len(prepared_rules),
        )
        return candidates

    @staticmethod
    def _prepare_spec(item: SpecificationItem) -> _PreparedSpec:
        name = normalize_for_matching(item.name)
        full = (
            normalize_for_matching(f"{item.name} {item.characteristics}")
            if item.characteristics
            else None
        )
        code = item.equipment_code.strip() if item.equipment_code else None
        return _PreparedSpec(item=item, name=name, full=full, code=code or None)

    def score_pair(
        self,
        spec: _PreparedSpec,
        inv: _PreparedInvoice,
        rules: Sequence[_PreparedRule],
    ) -> PairScore | None:
        """Best confidence over the four strategies, None if none qualifies."""
        best: PairScore | None = None

        # 1. Exact article
        if spec.code and inv.item.article:
            if spec.code.lower() == inv.item.article.strip().lower():
                return PairScore(EXACT_ARTICLE_CONFIDENCE, MatchType.EXACT_ARTICLE)

        # 2. Learned rules
        for prepared in rules:
            if not rule_applies(prepared.rule, inv.supplier_id):
                continue
            spec_sim = dice_similarity(spec.name, prepared.spec_pattern)
            if spec_sim < self.config.rule_similarity_min:
                continue
            inv_sim = dice_similarity(inv.name, prepared.invoice_pattern)
            if inv_sim < self.config.rule_similarity_min:
                continue
            confidence = min(prepared.rule.confidence, RULE_CONFIDENCE_CAP)
            if best is None or confidence > best.confidence:
                best = PairScore(confidence, MatchType.LEARNED_RULE)

        if best is not None and best.confidence >= EXACT_ARTICLE_CONFIDENCE:
            return best

        same_unit = units_match(spec.item.unit, inv.item.unit)

        # 3. Name similarity
        name_sim = dice_similarity(spec.name, inv.name)
        if name_sim >= self.config.name_similarity_min:
            confidence = self._fuzzy_confidence(name_sim, NAME_SIMILARITY_WEIGHT, same_unit)
            if best is None or confidence > best.confidence:
                best = PairScore(confidence, MatchType.NAME_SIMILARITY)

        # 4. Name + characteristics
        if spec.full is not None:
            full_sim = dice_similarity(spec.full, inv.name)
            if full_sim >= self.config.full_similarity_min:
                confidence = self._fuzzy_confidence(full_sim, FULL_SIMILARITY_WEIGHT, same_unit)
                if best is None or confidence > best.confidence:
                    best = PairScore(confidence, MatchType.NAME_CHARACTERISTICS)

        return best

    @staticmethod
    def _fuzzy_confidence(similarity: float, weight: float, same_unit: bool) -> float:
        confidence = similarity * weight
        if same_unit:
            confidence += UNIT_BONUS
        return min(confidence, FUZZY_CONFIDENCE_CAP)


def match_items(
    spec_items: Sequence[SpecificationItem],
    invoice_items: Sequence[InvoiceItem],
    rules: Sequence[MatchingRule] = (),
    invoice_suppliers: Mapping[UUID, UUID | None] | None = None,
    config: MatchingConfig | None = None,
) -> list[MatchCandidate]:
    """Convenience wrapper around :class:`MatchingEngine`."""
    return MatchingEngine(config).match(spec_items, invoice_items, rules, invoice_suppliers)
