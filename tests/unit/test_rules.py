"""Unit tests for rule learning."""

from __future__ import annotations

from uuid import uuid4

import pytest

from specrecon.config import LearningConfig
from specrecon.mapping.rules import InMemoryRuleStore, RuleLearner, apply_confirmation
from specrecon.models import ConfirmationKind, MatchingRule


@pytest.fixture
def store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def learner(store) -> RuleLearner:
    return RuleLearner(store)


class TestApplyConfirmation:
    def test_new_exact_rule(self):
        rule = apply_confirmation(
            None, "кабель", "кабель ввг", None, ConfirmationKind.EXACT, LearningConfig()
        )

        assert rule.confidence == 0.9
        assert rule.times_used == 1
        assert rule.is_analog is False

    def test_new_analog_rule(self):
        rule = apply_confirmation(
            None, "кабель", "провод", None, ConfirmationKind.ANALOG, LearningConfig()
        )

        assert rule.confidence == 0.75
        assert rule.is_analog is True

    def test_exact_confirmation_capped_at_one(self):
        existing = MatchingRule(
            specification_pattern="a", invoice_pattern="b", confidence=0.99, times_used=5
        )

        rule = apply_confirmation(
            existing, "a", "b", None, ConfirmationKind.EXACT, LearningConfig()
        )

        assert rule.confidence == 1.0
        assert rule.times_used == 6
        assert rule.id == existing.id

    def test_analog_confirmation_keeps_confidence(self):
        existing = MatchingRule(
            specification_pattern="a", invoice_pattern="b", confidence=0.8
        )

        rule = apply_confirmation(
            existing, "a", "b", None, ConfirmationKind.ANALOG, LearningConfig()
        )

        assert rule.confidence == 0.8
        assert rule.times_used == 2


class TestRuleLearner:
    @pytest.mark.asyncio
    async def test_exact_twice(self, learner, store):
        await learner.confirm("Кабель ВВГ 3х2,5", "Кабель ВВГ-П 3х2.5мм")
        rule = await learner.confirm("Кабель ВВГ 3х2,5", "Кабель ВВГ-П 3х2.5мм")

        assert rule.specification_pattern == "кабель ввг 3х2 5"
        assert rule.invoice_pattern == "кабель ввг 3х2 5мм"
        assert rule.confidence == pytest.approx(0.92)
        assert rule.times_used == 2
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_analog_twice(self, learner):
        first = await learner.confirm("Кабель ВВГ", "Провод ПВС", kind=ConfirmationKind.ANALOG)
        second = await learner.confirm("Кабель ВВГ", "Провод ПВС", kind=ConfirmationKind.ANALOG)

        assert first.confidence == 0.75
        assert first.is_analog is True
        assert second.confidence == 0.75
        assert second.times_used == 2

    @pytest.mark.asyncio
    async def test_supplier_scope_is_separate_bucket(self, learner, store):
        supplier = uuid4()

        scoped = await learner.confirm("Кабель", "Кабель ВВГ", supplier_id=supplier)
        unscoped = await learner.confirm("Кабель", "Кабель ВВГ")

        assert len(store) == 2
        assert scoped.id != unscoped.id
        found = await store.find("кабель", "кабель ввг", None)
        assert found.id == unscoped.id
        assert (await store.find("кабель", "кабель ввг", supplier)).supplier_id == supplier

    @pytest.mark.asyncio
    async def test_manual_confirmation(self, learner):
        rule = await learner.confirm_manual("Кабель", "Кабель ВВГ")

        assert rule.confidence == 0.95
        assert rule.is_analog is False

    @pytest.mark.asyncio
    async def test_manual_confirmation_reinforces_existing(self, learner):
        await learner.confirm("Кабель", "Кабель ВВГ")

        rule = await learner.confirm_manual("Кабель", "Кабель ВВГ")

        assert rule.confidence == pytest.approx(0.92)
        assert rule.times_used == 2

    @pytest.mark.asyncio
    async def test_empty_pattern_learns_nothing(self, learner, store):
        assert await learner.confirm("мм", "Кабель") is None
        assert await learner.confirm("Кабель", "шт.") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_store_returns_copies(self, learner, store):
        rule = await learner.confirm("Кабель", "Кабель ВВГ")
        rule.confidence = 0.1

        stored = await store.find("кабель", "кабель ввг", None)

        assert stored.confidence == 0.9
