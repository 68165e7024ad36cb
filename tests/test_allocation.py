"""Tests for the goal allocation engine."""

import pytest
from decimal import Decimal
from uuid import UUID, uuid4

from finwallet.goals.allocation import allocate, crossed_milestone, order_goals
from finwallet.models.ledger import Goal, GoalPriority
from finwallet.validation import ValidationError


WALLET = uuid4()


def _goal(target, priority=GoalPriority.MEDIUM, name="goal", **kwargs):
    return Goal(
        name=name,
        target_amount=Decimal(target),
        priority=priority,
        wallet_id=WALLET,
        **kwargs,
    )


class TestOrdering:
    """Tests for the funding order."""

    def test_priority_then_target(self):
        cheap_low = _goal("10", GoalPriority.LOW)
        big_high = _goal("500", GoalPriority.HIGH)
        small_high = _goal("100", GoalPriority.HIGH)
        assert order_goals([cheap_low, big_high, small_high]) == [
            small_high, big_high, cheap_low,
        ]

    def test_id_breaks_ties(self):
        a = _goal("100", id=UUID("00000000-0000-0000-0000-000000000002"))
        b = _goal("100", id=UUID("00000000-0000-0000-0000-000000000001"))
        assert order_goals([a, b]) == [b, a]


class TestWaterfall:
    """Tests for the waterfall algorithm."""

    def test_higher_priority_funded_first(self):
        g1 = _goal("100", GoalPriority.HIGH)
        g2 = _goal("100", GoalPriority.MEDIUM)
        result = allocate(Decimal("150"), [g2, g1])
        assert result.progress_map[g1.id] == Decimal("100")
        assert result.progress_map[g2.id] == Decimal("50")

    def test_two_goals_of_600_with_balance_1000(self):
        a = _goal("600", GoalPriority.HIGH, name="A")
        b = _goal("600", GoalPriority.MEDIUM, name="B")
        result = allocate(Decimal("1000"), [a, b])

        assert result.get(a.id).allocated == Decimal("600")
        assert result.get(a.id).progress == Decimal("100")
        assert result.get(b.id).allocated == Decimal("400")
        assert result.get(b.id).progress.quantize(Decimal("0.01")) == Decimal("66.67")
        assert result.unallocated == 0

    def test_negative_balance_funds_nothing(self):
        goals = [_goal("100", GoalPriority.HIGH), _goal("50", GoalPriority.LOW)]
        result = allocate(Decimal("-50"), goals)
        assert all(p == 0 for p in result.progress_map.values())
        assert result.total_allocated == 0

    def test_partial_goal_consumes_the_rest(self):
        first = _goal("100", GoalPriority.HIGH)
        second = _goal("1000", GoalPriority.MEDIUM)
        third = _goal("10", GoalPriority.LOW)
        result = allocate(Decimal("300"), [first, second, third])
        assert result.get(second.id).allocated == Decimal("200")
        assert result.get(third.id).allocated == 0

    @pytest.mark.parametrize("balance", ["0", "1", "99.99", "150", "250", "10000"])
    def test_conservation(self, balance):
        balance = Decimal(balance)
        goals = [
            _goal("100", GoalPriority.HIGH),
            _goal("50", GoalPriority.MEDIUM),
            _goal("75", GoalPriority.LOW),
        ]
        result = allocate(balance, goals)
        total_target = sum(g.target_amount for g in goals)

        assert result.total_allocated <= balance
        if balance <= total_target:
            assert result.total_allocated == balance

    def test_progress_is_monotonic_in_order(self):
        goals = [
            _goal("100", GoalPriority.HIGH),
            _goal("100", GoalPriority.MEDIUM),
            _goal("100", GoalPriority.LOW),
        ]
        result = allocate(Decimal("170"), goals)
        progress = [g.progress for g in result.goals]
        assert progress == sorted(progress, reverse=True)

    def test_allocation_is_idempotent(self):
        goals = [_goal("300", GoalPriority.HIGH), _goal("700", GoalPriority.LOW)]
        assert allocate(Decimal("512.34"), goals) == allocate(Decimal("512.34"), goals)

    def test_completed_goals_are_ignored(self):
        done = _goal("100", GoalPriority.HIGH, completed=True)
        active = _goal("100", GoalPriority.LOW)
        result = allocate(Decimal("100"), [done, active])
        assert result.get(done.id) is None
        assert result.get(active.id).progress == Decimal("100")

    @pytest.mark.parametrize("target", ["0", "-5"])
    def test_non_positive_target_is_rejected(self, target):
        with pytest.raises(ValidationError) as exc_info:
            allocate(Decimal("100"), [_goal(target)])
        assert exc_info.value.fields == ["target_amount"]


class TestMilestones:
    """Tests for milestone crossing detection."""

    def test_single_crossing(self):
        assert crossed_milestone(Decimal("20"), Decimal("30"), [25, 50, 75]) == 25

    def test_highest_of_several(self):
        assert crossed_milestone(Decimal("10"), Decimal("80"), [25, 50, 75]) == 75

    def test_landing_exactly_on_a_milestone(self):
        assert crossed_milestone(Decimal("49"), Decimal("50"), [25, 50, 75]) == 50

    def test_no_crossing_when_progress_drops(self):
        assert crossed_milestone(Decimal("60"), Decimal("10"), [25, 50, 75]) is None

    def test_no_crossing_when_unchanged(self):
        assert crossed_milestone(Decimal("50"), Decimal("50"), [25, 50, 75]) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
