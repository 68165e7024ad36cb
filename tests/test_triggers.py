"""Tests for alert triggers."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finwallet.alerts.triggers import (
    SAVING_TIPS,
    budget_alerts,
    goal_alerts,
    monthly_summary_alert,
    saving_tip_alert,
    share_alert,
    transaction_alerts,
)
from finwallet.budgets.monitor import evaluate_budgets
from finwallet.config import EngineSettings
from finwallet.goals.allocation import allocate
from finwallet.ledger.aggregator import LedgerSummary
from finwallet.models.ledger import Budget, Goal, GoalPriority, Transaction, TransactionType


WALLET = uuid4()
NOW = datetime(2024, 5, 14, 10, 0, tzinfo=timezone.utc)


def _txn(amount, kind=TransactionType.EXPENSE, category="food"):
    return Transaction(
        amount=Decimal(amount),
        type=kind,
        category=category,
        wallet_id=WALLET,
        user_id="user-1",
        date=NOW,
    )


@pytest.fixture
def settings():
    return EngineSettings()


class TestBudgetAlerts:
    """Tests for budget_warning / budget_exceeded."""

    def test_warning_and_exceeded(self):
        reports = evaluate_budgets(
            [
                Budget(category="food", limit=Decimal("500"), wallet_id=WALLET),
                Budget(category="fun", limit=Decimal("100"), wallet_id=WALLET),
                Budget(category="rent", limit=Decimal("1000"), wallet_id=WALLET),
            ],
            {"food": Decimal("450"), "fun": Decimal("130"), "rent": Decimal("500")},
        )
        candidates = budget_alerts(reports, NOW)
        by_type = {c.type: c for c in candidates}

        assert set(by_type) == {"budget_warning", "budget_exceeded"}
        assert by_type["budget_warning"].data == {"category": "food", "percentage": 90}
        assert by_type["budget_exceeded"].data == {
            "category": "fun", "percentage": 130, "month": "2024-05",
        }
        assert by_type["budget_warning"].wallet_id == WALLET

    def test_warning_percentage_is_truncated(self):
        reports = evaluate_budgets(
            [Budget(category="food", limit=Decimal("10000"), wallet_id=WALLET)],
            {"food": Decimal("9999")},
        )
        [candidate] = budget_alerts(reports, NOW)
        assert candidate.data["percentage"] == 99


class TestGoalAlerts:
    """Tests for milestone detection between two samples."""

    def setup_method(self):
        self.goal = Goal(
            name="Trip",
            target_amount=Decimal("1000"),
            priority=GoalPriority.HIGH,
            wallet_id=WALLET,
        )

    def test_first_sample_is_baseline(self):
        assert goal_alerts(None, allocate(Decimal("900"), [self.goal]), [25, 50, 75]) == []

    def test_milestone_crossed(self):
        before = allocate(Decimal("200"), [self.goal])
        after = allocate(Decimal("550"), [self.goal])
        [candidate] = goal_alerts(before, after, [25, 50, 75])
        assert candidate.type == "goal_milestone"
        assert candidate.data == {
            "goal_id": str(self.goal.id), "goal_name": "Trip", "percentage": 50,
        }

    def test_achieved_wins_over_milestone(self):
        before = allocate(Decimal("100"), [self.goal])
        after = allocate(Decimal("1000"), [self.goal])
        [candidate] = goal_alerts(before, after, [25, 50, 75])
        assert candidate.type == "goal_achieved"

    def test_no_alert_without_change(self):
        sample = allocate(Decimal("600"), [self.goal])
        assert goal_alerts(sample, sample, [25, 50, 75]) == []

    def test_new_goal_is_baseline(self):
        before = allocate(Decimal("0"), [])
        after = allocate(Decimal("1000"), [self.goal])
        assert goal_alerts(before, after, [25, 50, 75]) == []


class TestTransactionAlerts:
    """Tests for ingestion rules."""

    def test_large_transaction(self, settings):
        txn = _txn("1000", TransactionType.EXPENSE, "rent")
        candidates = transaction_alerts(txn, [], settings)
        assert [c.type for c in candidates] == ["transaction_large"]
        assert candidates[0].data == {"type": "expense", "amount": "1000.00"}

    def test_below_large_threshold(self, settings):
        assert transaction_alerts(_txn("999.99"), [], settings) == []

    def test_spending_pattern_needs_count_and_total(self, settings):
        earlier = [_txn("800"), _txn("800")]
        new = _txn("500")
        types = [c.type for c in transaction_alerts(new, earlier, settings)]
        assert types == ["spending_pattern"]

    def test_spending_pattern_total_must_exceed_threshold(self, settings):
        earlier = [_txn("700"), _txn("700")]
        new = _txn("600")
        assert transaction_alerts(new, earlier, settings) == []

    def test_spending_pattern_ignores_other_categories(self, settings):
        earlier = [_txn("900", category="rent"), _txn("900", category="rent")]
        assert transaction_alerts(_txn("500"), earlier, settings) == []

    def test_new_transaction_is_not_counted_twice(self, settings):
        new = _txn("900")
        earlier = [_txn("900"), new]
        assert transaction_alerts(new, earlier, settings) == []

    def test_saving_streak(self, settings):
        income = _txn("500", TransactionType.INCOME, "salary")
        [candidate] = transaction_alerts(income, [_txn("300")], settings)
        assert candidate.type == "saving_streak"
        assert candidate.data == {"days": 30}

    def test_no_streak_when_expenses_are_high(self, settings):
        income = _txn("500", TransactionType.INCOME, "salary")
        assert transaction_alerts(income, [_txn("350")], settings) == []


class TestOtherTriggers:
    """Tests for monthly summary, tips and shares."""

    def test_monthly_summary_only_on_last_day(self):
        current = LedgerSummary(balance=Decimal("300"))
        previous = LedgerSummary(balance=Decimal("100"))
        assert monthly_summary_alert(current, previous, NOW) is None

        last_day = datetime(2024, 5, 31, 20, 0, tzinfo=timezone.utc)
        candidate = monthly_summary_alert(current, previous, last_day, WALLET)
        assert candidate.data == {"saved_amount": "300.00", "comparison": 1, "month": "2024-05"}

    def test_monthly_summary_worse_month(self):
        last_day = datetime(2024, 5, 31, tzinfo=timezone.utc)
        candidate = monthly_summary_alert(
            LedgerSummary(balance=Decimal("50")), LedgerSummary(balance=Decimal("50")), last_day
        )
        assert candidate.data["comparison"] == -1

    def test_monthly_summary_positive_but_below_last_month(self):
        last_day = datetime(2024, 5, 31, tzinfo=timezone.utc)
        candidate = monthly_summary_alert(
            LedgerSummary(balance=Decimal("200")), LedgerSummary(balance=Decimal("350")), last_day
        )
        assert candidate.data["saved_amount"] == "200.00"
        assert candidate.data["comparison"] == -1

    def test_monthly_summary_loss_after_loss(self):
        last_day = datetime(2024, 5, 31, tzinfo=timezone.utc)
        candidate = monthly_summary_alert(
            LedgerSummary(balance=Decimal("-20")), LedgerSummary(balance=Decimal("-80")), last_day
        )
        assert candidate.data["comparison"] == 1

    def test_tip_is_stable_within_a_day(self):
        morning = saving_tip_alert(NOW)
        evening = saving_tip_alert(NOW.replace(hour=22))
        assert morning.data == evening.data
        assert morning.data["message"] in SAVING_TIPS

    def test_share_alert_payload(self):
        share_id = uuid4()
        candidate = share_alert(share_id, "pending", "Robin", WALLET)
        assert candidate.type == "share_invite"
        assert candidate.data == {"share_id": str(share_id), "status": "pending", "sender_name": "Robin"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
