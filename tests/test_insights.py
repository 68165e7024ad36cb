"""Tests for month-over-month category trends."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finwallet.insights import TrendDirection, analyze_category_trends
from finwallet.models.ledger import Budget, Transaction, TransactionType


WALLET = uuid4()
NOW = datetime(2024, 5, 14, 10, 0, tzinfo=timezone.utc)
LAST_MONTH = datetime(2024, 4, 10, 10, 0, tzinfo=timezone.utc)


def _expense(amount, category, date=NOW, kind=TransactionType.EXPENSE):
    return Transaction(
        amount=Decimal(amount),
        type=kind,
        category=category,
        date=date,
        wallet_id=WALLET,
        user_id="user-1",
    )


class TestCategoryTrends:
    """Tests for analyze_category_trends."""

    def test_change_and_order(self):
        transactions = [
            _expense("100", "food", LAST_MONTH),
            _expense("130", "food"),
            _expense("200", "rent", LAST_MONTH),
            _expense("100", "rent"),
        ]
        trends = analyze_category_trends(transactions, [], NOW)

        assert [t.category for t in trends] == ["rent", "food"]
        assert trends[0].percentage_change == Decimal("-50")
        assert trends[1].percentage_change == Decimal("30")

    def test_new_category_counts_as_full_increase(self):
        [trend] = analyze_category_trends([_expense("40", "games")], [], NOW)
        assert trend.previous_amount == 0
        assert trend.percentage_change == Decimal("100")

    def test_income_is_ignored(self):
        transactions = [_expense("900", "salary", kind=TransactionType.INCOME)]
        assert analyze_category_trends(transactions, [], NOW) == []

    def test_older_months_are_ignored(self):
        march = datetime(2024, 3, 5, tzinfo=timezone.utc)
        assert analyze_category_trends([_expense("50", "food", march)], [], NOW) == []


class TestSuggestions:
    """Tests for the advice attached to a trend."""

    def test_increase_with_budget(self):
        budgets = [Budget(category="food", limit=Decimal("300"), wallet_id=WALLET)]
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("150", "food")], budgets, NOW
        )
        suggestion = trend.suggestion()
        assert suggestion.direction == TrendDirection.UP
        assert "went up 50%" in suggestion.message
        assert "reviewing your monthly limit" in suggestion.message

    def test_increase_without_budget(self):
        [trend] = analyze_category_trends([_expense("10", "games")], [], NOW)
        assert "setting a monthly limit" in trend.suggestion().message

    def test_decrease(self):
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("60", "food")], [], NOW
        )
        suggestion = trend.suggestion()
        assert suggestion.direction == TrendDirection.DOWN
        assert "by 40%" in suggestion.message

    def test_small_change_without_budget(self):
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("110", "food")], [], NOW
        )
        assert trend.suggestion().direction == TrendDirection.NO_BUDGET

    def test_small_change_with_budget_is_quiet(self):
        budgets = [Budget(category="food", limit=Decimal("300"), wallet_id=WALLET)]
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("110", "food")], budgets, NOW
        )
        assert trend.suggestion() is None

    def test_custom_threshold(self):
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("110", "food")], [], NOW
        )
        assert trend.suggestion(Decimal("5")).direction == TrendDirection.UP

    def test_threshold_travels_with_the_trend(self):
        [trend] = analyze_category_trends(
            [_expense("100", "food", LAST_MONTH), _expense("110", "food")],
            [],
            NOW,
            threshold=Decimal("5"),
        )
        assert trend.threshold == Decimal("5")
        assert trend.suggestion().direction == TrendDirection.UP
        assert trend.suggestion(Decimal("50")).direction == TrendDirection.NO_BUDGET


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
