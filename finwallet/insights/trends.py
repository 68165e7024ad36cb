"""
Spending Insights

Month-over-month comparison of expenses per category, with a suggestion
for categories that moved a lot or have no budget yet.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from finwallet.ledger.aggregator import (
    aggregate,
    in_window,
    month_window,
    previous_month_window,
)
from finwallet.models.ledger import Budget, Transaction


HUNDRED = Decimal("100")
DEFAULT_TREND_THRESHOLD = Decimal("20")


class TrendDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    NO_BUDGET = "no_budget"


class Suggestion(BaseModel):
    direction: TrendDirection
    message: str


class CategoryTrend(BaseModel):
    """Expense of one category this month vs the previous month."""

    category: str
    current_amount: Decimal
    previous_amount: Decimal
    percentage_change: Decimal
    has_budget: bool
    threshold: Decimal = Field(
        default=DEFAULT_TREND_THRESHOLD,
        description="Percentage change beyond which the trend is worth a remark"
    )

    def suggestion(self, threshold: Optional[Decimal] = None) -> Optional[Suggestion]:
        """What to tell the user about this category, if anything."""
        if threshold is None:
            threshold = self.threshold
        change = self.percentage_change.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        if self.percentage_change > threshold:
            advice = (
                "Consider reviewing your monthly limit."
                if self.has_budget
                else "How about setting a monthly limit for this category?"
            )
            return Suggestion(
                direction=TrendDirection.UP,
                message=(
                    f"Your spending on {self.category} went up {change}% "
                    f"compared to last month. {advice}"
                ),
            )
        if self.percentage_change < -threshold:
            return Suggestion(
                direction=TrendDirection.DOWN,
                message=(
                    f"Great job! You cut your spending on {self.category} by "
                    f"{abs(change)}% compared to last month."
                ),
            )
        if not self.has_budget and self.current_amount > 0:
            return Suggestion(
                direction=TrendDirection.NO_BUDGET,
                message=(
                    f"You have no budget for {self.category} yet. "
                    "Setting a limit can help keep this spending in check."
                ),
            )
        return None


def analyze_category_trends(
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    at: datetime,
    threshold: Decimal = DEFAULT_TREND_THRESHOLD,
) -> list[CategoryTrend]:
    """
    Compare expenses per category between the month of `at` and the one before.

    A category with no previous spend counts as +100%. Categories with no
    spend in either month are left out. Sorted by absolute change, largest
    first.

    Each trend carries `threshold`, which `CategoryTrend.suggestion` uses
    unless given another one.
    """
    transactions = list(transactions)
    budgeted = {budget.category for budget in budgets}

    current = aggregate(in_window(transactions, *month_window(at))).per_category_spend
    previous = aggregate(in_window(transactions, *previous_month_window(at))).per_category_spend

    trends = []
    for category in sorted(set(current) | set(previous)):
        current_amount = current.get(category, Decimal("0"))
        previous_amount = previous.get(category, Decimal("0"))
        if previous_amount == 0:
            change = HUNDRED
        else:
            change = (current_amount - previous_amount) / previous_amount * HUNDRED

        trends.append(CategoryTrend(
            category=category,
            current_amount=current_amount,
            previous_amount=previous_amount,
            percentage_change=change,
            has_budget=category in budgeted,
            threshold=threshold,
        ))

    trends.sort(key=lambda t: abs(t.percentage_change), reverse=True)
    return trends
