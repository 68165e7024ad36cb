"""
Budget Threshold Monitor

Compares the current month's spend per category against budget limits.

Classification (percentage = spent / limit * 100):
- percentage >= 100        → EXCEEDED
- 80 <= percentage < 100   → WARNING
- percentage <= 30         → CONTROLLED (informational)
- anything else            → NEUTRAL

DESIGN DECISION: Several budgets for the same (wallet, category) are
additive. Their limits are summed into a single report.
"""

from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finwallet.config import EngineSettings
from finwallet.models.ledger import Budget
from finwallet.validation import require_positive


class BudgetStatus(str, Enum):
    EXCEEDED = "exceeded"
    WARNING = "warning"
    CONTROLLED = "controlled"
    NEUTRAL = "neutral"


STATUS_MESSAGES = {
    BudgetStatus.EXCEEDED: "You went over the limit! How about reviewing your spending?",
    BudgetStatus.WARNING: "Heads up! You are close to the limit.",
    BudgetStatus.CONTROLLED: "Great job! Your spending is well under control.",
    BudgetStatus.NEUTRAL: "",
}


class BudgetThresholds(BaseModel):
    """Percentage boundaries of the classification."""

    warning: Decimal = Decimal("80")
    exceeded: Decimal = Decimal("100")
    controlled: Decimal = Decimal("30")

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "BudgetThresholds":
        return cls(
            warning=settings.budget_warning_percentage,
            exceeded=settings.budget_exceeded_percentage,
            controlled=settings.budget_controlled_percentage,
        )


class BudgetReport(BaseModel):
    """Monthly state of one budgeted category."""

    wallet_id: UUID
    category: str
    limit: Decimal
    spent: Decimal
    percentage: Decimal
    status: BudgetStatus
    budget_ids: list[UUID] = Field(default_factory=list)

    @property
    def remaining(self) -> Decimal:
        """Amount left before the limit; negative once exceeded."""
        return self.limit - self.spent

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self.status]


def classify(
    percentage: Decimal,
    thresholds: Optional[BudgetThresholds] = None,
) -> BudgetStatus:
    thresholds = thresholds or BudgetThresholds()
    if percentage >= thresholds.exceeded:
        return BudgetStatus.EXCEEDED
    if percentage >= thresholds.warning:
        return BudgetStatus.WARNING
    if percentage <= thresholds.controlled:
        return BudgetStatus.CONTROLLED
    return BudgetStatus.NEUTRAL


def evaluate_budgets(
    budgets: Iterable[Budget],
    per_category_spend: Mapping[str, Decimal],
    thresholds: Optional[BudgetThresholds] = None,
) -> list[BudgetReport]:
    """
    Build one report per budgeted (wallet, category).

    Args:
        budgets: Budgets of the wallet
        per_category_spend: Expense per category for the current month
        thresholds: Classification boundaries (defaults: 80/100/30)

    Returns:
        Reports sorted by category

    Raises:
        ValidationError: If any budget limit is not positive
    """
    grouped: dict[tuple[UUID, str], list[Budget]] = {}
    for budget in budgets:
        require_positive(budget.limit, "limit", f"Limit of budget '{budget.category}'")
        grouped.setdefault((budget.wallet_id, budget.category), []).append(budget)

    reports = []
    for (wallet_id, category), members in grouped.items():
        limit = sum((b.limit for b in members), Decimal("0"))
        spent = Decimal(per_category_spend.get(category, Decimal("0")))
        percentage = spent / limit * Decimal("100")
        reports.append(BudgetReport(
            wallet_id=wallet_id,
            category=category,
            limit=limit,
            spent=spent,
            percentage=percentage,
            status=classify(percentage, thresholds),
            budget_ids=[b.id for b in members],
        ))

    reports.sort(key=lambda r: (r.category, str(r.wallet_id)))
    return reports
