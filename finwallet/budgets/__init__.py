"""Budget monitoring package."""

from finwallet.budgets.monitor import (
    BudgetReport,
    BudgetStatus,
    BudgetThresholds,
    classify,
    evaluate_budgets,
)

__all__ = [
    "BudgetReport",
    "BudgetStatus",
    "BudgetThresholds",
    "classify",
    "evaluate_budgets",
]
