"""Goal allocation package."""

from finwallet.goals.allocation import (
    AllocationResult,
    GoalProgress,
    allocate,
    crossed_milestone,
    order_goals,
)

__all__ = [
    "AllocationResult",
    "GoalProgress",
    "allocate",
    "crossed_milestone",
    "order_goals",
]
