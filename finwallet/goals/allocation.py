"""
Goal Allocation Engine

Distributes a wallet balance over its active goals with a priority-ordered
greedy waterfall and reports each goal's completion percentage.

ALGORITHM:
1. Order goals by (priority, target_amount), most urgent and cheapest first.
   The goal id breaks remaining ties so the order is total.
2. Walk the ordered goals with `remaining = balance`:
   - remaining <= 0: the goal gets nothing
   - otherwise the goal gets min(remaining, target)
   - a fully funded goal consumes its target; a partially funded goal
     consumes everything that is left
3. progress = allocated / target * 100

DESIGN DECISION: Allocation is never persisted. It is recomputed from the
live balance and the live goal list every time either changes, so a stale
read can only produce a stale render.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finwallet.models.ledger import Goal, GoalPriority
from finwallet.validation import require_positive


ZERO = Decimal("0")
HUNDRED = Decimal("100")


class GoalProgress(BaseModel):
    """Funding state of a single goal."""

    goal_id: UUID
    name: str
    priority: GoalPriority
    target_amount: Decimal
    allocated: Decimal = Field(..., ge=0)
    progress: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Completion percentage, unrounded"
    )

    @property
    def is_funded(self) -> bool:
        return self.allocated >= self.target_amount


class AllocationResult(BaseModel):
    """Output of one allocation run, goals in allocation order."""

    balance: Decimal
    goals: list[GoalProgress] = Field(default_factory=list)

    @property
    def progress_map(self) -> dict[UUID, Decimal]:
        """goal id → progress percentage."""
        return {g.goal_id: g.progress for g in self.goals}

    @property
    def total_allocated(self) -> Decimal:
        return sum((g.allocated for g in self.goals), ZERO)

    @property
    def unallocated(self) -> Decimal:
        """Balance left after every goal has been funded."""
        return max(self.balance, ZERO) - self.total_allocated

    def get(self, goal_id: UUID) -> Optional[GoalProgress]:
        for goal in self.goals:
            if goal.goal_id == goal_id:
                return goal
        return None


def order_goals(goals: Iterable[Goal]) -> list[Goal]:
    """Goals in funding order: priority, then target, then id."""
    return sorted(
        goals,
        key=lambda g: (int(g.priority), g.target_amount, str(g.id)),
    )


def allocate(balance: Decimal, goals: Iterable[Goal]) -> AllocationResult:
    """
    Run the waterfall over the active goals.

    Completed goals are ignored.

    Raises:
        ValidationError: If an active goal has a non-positive target
    """
    active = [goal for goal in goals if not goal.completed]
    for goal in active:
        require_positive(goal.target_amount, "target_amount", f"Target of goal '{goal.name}'")

    remaining = Decimal(balance)
    results = []

    for goal in order_goals(active):
        target = goal.target_amount
        if remaining <= 0:
            allocated = ZERO
        else:
            allocated = min(remaining, target)
            if allocated >= target:
                remaining -= target
            else:
                remaining = ZERO

        results.append(GoalProgress(
            goal_id=goal.id,
            name=goal.name,
            priority=goal.priority,
            target_amount=target,
            allocated=allocated,
            progress=allocated / target * HUNDRED,
        ))

    return AllocationResult(balance=Decimal(balance), goals=results)


def crossed_milestone(
    previous: Decimal,
    current: Decimal,
    milestones: list[int],
) -> Optional[int]:
    """
    Highest milestone passed when progress moves from `previous` to `current`.

    Returns None when progress did not increase past any milestone.
    """
    crossed = [m for m in milestones if previous < m <= current]
    return max(crossed) if crossed else None
