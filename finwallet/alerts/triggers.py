"""
Alert Triggers

Turn engine outputs and domain events into AlertCandidates. Nothing here
renders text, touches the store or deduplicates; the dispatcher does that.

Payloads hold only JSON-friendly values (str, int) so their fingerprint is
stable across runs and backends.
"""

from datetime import datetime
from decimal import ROUND_DOWN, Decimal
from typing import Iterable, Optional
from uuid import UUID

from finwallet.budgets.monitor import BudgetReport, BudgetStatus
from finwallet.config import EngineSettings
from finwallet.goals.allocation import AllocationResult, crossed_milestone
from finwallet.ledger.aggregator import LedgerSummary, is_last_day_of_month
from finwallet.models.alert import AlertCandidate, AlertType
from finwallet.models.ledger import Transaction, TransactionType, ensure_utc


SAVING_TIPS = [
    "How about a virtual piggy bank? Round up your expenses and save the difference! 🐷",
    "Ever tried a weekly 'No Spend Day'? Pick one day to spend nothing at all! 💪",
    "Write down ALL your expenses for a week. You will be surprised! 📝",
    "Compare prices online before buying. It can save a lot! 🔍",
    "Plan your meals for the week. Less waste, more savings! 🥗",
]

HUNDRED = Decimal("100")


def _whole_percent(value: Decimal) -> int:
    """Truncate so that a 99.99% warning never reads as 100%."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_DOWN))


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def budget_alerts(reports: Iterable[BudgetReport], at: datetime) -> list[AlertCandidate]:
    """budget_warning / budget_exceeded for reports in those states."""
    month = ensure_utc(at).strftime("%Y-%m")
    candidates = []
    for report in reports:
        if report.status == BudgetStatus.WARNING:
            candidates.append(AlertCandidate(
                type=AlertType.BUDGET_WARNING.value,
                data={
                    "category": report.category,
                    "percentage": _whole_percent(report.percentage),
                },
                wallet_id=report.wallet_id,
            ))
        elif report.status == BudgetStatus.EXCEEDED:
            candidates.append(AlertCandidate(
                type=AlertType.BUDGET_EXCEEDED.value,
                data={
                    "category": report.category,
                    "percentage": _whole_percent(report.percentage),
                    "month": month,
                },
                wallet_id=report.wallet_id,
            ))
    return candidates


def goal_alerts(
    previous: Optional[AllocationResult],
    current: AllocationResult,
    milestones: list[int],
    wallet_id: Optional[UUID] = None,
) -> list[AlertCandidate]:
    """
    Compare two allocation samples of the same wallet.

    At most one alert per goal: goal_achieved when progress reached 100,
    otherwise goal_milestone for the highest milestone crossed. The first
    sample (previous is None) and goals absent from the previous sample
    are baselines and emit nothing.
    """
    if previous is None:
        return []

    candidates = []
    for goal in current.goals:
        before = previous.get(goal.goal_id)
        if before is None:
            continue

        if before.progress < HUNDRED <= goal.progress:
            candidates.append(AlertCandidate(
                type=AlertType.GOAL_ACHIEVED.value,
                data={"goal_id": str(goal.goal_id), "goal_name": goal.name},
                wallet_id=wallet_id,
            ))
            continue

        milestone = crossed_milestone(before.progress, goal.progress, milestones)
        if milestone is not None:
            candidates.append(AlertCandidate(
                type=AlertType.GOAL_MILESTONE.value,
                data={
                    "goal_id": str(goal.goal_id),
                    "goal_name": goal.name,
                    "percentage": milestone,
                },
                wallet_id=wallet_id,
            ))
    return candidates


def transaction_alerts(
    transaction: Transaction,
    month_transactions: Iterable[Transaction],
    settings: EngineSettings,
) -> list[AlertCandidate]:
    """
    Ingestion rules for a newly recorded transaction.

    Args:
        transaction: The transaction just recorded
        month_transactions: Transactions of the same wallet in the current
            month; the new transaction is counted even if absent here
        settings: Thresholds

    Rules:
        transaction_large: amount >= large threshold
        spending_pattern: expense whose category has at least
            `spending_pattern_min_count` expenses this month totalling more
            than `spending_pattern_threshold`
        saving_streak: income when this month's expenses stay below
            amount * `saving_streak_ratio`
    """
    observed = {txn.id: txn for txn in month_transactions}
    observed[transaction.id] = transaction
    candidates = []

    if transaction.amount >= settings.large_transaction_threshold:
        candidates.append(AlertCandidate(
            type=AlertType.TRANSACTION_LARGE.value,
            data={"type": transaction.type.value, "amount": _money(transaction.amount)},
            wallet_id=transaction.wallet_id,
        ))

    if transaction.type == TransactionType.EXPENSE:
        same_category = [
            txn for txn in observed.values()
            if txn.type == TransactionType.EXPENSE
            and txn.category == transaction.category
        ]
        total = sum((txn.amount for txn in same_category), Decimal("0"))
        if (
            len(same_category) >= settings.spending_pattern_min_count
            and total > settings.spending_pattern_threshold
        ):
            candidates.append(AlertCandidate(
                type=AlertType.SPENDING_PATTERN.value,
                data={"category": transaction.category},
                wallet_id=transaction.wallet_id,
            ))
    else:
        month_expenses = sum(
            (txn.amount for txn in observed.values() if txn.type == TransactionType.EXPENSE),
            Decimal("0"),
        )
        if month_expenses < transaction.amount * settings.saving_streak_ratio:
            candidates.append(AlertCandidate(
                type=AlertType.SAVING_STREAK.value,
                data={"days": settings.saving_streak_days},
                wallet_id=transaction.wallet_id,
            ))

    return candidates


def monthly_summary_alert(
    current_month: LedgerSummary,
    previous_month: LedgerSummary,
    at: datetime,
    wallet_id: Optional[UUID] = None,
) -> Optional[AlertCandidate]:
    """
    monthly_summary on the last day of the month.

    `comparison` is 1 when this month saved more than the previous one,
    -1 otherwise. A positive saving that falls short of last month is -1.
    """
    if not is_last_day_of_month(at):
        return None

    saved = current_month.balance
    return AlertCandidate(
        type=AlertType.MONTHLY_SUMMARY.value,
        data={
            "saved_amount": _money(saved),
            "comparison": 1 if saved > previous_month.balance else -1,
            "month": ensure_utc(at).strftime("%Y-%m"),
        },
        wallet_id=wallet_id,
    )


def saving_tip_alert(at: datetime, wallet_id: Optional[UUID] = None) -> AlertCandidate:
    """The tip of the day; the same day always yields the same tip."""
    index = ensure_utc(at).date().toordinal() % len(SAVING_TIPS)
    return AlertCandidate(
        type=AlertType.SAVING_TIP.value,
        data={"tip_index": index, "message": SAVING_TIPS[index]},
        wallet_id=wallet_id,
    )


def share_alert(
    share_id: UUID,
    status: str,
    sender_name: str,
    wallet_id: UUID,
) -> AlertCandidate:
    """share_invite on share creation (pending) or response."""
    return AlertCandidate(
        type=AlertType.SHARE_INVITE.value,
        data={
            "share_id": str(share_id),
            "status": status,
            "sender_name": sender_name,
        },
        wallet_id=wallet_id,
    )
