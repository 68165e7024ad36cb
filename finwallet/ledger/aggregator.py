"""
Ledger Aggregator

Reduces a set of transactions to a signed balance and per-category spend.

Everything here is a pure function of its inputs: no store access, no
clock. Callers select the wallet and, for budget analysis, the month
window before aggregating.
"""

import calendar
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from pydantic import BaseModel, Field

from finwallet.models.ledger import Transaction, TransactionType, ensure_utc


class LedgerSummary(BaseModel):
    """Aggregate of a transaction set."""

    balance: Decimal = Field(
        default=Decimal("0"),
        description="Σ income − Σ expense; may be negative"
    )
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    per_category_spend: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Σ expense per category (income is not included)"
    )
    transaction_count: int = 0

    def spend_for(self, category: str) -> Decimal:
        return self.per_category_spend.get(category, Decimal("0"))


def aggregate(transactions: Iterable[Transaction]) -> LedgerSummary:
    """
    Aggregate transactions into a LedgerSummary.

    Order does not matter. An empty input yields a zero balance.
    """
    income = Decimal("0")
    expense = Decimal("0")
    per_category: dict[str, Decimal] = {}
    count = 0

    for txn in transactions:
        count += 1
        if txn.type == TransactionType.INCOME:
            income += txn.amount
        else:
            expense += txn.amount
            per_category[txn.category] = (
                per_category.get(txn.category, Decimal("0")) + txn.amount
            )

    return LedgerSummary(
        balance=income - expense,
        total_income=income,
        total_expense=expense,
        per_category_spend=per_category,
        transaction_count=count,
    )


def for_wallet(
    transactions: Iterable[Transaction],
    wallet_id: UUID,
) -> list[Transaction]:
    """Only the transactions belonging to `wallet_id`."""
    return [txn for txn in transactions if txn.wallet_id == wallet_id]


def month_window(at: datetime) -> tuple[datetime, datetime]:
    """
    The calendar month containing `at`, as an inclusive UTC range.

    Returns:
        (first instant of the month, last microsecond of the month)
    """
    at = ensure_utc(at)
    start = at.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_day = calendar.monthrange(at.year, at.month)[1]
    end = at.replace(
        day=last_day, hour=23, minute=59, second=59, microsecond=999999
    )
    return start, end


def previous_month_window(at: datetime) -> tuple[datetime, datetime]:
    """The calendar month before the one containing `at`."""
    start, _ = month_window(at)
    return month_window(start - timedelta(days=1))


def is_last_day_of_month(at: datetime) -> bool:
    at = ensure_utc(at)
    return at.day == calendar.monthrange(at.year, at.month)[1]


def in_window(
    transactions: Iterable[Transaction],
    start: datetime,
    end: datetime,
) -> list[Transaction]:
    """Transactions dated within [start, end]."""
    start, end = ensure_utc(start), ensure_utc(end)
    return [txn for txn in transactions if start <= txn.date <= end]


def monthly_summary(
    transactions: Iterable[Transaction],
    at: datetime,
) -> LedgerSummary:
    """Aggregate of the calendar month containing `at`."""
    start, end = month_window(at)
    return aggregate(in_window(transactions, start, end))
