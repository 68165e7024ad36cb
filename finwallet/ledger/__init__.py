"""Ledger aggregation package."""

from finwallet.ledger.aggregator import (
    LedgerSummary,
    aggregate,
    for_wallet,
    in_window,
    month_window,
    monthly_summary,
    previous_month_window,
)

__all__ = [
    "LedgerSummary",
    "aggregate",
    "for_wallet",
    "in_window",
    "month_window",
    "monthly_summary",
    "previous_month_window",
]
