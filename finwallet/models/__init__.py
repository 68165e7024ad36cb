"""
Data Models Package

All records flowing through the engine (ledger documents, alerts and
audit events) are Pydantic models defined here.
"""

from finwallet.models.ledger import (
    GOALS_CATEGORY,
    Budget,
    Goal,
    GoalPriority,
    ShareStatus,
    Transaction,
    TransactionType,
    UtcDatetime,
    Wallet,
    WalletShare,
    ensure_utc,
    utc_now,
)
from finwallet.models.alert import (
    Alert,
    AlertCandidate,
    AlertContent,
    AlertType,
)
from finwallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "GOALS_CATEGORY",
    "Budget",
    "Goal",
    "GoalPriority",
    "ShareStatus",
    "Transaction",
    "TransactionType",
    "UtcDatetime",
    "Wallet",
    "WalletShare",
    "ensure_utc",
    "utc_now",
    # Alert models
    "Alert",
    "AlertCandidate",
    "AlertContent",
    "AlertType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
