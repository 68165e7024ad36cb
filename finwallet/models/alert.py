"""
Alert Models

An Alert is the persisted form of a notification. It is created only by
the alert pipeline (rules -> dedup gate -> dispatcher), mutated only to
flip `read`, and never deleted in normal operation.
"""

from enum import Enum
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finwallet.models.ledger import UtcDatetime, utc_now


class AlertType(str, Enum):
    """
    The closed set of notification types.

    Adding a member here without a matching template in
    `finwallet.alerts.rules` fails at import time.
    """
    SHARE_INVITE = "share_invite"
    SAVING_TIP = "saving_tip"
    BUDGET_WARNING = "budget_warning"
    BUDGET_EXCEEDED = "budget_exceeded"
    GOAL_MILESTONE = "goal_milestone"
    GOAL_ACHIEVED = "goal_achieved"
    SPENDING_PATTERN = "spending_pattern"
    SAVING_STREAK = "saving_streak"
    TRANSACTION_LARGE = "transaction_large"
    MONTHLY_SUMMARY = "monthly_summary"

    @classmethod
    def parse(cls, value: Union["AlertType", str]) -> Optional["AlertType"]:
        """Return the matching member, or None for an unknown type."""
        try:
            return cls(value)
        except ValueError:
            return None


class AlertContent(BaseModel):
    """User-facing text produced by the rule engine."""

    title: str
    message: str
    icon: str


class AlertCandidate(BaseModel):
    """
    A proposed notification, before rendering and deduplication.

    Produced by the triggers; `data` must be JSON-serializable so the
    fingerprint is stable.
    """

    type: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    wallet_id: Optional[UUID] = Field(
        default=None,
        description="Target wallet; defaults to the session's current wallet"
    )


class Alert(BaseModel):
    """A persisted notification."""

    id: UUID = Field(default_factory=uuid4)
    type: str = Field(
        ...,
        description="An AlertType value, or an unknown type rendered with the fallback"
    )
    title: str
    message: str
    icon: str = ""
    created_at: UtcDatetime = Field(default_factory=utc_now)
    read: bool = False
    wallet_id: UUID
    user_id: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    fingerprint: str = Field(..., min_length=1)
