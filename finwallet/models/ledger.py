"""
Core Data Models for the wallet engine

These models mirror the documents held in the external store:
transactions, wallets, wallet shares, goals and budgets.

DESIGN DECISION: Goal targets and budget limits are NOT constrained at the
model level. Records arrive from a store we do not own, and a malformed one
must surface as a ValidationError from the engine that consumes it rather
than as a parse failure for the whole snapshot.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so that comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to the wallet balance."""
    INCOME = "income"
    EXPENSE = "expense"


class GoalPriority(int, Enum):
    """
    Goal urgency.

    Lower value = more urgent. Allocation funds HIGH goals first.
    """
    HIGH = 1
    MEDIUM = 2
    LOW = 3


class ShareStatus(str, Enum):
    """Lifecycle of a wallet share invitation."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


GOALS_CATEGORY = "goals"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry in a wallet.

    Immutable once settled, except for explicit edit/delete by the
    wallet owner or an accepted shared-wallet member.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; the sign comes from `type`"
    )
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=50)
    date: UtcDatetime = Field(default_factory=utc_now)
    description: str = Field(default="", max_length=200)
    wallet_id: UUID
    user_id: str = Field(..., min_length=1)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign it contributes to the balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Wallet(BaseModel):
    """A container of transactions, goals and budgets owned by one user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    owner_user_id: str = Field(..., min_length=1)
    created_at: UtcDatetime = Field(default_factory=utc_now)


class WalletShare(BaseModel):
    """
    Grant of a wallet to another user, identified by email.

    Gives read/write access only once `status` is ACCEPTED.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    wallet_id: UUID
    owner_user_id: str = Field(..., min_length=1)
    owner_name: Optional[str] = Field(default=None, max_length=100)
    grantee_email: str = Field(..., min_length=3, max_length=254)
    status: ShareStatus = ShareStatus.PENDING
    created_at: UtcDatetime = Field(default_factory=utc_now)
    responded_at: Optional[UtcDatetime] = None

    @field_validator("grantee_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are compared case-insensitively."""
        return v.lower()

    @property
    def is_active(self) -> bool:
        """Pending and accepted shares both block a second invite."""
        return self.status != ShareStatus.REJECTED


class Goal(BaseModel):
    """
    A savings goal funded from the wallet balance.

    `completed` flips to True exactly once. Progress is never stored:
    it is recomputed from the live balance by the allocation engine.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(
        ...,
        description="Must be positive; checked by the allocation engine"
    )
    priority: GoalPriority = GoalPriority.MEDIUM
    deadline: Optional[UtcDatetime] = None
    wallet_id: UUID
    user_id: Optional[str] = None
    completed: bool = False
    completed_at: Optional[UtcDatetime] = None


class Budget(BaseModel):
    """Monthly spending limit for one category of a wallet."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    category: str = Field(..., min_length=1, max_length=50)
    limit: Decimal = Field(
        ...,
        description="Must be positive; checked by the budget monitor"
    )
    wallet_id: UUID
    user_id: Optional[str] = None
