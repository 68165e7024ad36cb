"""
Session Context

DESIGN DECISION: There is no ambient "current user" or "current wallet".
Every engine call receives a Session describing who is acting, which wallet
is selected and what time it is. This keeps the allocation and alert
engines pure functions of their inputs and makes time controllable in tests.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finwallet.models.ledger import ensure_utc, utc_now


class Session(BaseModel):
    """Explicit per-client application state."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    user_email: str = Field(..., min_length=3)
    user_name: Optional[str] = None
    wallet_id: Optional[UUID] = Field(
        default=None,
        description="The client-side wallet selection"
    )
    clock: Callable[[], datetime] = Field(default=utc_now, exclude=True)

    @field_validator("user_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_email

    def now(self) -> datetime:
        """Current time according to this session's clock (UTC)."""
        return ensure_utc(self.clock())

    def with_wallet(self, wallet_id: Optional[UUID]) -> "Session":
        """Return a copy with a different wallet selected."""
        return self.model_copy(update={"wallet_id": wallet_id})
