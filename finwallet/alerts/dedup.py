"""
Deduplication Gate

Suppresses an alert when an identical one was emitted for the same user
and wallet within the rolling window (24 hours by default).

Fingerprint = sha256 of the canonical JSON of
    {type, data, date of emission}
The calendar DATE (not the timestamp) is part of it: the same alert may
fire again on another day but not twice on the same day.

DESIGN DECISION: When the store supports an atomic conditional insert, the
check and the write are one operation. Otherwise the gate falls back to
query-then-insert, which two concurrent emitters can both pass. That race
is accepted as best effort.
"""

import hashlib
import json
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional
from uuid import UUID

import structlog

from finwallet.models.alert import Alert
from finwallet.models.ledger import ensure_utc
from finwallet.services.storage import AlertStorageInterface


logger = structlog.get_logger(__name__)


def fingerprint(
    alert_type: str,
    data: Mapping[str, Any],
    emitted_at: datetime,
) -> str:
    """Stable identity of an alert for one calendar day (UTC)."""
    payload = {
        "type": alert_type,
        "data": dict(data),
        "date": ensure_utc(emitted_at).date().isoformat(),
    }
    canonical = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class DeduplicationGate:
    """Decides whether a rendered alert may be persisted."""

    def __init__(
        self,
        store: AlertStorageInterface,
        window_hours: int = 24,
    ):
        self._store = store
        self._window = timedelta(hours=window_hours)

    def window_start(self, now: datetime) -> datetime:
        return ensure_utc(now) - self._window

    async def is_duplicate(
        self,
        user_id: str,
        wallet_id: UUID,
        alert_fingerprint: str,
        now: datetime,
    ) -> bool:
        """True if a matching alert exists inside the window."""
        recent = await self._store.list_alerts(
            wallet_id=wallet_id,
            user_id=user_id,
            since=self.window_start(now),
        )
        return any(alert.fingerprint == alert_fingerprint for alert in recent)

    async def admit(self, alert: Alert, now: Optional[datetime] = None) -> bool:
        """
        Persist `alert` unless it is a duplicate.

        Returns:
            True if the alert was written, False if it was suppressed

        Raises:
            StorageError: If the store fails
        """
        now = now or alert.created_at
        since = self.window_start(now)

        if self._store.supports_conditional_insert:
            return await self._store.insert_if_absent(alert, since)

        if await self.is_duplicate(alert.user_id, alert.wallet_id, alert.fingerprint, now):
            return False

        await self._store.insert_alert(alert)
        logger.debug(
            "alert_inserted_without_conditional_write",
            alert_id=str(alert.id),
            fingerprint=alert.fingerprint,
        )
        return True
