"""
Notification Dispatcher

Runs the alert pipeline for one candidate:

    render (rules) → fingerprint → dedup gate → persist → toast

and exposes the read/unread transitions of the alert feed.

ERROR HANDLING:
- A suppressed duplicate is an expected outcome, not an error
- Any failure inside the pipeline degrades to "no new notification":
  `create` returns a FAILED result and never raises
- Operating on an unknown alert id is a logged no-op
"""

import asyncio
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Protocol, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from finwallet.alerts.dedup import DeduplicationGate, fingerprint
from finwallet.alerts.rules import render_alert
from finwallet.audit import AuditLogger
from finwallet.config import EngineSettings
from finwallet.models.alert import Alert, AlertCandidate, AlertType
from finwallet.services.storage import AlertStorageInterface
from finwallet.session import Session


logger = structlog.get_logger(__name__)


class DispatchOutcome(str, Enum):
    CREATED = "created"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class DispatchResult(BaseModel):
    """What happened to one candidate alert."""

    outcome: DispatchOutcome
    alert_type: str
    alert: Optional[Alert] = None
    fingerprint: Optional[str] = None
    error: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.outcome == DispatchOutcome.CREATED


class ToastSink(Protocol):
    """Receives freshly created alerts for ephemeral display."""

    def show(self, alert: Alert) -> None:
        ...


class NotificationDispatcher:
    """Creates, lists and marks alerts for a wallet feed."""

    def __init__(
        self,
        store: AlertStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        toast_sink: Optional[ToastSink] = None,
        settings: Optional[EngineSettings] = None,
        gate: Optional[DeduplicationGate] = None,
    ):
        self._store = store
        self._settings = settings or EngineSettings()
        self._audit = audit_logger or AuditLogger()
        self._toast_sink = toast_sink
        self._gate = gate or DeduplicationGate(
            store, window_hours=self._settings.dedup_window_hours
        )

    async def create(
        self,
        session: Session,
        alert_type: Union[AlertType, str],
        data: Optional[Mapping[str, Any]] = None,
        wallet_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DispatchResult:
        """
        Run the full pipeline for one alert.

        The alert goes to `wallet_id`, or to the session's selected wallet.
        """
        type_value = alert_type.value if isinstance(alert_type, AlertType) else str(alert_type)
        payload = dict(data or {})
        target_wallet = wallet_id or session.wallet_id

        if target_wallet is None:
            logger.warning("alert_without_wallet", alert_type=type_value, user_id=session.user_id)
            return DispatchResult(
                outcome=DispatchOutcome.FAILED,
                alert_type=type_value,
                error="No wallet selected",
            )

        try:
            now = session.now()
            content = render_alert(type_value, payload)
            alert = Alert(
                type=type_value,
                title=content.title,
                message=content.message,
                icon=content.icon,
                created_at=now,
                wallet_id=target_wallet,
                user_id=session.user_id,
                data=payload,
                fingerprint=fingerprint(type_value, payload, now),
            )

            admitted = await self._gate.admit(alert, now)
        except Exception as e:
            logger.error(
                "alert_dispatch_failed",
                alert_type=type_value,
                wallet_id=str(target_wallet),
                error=str(e),
            )
            await self._audit.log_alert_failed(
                alert_type=type_value,
                user_id=session.user_id,
                wallet_id=target_wallet,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return DispatchResult(
                outcome=DispatchOutcome.FAILED,
                alert_type=type_value,
                error=str(e),
            )

        if not admitted:
            await self._audit.log_alert_suppressed(
                alert_type=type_value,
                user_id=session.user_id,
                wallet_id=target_wallet,
                fingerprint=alert.fingerprint,
                correlation_id=correlation_id,
            )
            return DispatchResult(
                outcome=DispatchOutcome.SUPPRESSED,
                alert_type=type_value,
                fingerprint=alert.fingerprint,
            )

        await self._audit.log_alert_created(
            alert_id=alert.id,
            alert_type=type_value,
            user_id=session.user_id,
            wallet_id=target_wallet,
            fingerprint=alert.fingerprint,
            correlation_id=correlation_id,
        )
        await self._deliver(alert, correlation_id)

        return DispatchResult(
            outcome=DispatchOutcome.CREATED,
            alert_type=type_value,
            alert=alert,
            fingerprint=alert.fingerprint,
        )

    async def create_many(
        self,
        session: Session,
        candidates: Iterable[AlertCandidate],
        correlation_id: Optional[UUID] = None,
    ) -> list[DispatchResult]:
        """Dispatch candidates one after another, in order."""
        results = []
        for candidate in candidates:
            results.append(await self.create(
                session,
                candidate.type,
                candidate.data,
                wallet_id=candidate.wallet_id,
                correlation_id=correlation_id,
            ))
        return results

    async def _deliver(self, alert: Alert, correlation_id: Optional[UUID] = None) -> None:
        if self._toast_sink is None:
            return
        try:
            self._toast_sink.show(alert)
        except Exception as e:
            # The alert is persisted; only the ephemeral toast is lost
            logger.warning("toast_delivery_failed", alert_id=str(alert.id), error=str(e))
            await self._audit.log_error(
                "toast_delivery_failed",
                str(e),
                details={"alert_id": str(alert.id), "alert_type": alert.type},
                correlation_id=correlation_id,
            )

    async def mark_read(self, session: Session, alert_id: UUID) -> None:
        """Mark one alert read. Already-read and unknown alerts are no-ops."""
        alert = await self._store.get_alert(alert_id)
        if alert is None:
            logger.warning("alert_not_found", alert_id=str(alert_id))
            await self._audit.log_entity_not_found("alert", alert_id, session.user_id)
            return
        if alert.read:
            return

        await self._store.mark_read(alert_id)
        await self._audit.log_alert_read(alert_id, session.user_id)

    async def mark_all_read(
        self,
        session: Session,
        wallet_id: Optional[UUID] = None,
    ) -> int:
        """
        Mark every unread alert of the wallet read.

        Returns:
            Number of alerts that changed state
        """
        target_wallet = wallet_id or session.wallet_id
        if target_wallet is None:
            return 0

        unread = await self._store.list_alerts(wallet_id=target_wallet, read=False)
        await asyncio.gather(*(self._store.mark_read(alert.id) for alert in unread))
        for alert in unread:
            await self._audit.log_alert_read(alert.id, session.user_id)
        return len(unread)

    async def list_alerts(
        self,
        wallet_id: UUID,
        limit: Optional[int] = None,
    ) -> list[Alert]:
        """The wallet feed, newest first."""
        return await self._store.list_alerts(
            wallet_id=wallet_id,
            limit=limit or self._settings.alert_fetch_limit,
        )

    async def unread_count(self, wallet_id: UUID) -> int:
        """Unread alerts among the feed returned by `list_alerts`."""
        alerts = await self.list_alerts(wallet_id)
        return sum(1 for alert in alerts if not alert.read)
