"""
Audit Logger

DESIGN DECISION: Every significant action in the engine is logged.
This provides:
1. Complete traceability of the alert pipeline
2. Debugging capability when a refresh or a store write fails
3. A history of wallet and share changes per user

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the engine if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finwallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finwallet.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finwallet.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_alert_created(
        self,
        alert_id: UUID,
        alert_type: str,
        user_id: str,
        wallet_id: UUID,
        fingerprint: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.alert_created(
            alert_id=alert_id,
            alert_type=alert_type,
            user_id=user_id,
            wallet_id=wallet_id,
            fingerprint=fingerprint,
            correlation_id=correlation_id,
        ))

    async def log_alert_suppressed(
        self,
        alert_type: str,
        user_id: str,
        wallet_id: UUID,
        fingerprint: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.alert_suppressed(
            alert_type=alert_type,
            user_id=user_id,
            wallet_id=wallet_id,
            fingerprint=fingerprint,
            correlation_id=correlation_id,
        ))

    async def log_alert_failed(
        self,
        alert_type: str,
        user_id: str,
        wallet_id: Optional[UUID],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.alert_failed(
            alert_type=alert_type,
            user_id=user_id,
            wallet_id=wallet_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_alert_read(self, alert_id: UUID, user_id: str) -> None:
        await self.log(AuditEventBuilder.alert_read(alert_id, user_id))

    async def log_share_created(
        self,
        share_id: UUID,
        wallet_id: UUID,
        owner_user_id: str,
        grantee_email: str,
    ) -> None:
        await self.log(AuditEventBuilder.share_created(
            share_id=share_id,
            wallet_id=wallet_id,
            owner_user_id=owner_user_id,
            grantee_email=grantee_email,
        ))

    async def log_share_responded(
        self,
        share_id: UUID,
        wallet_id: UUID,
        user_id: str,
        status: str,
    ) -> None:
        await self.log(AuditEventBuilder.share_responded(
            share_id=share_id,
            wallet_id=wallet_id,
            user_id=user_id,
            status=status,
        ))

    async def log_share_removed(
        self,
        share_id: UUID,
        wallet_id: UUID,
        user_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.share_removed(share_id, wallet_id, user_id))

    async def log_wallet_changed(
        self,
        event_type: AuditEventType,
        wallet_id: UUID,
        user_id: str,
        name: str,
    ) -> None:
        await self.log(AuditEventBuilder.wallet_changed(
            event_type=event_type,
            wallet_id=wallet_id,
            user_id=user_id,
            name=name,
        ))

    async def log_ledger_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        user_id: str,
        wallet_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a transaction, goal or budget write."""
        await self.log(AuditEventBuilder.ledger_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            wallet_id=wallet_id,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_entity_not_found(
        self,
        entity_type: str,
        entity_id: UUID,
        user_id: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_not_found(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
        ))

    async def log_refresh_failed(
        self,
        wallet_id: UUID,
        user_id: str,
        error_message: str,
    ) -> None:
        """Log a snapshot refresh that could not read the store."""
        await self.log(AuditEventBuilder.refresh_failed(
            wallet_id=wallet_id,
            user_id=user_id,
            error_message=error_message,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
        user_id: Optional[str] = None,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
            user_id=user_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a transaction).
    Pass it through all subsequent operations, including the alerts it triggers.
    """
    return uuid4()
