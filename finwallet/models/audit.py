"""
Audit Models for the wallet engine

Every state-changing action of the engine is recorded as an AuditEvent.
This provides:
1. Traceability of every alert that was emitted, suppressed or lost
2. A history of share invitations and their responses
3. Debugging information when a store refresh fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finwallet.models.ledger import UtcDatetime, utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Alert pipeline
    ALERT_CREATED = "alert_created"
    ALERT_SUPPRESSED = "alert_suppressed"
    ALERT_FAILED = "alert_failed"
    ALERT_READ = "alert_read"

    # Wallet sharing
    SHARE_CREATED = "share_created"
    SHARE_ACCEPTED = "share_accepted"
    SHARE_REJECTED = "share_rejected"
    SHARE_REMOVED = "share_removed"

    # Wallets
    WALLET_CREATED = "wallet_created"
    WALLET_RENAMED = "wallet_renamed"
    WALLET_DELETED = "wallet_deleted"

    # Ledger
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    BUDGET_SET = "budget_set"
    GOAL_CREATED = "goal_created"
    GOAL_COMPLETED = "goal_completed"

    # Failures
    REFRESH_FAILED = "refresh_failed"
    VALIDATION_FAILED = "validation_failed"
    ENTITY_NOT_FOUND = "entity_not_found"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: UtcDatetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'alert', 'share', 'goal')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Acting user"
    )
    wallet_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one transaction and its alerts)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": self.user_id,
            "wallet_id": str(self.wallet_id) if self.wallet_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.alert_created(alert, correlation_id)
        event = AuditEventBuilder.share_responded(share, user_id)
    """

    @staticmethod
    def alert_created(
        alert_id: UUID,
        alert_type: str,
        user_id: str,
        wallet_id: UUID,
        fingerprint: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_CREATED,
            entity_type="alert",
            entity_id=alert_id,
            user_id=user_id,
            wallet_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Alert created: {alert_type}",
            details={
                "alert_type": alert_type,
                "fingerprint": fingerprint,
            },
        )

    @staticmethod
    def alert_suppressed(
        alert_type: str,
        user_id: str,
        wallet_id: UUID,
        fingerprint: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_SUPPRESSED,
            entity_type="alert",
            user_id=user_id,
            wallet_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Duplicate alert suppressed: {alert_type}",
            details={
                "alert_type": alert_type,
                "fingerprint": fingerprint,
            },
        )

    @staticmethod
    def alert_failed(
        alert_type: str,
        user_id: str,
        wallet_id: Optional[UUID],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="alert",
            user_id=user_id,
            wallet_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Alert could not be delivered: {alert_type}",
            error_message=error_message,
            details={"alert_type": alert_type},
        )

    @staticmethod
    def alert_read(alert_id: UUID, user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_READ,
            entity_type="alert",
            entity_id=alert_id,
            user_id=user_id,
            description="Alert marked as read",
            is_user_action=True,
        )

    @staticmethod
    def share_created(
        share_id: UUID,
        wallet_id: UUID,
        owner_user_id: str,
        grantee_email: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_CREATED,
            entity_type="share",
            entity_id=share_id,
            user_id=owner_user_id,
            wallet_id=wallet_id,
            description=f"Wallet shared with {grantee_email}",
            details={"grantee_email": grantee_email},
            is_user_action=True,
        )

    @staticmethod
    def share_responded(
        share_id: UUID,
        wallet_id: UUID,
        user_id: str,
        status: str,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.SHARE_ACCEPTED
            if status == "accepted"
            else AuditEventType.SHARE_REJECTED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="share",
            entity_id=share_id,
            user_id=user_id,
            wallet_id=wallet_id,
            description=f"Share invitation {status}",
            details={"status": status},
            is_user_action=True,
        )

    @staticmethod
    def share_removed(share_id: UUID, wallet_id: UUID, user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_REMOVED,
            entity_type="share",
            entity_id=share_id,
            user_id=user_id,
            wallet_id=wallet_id,
            description="Wallet share removed",
            is_user_action=True,
        )

    @staticmethod
    def wallet_changed(
        event_type: AuditEventType,
        wallet_id: UUID,
        user_id: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="wallet",
            entity_id=wallet_id,
            user_id=user_id,
            wallet_id=wallet_id,
            description=f"Wallet {event_type.value.split('_', 1)[1]}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def ledger_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        user_id: str,
        wallet_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            wallet_id=wallet_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {event_type.value.split('_', 1)[1]}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def entity_not_found(
        entity_type: str,
        entity_id: UUID,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type.capitalize()} not found: {entity_id}",
        )

    @staticmethod
    def refresh_failed(
        wallet_id: UUID,
        user_id: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REFRESH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="wallet",
            entity_id=wallet_id,
            user_id=user_id,
            wallet_id=wallet_id,
            description="Wallet snapshot refresh failed",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            user_id=user_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
