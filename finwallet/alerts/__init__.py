"""
Alert Pipeline Package

rules (templates) → triggers (candidates) → dedup (gate) → dispatcher.
"""

from finwallet.alerts.dedup import DeduplicationGate, fingerprint
from finwallet.alerts.dispatcher import (
    DispatchOutcome,
    DispatchResult,
    NotificationDispatcher,
    ToastSink,
)
from finwallet.alerts.rules import FALLBACK, TEMPLATES, render_alert

__all__ = [
    "DeduplicationGate",
    "DispatchOutcome",
    "DispatchResult",
    "FALLBACK",
    "NotificationDispatcher",
    "TEMPLATES",
    "ToastSink",
    "fingerprint",
    "render_alert",
]
