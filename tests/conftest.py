"""
Shared fixtures.

Everything runs against InMemoryStore with a controllable clock.
No network access in tests.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from finwallet.alerts.dispatcher import NotificationDispatcher
from finwallet.audit import AuditLogger
from finwallet.config import EngineSettings
from finwallet.models.alert import Alert
from finwallet.models.ledger import Wallet
from finwallet.orchestrator import WalletEngine
from finwallet.services.storage import InMemoryStore
from finwallet.session import Session
from finwallet.wallets import WalletSharingService


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)

    def set(self, value: datetime) -> None:
        self.current = value


class RecordingToastSink:
    """Keeps every alert shown to the user."""

    def __init__(self):
        self.shown: list[Alert] = []

    def show(self, alert: Alert) -> None:
        self.shown.append(alert)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 14, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest_asyncio.fixture
async def wallet_id(store):
    """A wallet owned by the default session user."""
    wallet = await store.save_wallet(Wallet(name="Main Wallet", owner_user_id="user-1"))
    return wallet.id


@pytest.fixture
def session(clock, wallet_id):
    return Session(
        user_id="user-1",
        user_email="owner@example.com",
        user_name="Robin",
        wallet_id=wallet_id,
        clock=clock,
    )


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def toasts():
    return RecordingToastSink()


@pytest.fixture
def audit_logger(store):
    return AuditLogger(store)


@pytest.fixture
def dispatcher(store, audit_logger, toasts, settings):
    return NotificationDispatcher(
        store,
        audit_logger=audit_logger,
        toast_sink=toasts,
        settings=settings,
    )


@pytest.fixture
def sharing(store, dispatcher, audit_logger):
    return WalletSharingService(store, store, dispatcher, audit_logger)


@pytest.fixture
def engine(store, dispatcher, sharing, audit_logger, settings):
    return WalletEngine(
        transactions=store,
        goals=store,
        budgets=store,
        dispatcher=dispatcher,
        access=sharing,
        audit_logger=audit_logger,
        settings=settings,
    )
