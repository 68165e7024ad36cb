"""
In-Memory Storage Implementation

A single object implementing every collection interface, backed by dicts.
Used for tests and local runs without a remote store.

Records are copied on the way in and on the way out so callers can never
mutate stored state by holding a reference, which is how a remote document
store behaves too.

`available` can be switched off to simulate an unreachable backend: every
call then raises ConnectionError.
"""

from datetime import datetime
from typing import Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel

from finwallet.models.alert import Alert
from finwallet.models.audit import AuditEvent
from finwallet.models.ledger import (
    Budget,
    Goal,
    ShareStatus,
    Transaction,
    TransactionType,
    Wallet,
    WalletShare,
    ensure_utc,
)
from finwallet.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    NotFoundError,
    ShareStorageInterface,
    TransactionStorageInterface,
    WalletStorageInterface,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _copy(record: ModelT) -> ModelT:
    return record.model_copy(deep=True)


class InMemoryStore(
    TransactionStorageInterface,
    GoalStorageInterface,
    BudgetStorageInterface,
    AlertStorageInterface,
    WalletStorageInterface,
    ShareStorageInterface,
    AuditStorageInterface,
):
    """Dict-backed document store."""

    supports_conditional_insert = True

    def __init__(self):
        self.available = True
        self._transactions: dict[UUID, Transaction] = {}
        self._goals: dict[UUID, Goal] = {}
        self._budgets: dict[UUID, Budget] = {}
        self._alerts: dict[UUID, Alert] = {}
        self._wallets: dict[UUID, Wallet] = {}
        self._shares: dict[UUID, WalletShare] = {}
        self._audit: list[AuditEvent] = []

    def _check(self) -> None:
        if not self.available:
            raise ConnectionError("In-memory store is marked unavailable")

    # -------------------------------------------------------------------------
    # transactions
    # -------------------------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        self._check()
        self._transactions[transaction.id] = _copy(transaction)
        return _copy(transaction)

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        self._check()
        found = self._transactions.get(transaction_id)
        return _copy(found) if found else None

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        self._check()
        return self._transactions.pop(transaction_id, None) is not None

    async def list_transactions(
        self,
        wallet_id: UUID,
        user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        self._check()
        date_from = ensure_utc(date_from) if date_from else None
        date_to = ensure_utc(date_to) if date_to else None

        results = []
        for txn in self._transactions.values():
            if txn.wallet_id != wallet_id:
                continue
            if user_id and txn.user_id != user_id:
                continue
            if date_from and txn.date < date_from:
                continue
            if date_to and txn.date > date_to:
                continue
            if transaction_type and txn.type != transaction_type:
                continue
            if category and txn.category != category:
                continue
            results.append(_copy(txn))

        results.sort(key=lambda t: t.date, reverse=True)
        return results

    # -------------------------------------------------------------------------
    # goals
    # -------------------------------------------------------------------------

    async def save_goal(self, goal: Goal) -> Goal:
        self._check()
        self._goals[goal.id] = _copy(goal)
        return _copy(goal)

    async def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        self._check()
        found = self._goals.get(goal_id)
        return _copy(found) if found else None

    async def update_goal(self, goal: Goal) -> Goal:
        self._check()
        if goal.id not in self._goals:
            raise NotFoundError(f"Goal not found: {goal.id}")
        self._goals[goal.id] = _copy(goal)
        return _copy(goal)

    async def delete_goal(self, goal_id: UUID) -> bool:
        self._check()
        return self._goals.pop(goal_id, None) is not None

    async def list_goals(
        self,
        wallet_id: UUID,
        completed: Optional[bool] = None,
    ) -> list[Goal]:
        self._check()
        return [
            _copy(goal)
            for goal in self._goals.values()
            if goal.wallet_id == wallet_id
            and (completed is None or goal.completed == completed)
        ]

    # -------------------------------------------------------------------------
    # budgets
    # -------------------------------------------------------------------------

    async def save_budget(self, budget: Budget) -> Budget:
        self._check()
        self._budgets[budget.id] = _copy(budget)
        return _copy(budget)

    async def delete_budget(self, budget_id: UUID) -> bool:
        self._check()
        return self._budgets.pop(budget_id, None) is not None

    async def list_budgets(self, wallet_id: UUID) -> list[Budget]:
        self._check()
        return [
            _copy(budget)
            for budget in self._budgets.values()
            if budget.wallet_id == wallet_id
        ]

    # -------------------------------------------------------------------------
    # alerts
    # -------------------------------------------------------------------------

    async def insert_alert(self, alert: Alert) -> Alert:
        self._check()
        self._alerts[alert.id] = _copy(alert)
        return _copy(alert)

    async def insert_if_absent(self, alert: Alert, since: datetime) -> bool:
        # No await between the check and the write: atomic on one event loop.
        self._check()
        since = ensure_utc(since)
        for existing in self._alerts.values():
            if (
                existing.user_id == alert.user_id
                and existing.wallet_id == alert.wallet_id
                and existing.fingerprint == alert.fingerprint
                and existing.created_at >= since
            ):
                return False
        self._alerts[alert.id] = _copy(alert)
        return True

    async def get_alert(self, alert_id: UUID) -> Optional[Alert]:
        self._check()
        found = self._alerts.get(alert_id)
        return _copy(found) if found else None

    async def list_alerts(
        self,
        wallet_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[Alert]:
        self._check()
        since = ensure_utc(since) if since else None

        results = []
        for alert in self._alerts.values():
            if wallet_id and alert.wallet_id != wallet_id:
                continue
            if user_id and alert.user_id != user_id:
                continue
            if since and alert.created_at < since:
                continue
            if read is not None and alert.read != read:
                continue
            results.append(_copy(alert))

        results.sort(key=lambda a: a.created_at, reverse=True)
        return results[:limit] if limit else results

    async def mark_read(self, alert_id: UUID) -> bool:
        self._check()
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False
        alert.read = True
        return True

    # -------------------------------------------------------------------------
    # wallets
    # -------------------------------------------------------------------------

    async def save_wallet(self, wallet: Wallet) -> Wallet:
        self._check()
        self._wallets[wallet.id] = _copy(wallet)
        return _copy(wallet)

    async def get_wallet(self, wallet_id: UUID) -> Optional[Wallet]:
        self._check()
        found = self._wallets.get(wallet_id)
        return _copy(found) if found else None

    async def update_wallet(self, wallet: Wallet) -> Wallet:
        self._check()
        if wallet.id not in self._wallets:
            raise NotFoundError(f"Wallet not found: {wallet.id}")
        self._wallets[wallet.id] = _copy(wallet)
        return _copy(wallet)

    async def delete_wallet(self, wallet_id: UUID) -> bool:
        self._check()
        return self._wallets.pop(wallet_id, None) is not None

    async def list_wallets(self, owner_user_id: str) -> list[Wallet]:
        self._check()
        wallets = [
            _copy(wallet)
            for wallet in self._wallets.values()
            if wallet.owner_user_id == owner_user_id
        ]
        wallets.sort(key=lambda w: w.created_at)
        return wallets

    # -------------------------------------------------------------------------
    # wallet shares
    # -------------------------------------------------------------------------

    async def save_share(self, share: WalletShare) -> WalletShare:
        self._check()
        self._shares[share.id] = _copy(share)
        return _copy(share)

    async def get_share(self, share_id: UUID) -> Optional[WalletShare]:
        self._check()
        found = self._shares.get(share_id)
        return _copy(found) if found else None

    async def update_share(self, share: WalletShare) -> WalletShare:
        self._check()
        if share.id not in self._shares:
            raise NotFoundError(f"Share not found: {share.id}")
        self._shares[share.id] = _copy(share)
        return _copy(share)

    async def delete_share(self, share_id: UUID) -> bool:
        self._check()
        return self._shares.pop(share_id, None) is not None

    async def list_shares(
        self,
        wallet_id: Optional[UUID] = None,
        grantee_email: Optional[str] = None,
        owner_user_id: Optional[str] = None,
        status: Optional[ShareStatus] = None,
    ) -> list[WalletShare]:
        self._check()
        email = grantee_email.lower() if grantee_email else None

        results = []
        for share in self._shares.values():
            if wallet_id and share.wallet_id != wallet_id:
                continue
            if email and share.grantee_email != email:
                continue
            if owner_user_id and share.owner_user_id != owner_user_id:
                continue
            if status and share.status != status:
                continue
            results.append(_copy(share))

        results.sort(key=lambda s: s.created_at)
        return results

    # -------------------------------------------------------------------------
    # audit
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self._check()
        self._audit.append(_copy(event))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        self._check()
        events = [_copy(e) for e in self._audit if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        self._check()
        events = [
            _copy(e)
            for e in self._audit
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        self._check()
        events = sorted(self._audit, key=lambda e: e.timestamp, reverse=True)
        return [_copy(e) for e in events[:limit]]
