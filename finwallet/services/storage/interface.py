"""
Abstract Storage Interface

DESIGN DECISION: The engine treats persistence as an opaque, queryable
document store. We define one abstract interface per collection so that:
1. Google Sheets (or any managed document database) can back the engine
2. In-memory storage can be used for testing
3. Business logic stays decoupled from the storage implementation

All methods are async: store access is non-blocking I/O, computation on
the results is synchronous. The engine never retries; a failure that
survives the backend's own retries surfaces as a StorageError.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

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
)


class TransactionStorageInterface(ABC):
    """The `transactions` collection."""

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert or replace a transaction.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Retrieve a transaction by ID, None if absent."""
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID) -> bool:
        """Delete a transaction. Returns False when it did not exist."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        wallet_id: UUID,
        user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        """
        List transactions of a wallet with optional filters.

        Args:
            wallet_id: Wallet to read (required)
            user_id: Only transactions recorded by this user
            date_from: Transactions on or after this instant
            date_to: Transactions on or before this instant
            transaction_type: Only income or only expense
            category: Exact category match

        Returns:
            Matching transactions, newest first
        """
        pass


class GoalStorageInterface(ABC):
    """The `goals` collection."""

    @abstractmethod
    async def save_goal(self, goal: Goal) -> Goal:
        pass

    @abstractmethod
    async def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        pass

    @abstractmethod
    async def update_goal(self, goal: Goal) -> Goal:
        """
        Replace an existing goal.

        Raises:
            NotFoundError: If the goal doesn't exist
        """
        pass

    @abstractmethod
    async def delete_goal(self, goal_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_goals(
        self,
        wallet_id: UUID,
        completed: Optional[bool] = None,
    ) -> list[Goal]:
        """List goals of a wallet, optionally filtered by completion."""
        pass


class BudgetStorageInterface(ABC):
    """The `budgets` collection."""

    @abstractmethod
    async def save_budget(self, budget: Budget) -> Budget:
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_budgets(self, wallet_id: UUID) -> list[Budget]:
        pass


class AlertStorageInterface(ABC):
    """
    The `alerts` collection.

    Alerts are inserted and later only have their `read` flag flipped.

    Backends that can perform an atomic conditional write set
    `supports_conditional_insert` and implement `insert_if_absent`.
    """

    supports_conditional_insert: bool = False

    @abstractmethod
    async def insert_alert(self, alert: Alert) -> Alert:
        pass

    async def insert_if_absent(
        self,
        alert: Alert,
        since: datetime,
    ) -> bool:
        """
        Atomically insert `alert` unless an alert with the same
        (user_id, wallet_id, fingerprint) was created at or after `since`.

        Returns:
            True if inserted, False if a matching alert already exists
        """
        raise NotImplementedError(
            f"{type(self).__name__} does not support conditional inserts"
        )

    @abstractmethod
    async def get_alert(self, alert_id: UUID) -> Optional[Alert]:
        pass

    @abstractmethod
    async def list_alerts(
        self,
        wallet_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[Alert]:
        """
        List alerts, newest first.

        Args:
            wallet_id: Only alerts of this wallet
            user_id: Only alerts created by this user
            since: Only alerts created at or after this instant
            read: Filter by read flag
            limit: Maximum number of results
        """
        pass

    @abstractmethod
    async def mark_read(self, alert_id: UUID) -> bool:
        """
        Set `read=True`.

        Returns:
            False if the alert does not exist
        """
        pass


class WalletStorageInterface(ABC):
    """The `wallets` collection."""

    @abstractmethod
    async def save_wallet(self, wallet: Wallet) -> Wallet:
        pass

    @abstractmethod
    async def get_wallet(self, wallet_id: UUID) -> Optional[Wallet]:
        pass

    @abstractmethod
    async def update_wallet(self, wallet: Wallet) -> Wallet:
        """
        Raises:
            NotFoundError: If the wallet doesn't exist
        """
        pass

    @abstractmethod
    async def delete_wallet(self, wallet_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_wallets(self, owner_user_id: str) -> list[Wallet]:
        """Wallets owned by a user, oldest first."""
        pass


class ShareStorageInterface(ABC):
    """The `wallet_shares` collection."""

    @abstractmethod
    async def save_share(self, share: WalletShare) -> WalletShare:
        pass

    @abstractmethod
    async def get_share(self, share_id: UUID) -> Optional[WalletShare]:
        pass

    @abstractmethod
    async def update_share(self, share: WalletShare) -> WalletShare:
        """
        Raises:
            NotFoundError: If the share doesn't exist
        """
        pass

    @abstractmethod
    async def delete_share(self, share_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_shares(
        self,
        wallet_id: Optional[UUID] = None,
        grantee_email: Optional[str] = None,
        owner_user_id: Optional[str] = None,
        status: Optional[ShareStatus] = None,
    ) -> list[WalletShare]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events sharing a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Events about one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
