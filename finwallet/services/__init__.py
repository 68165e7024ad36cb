"""Services package."""

from finwallet.services.storage import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoalStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStore,
    InMemoryStore,
    NotFoundError,
    ShareStorageInterface,
    StorageError,
    TransactionStorageInterface,
    WalletStorageInterface,
)

__all__ = [
    # Storage services
    "AlertStorageInterface",
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoalStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStore",
    "InMemoryStore",
    "NotFoundError",
    "ShareStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
    "WalletStorageInterface",
]
