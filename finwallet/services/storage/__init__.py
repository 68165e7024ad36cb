"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets and an in-memory store are implemented; any document store
that can satisfy the interfaces can be swapped in.
"""

from finwallet.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoalStorageInterface,
    NotFoundError,
    ShareStorageInterface,
    StorageError,
    TransactionStorageInterface,
    WalletStorageInterface,
)
from finwallet.services.storage.memory import InMemoryStore
from finwallet.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStore,
)

__all__ = [
    # Interfaces
    "AlertStorageInterface",
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "GoalStorageInterface",
    "ShareStorageInterface",
    "TransactionStorageInterface",
    "WalletStorageInterface",
    # Implementations
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsStore",
    "InMemoryStore",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
]
