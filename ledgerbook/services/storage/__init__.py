"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
An in-memory backend for tests and local runs, and Google Sheets for
persistence. Business logic only ever sees the interfaces.
"""

from ledgerbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from ledgerbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
)
from ledgerbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStore",
]
