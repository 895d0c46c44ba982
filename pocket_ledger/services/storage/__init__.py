"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The ledger lives in a key-value backend: in memory, in a local JSON file,
or in a Google Sheets worksheet.
"""

from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueBackend,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from pocket_ledger.services.storage.local import InMemoryBackend, JsonFileBackend
from pocket_ledger.services.storage.key_value import (
    ACCOUNTS_KEY,
    AUDIT_LOG_KEY,
    DASHBOARD_START_KEY,
    DEFAULT_ACCOUNTS,
    STOCKS_KEY,
    TRANSACTIONS_KEY,
    KeyValueAuditStorage,
    KeyValueLedgerStore,
    unreadable_key,
)
from pocket_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueBackend",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Local backends
    "InMemoryBackend",
    "JsonFileBackend",
    # Ledger store
    "ACCOUNTS_KEY",
    "AUDIT_LOG_KEY",
    "DASHBOARD_START_KEY",
    "DEFAULT_ACCOUNTS",
    "STOCKS_KEY",
    "TRANSACTIONS_KEY",
    "KeyValueAuditStorage",
    "KeyValueLedgerStore",
    "unreadable_key",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
]
