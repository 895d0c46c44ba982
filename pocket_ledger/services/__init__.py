"""Services package."""

from pocket_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBackend,
    GoogleSheetsClient,
    InMemoryBackend,
    JsonFileBackend,
    KeyValueAuditStorage,
    KeyValueBackend,
    KeyValueLedgerStore,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemoryBackend",
    "JsonFileBackend",
    "KeyValueAuditStorage",
    "KeyValueBackend",
    "KeyValueLedgerStore",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
