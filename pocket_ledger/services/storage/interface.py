"""
Abstract Storage Interface

DESIGN DECISION: The ledger is persisted as a handful of text values in a
key-value store, the same shape as browser local storage. We define
abstract interfaces at two levels:

1. KeyValueBackend - where the text lives (memory, a JSON file, a sheet)
2. LedgerStorageInterface - typed get/save pairs per collection on top

This allows us to:
1. Swap the backend without touching business logic
2. Use in-memory storage for testing
3. Commit all collections in one write

The interface is intentionally simple - we're not building a database.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Optional

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import (
    Account,
    LedgerState,
    StockHolding,
    TransactionBase,
)


class KeyValueBackend(ABC):
    """
    Raw text storage keyed by fixed names.

    Any backend (memory, file, Google Sheets, ...) must implement these.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored text, or None if the key was never set."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store text under a key, replacing any previous value."""
        pass

    @abstractmethod
    def set_many(self, values: Mapping[str, str]) -> None:
        """
        Store several keys in one commit.

        Backends make this as atomic as their medium allows.
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        pass


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Unreadable collections read as empty; they never raise.
    """

    @abstractmethod
    def get_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    def save_accounts(self, accounts: list[Account]) -> None:
        pass

    @abstractmethod
    def get_transactions(self) -> list[TransactionBase]:
        pass

    @abstractmethod
    def save_transactions(self, transactions: list[TransactionBase]) -> None:
        pass

    @abstractmethod
    def get_stocks(self) -> list[StockHolding]:
        pass

    @abstractmethod
    def save_stocks(self, stock_holdings: list[StockHolding]) -> None:
        pass

    @abstractmethod
    def get_dashboard_start(self) -> datetime:
        """
        Start of the dashboard aggregation window.

        Defaults to the first instant of the current month when unset.
        """
        pass

    @abstractmethod
    def save_dashboard_start(self, start: datetime) -> None:
        pass

    @abstractmethod
    def seed_defaults(self) -> bool:
        """
        Create the starter accounts if no accounts were ever stored.

        Returns:
            True if seeding happened
        """
        pass

    @abstractmethod
    def load_state(self) -> LedgerState:
        """Read every collection into one snapshot."""
        pass

    @abstractmethod
    def commit(self, state: LedgerState) -> None:
        """
        Write every collection of a snapshot together.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
