"""
Ledger Store on top of a Key-Value Backend

Each collection is one JSON array under a fixed key; the dashboard window
start is a bare ISO-8601 string. Rows written with camelCase field names
load the same as snake_case ones.

Rows are validated one at a time. A row that no longer fits its model is
skipped with a warning and kept aside; the next write of that collection
appends it to a sibling "<key>_unreadable" array, so saving the ledger
never throws stored data away. Text that is not a JSON array at all is
kept aside the same way, as a single string.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import (
    Account,
    AccountType,
    LedgerState,
    StockHolding,
    TransactionBase,
    default_window_start,
    ensure_aware,
    transaction_adapter,
    transaction_list_adapter,
)
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    KeyValueBackend,
    LedgerStorageInterface,
    StorageError,
)


ACCOUNTS_KEY = "pf_accounts"
TRANSACTIONS_KEY = "pf_transactions"
STOCKS_KEY = "pf_stocks"
DASHBOARD_START_KEY = "pf_dashboard_start"
AUDIT_LOG_KEY = "pf_audit_log"

DEFAULT_ACCOUNTS = (
    Account(id="acc_1", name="Main Bank", type=AccountType.BANK,
            balance=Decimal("2500"), color="bg-blue-500"),
    Account(id="acc_2", name="Cash Wallet", type=AccountType.CASH,
            balance=Decimal("150"), color="bg-green-500"),
)

_accounts_adapter = TypeAdapter(list[Account])
_stocks_adapter = TypeAdapter(list[StockHolding])
_datetime_adapter = TypeAdapter(datetime)

logger = structlog.get_logger(__name__)


def unreadable_key(key: str) -> str:
    """Where rows that could not be loaded from `key` are kept."""
    return f"{key}_unreadable"


class KeyValueLedgerStore(LedgerStorageInterface):
    """
    Typed ledger persistence over any KeyValueBackend.

    Args:
        backend: Where the text lives
        clock: Returns "now"; used for the default dashboard window
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._backend = backend
        self._clock = clock
        # Rows read but not loaded, per key, waiting to be set aside
        self._unreadable: dict[str, list[Any]] = {}

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def _read_list(self, key: str, validate_row: Callable[[Any], Any]) -> list:
        self._unreadable.pop(key, None)
        raw = self._backend.get(key)
        if not raw:
            return []

        try:
            rows = json.loads(raw, parse_float=Decimal)
        except json.JSONDecodeError:
            rows = None
        if not isinstance(rows, list):
            logger.warning("storage_unreadable", key=key)
            self._unreadable[key] = [raw]
            return []

        items, skipped = [], []
        for row in rows:
            try:
                items.append(validate_row(row))
            except ValidationError:
                skipped.append(row)

        if skipped:
            logger.warning(
                "storage_rows_skipped",
                key=key,
                skipped=len(skipped),
                kept=len(items),
            )
            self._unreadable[key] = skipped
        return items

    def _set_aside(self, keys: Iterable[str]) -> dict[str, str]:
        """Merged "<key>_unreadable" values for any keys with skipped rows."""
        values = {}
        for key in keys:
            pending = self._unreadable.get(key)
            if not pending:
                continue
            aside_key = unreadable_key(key)
            existing = self._backend.get(aside_key)
            kept: list[Any] = []
            if existing:
                try:
                    kept = json.loads(existing)
                except json.JSONDecodeError:
                    kept = [existing]
                if not isinstance(kept, list):
                    kept = [existing]
            values[aside_key] = json.dumps(kept + pending, default=str)
        return values

    def _write(self, values: dict[str, str]) -> None:
        values = {**values, **self._set_aside(values)}
        if len(values) == 1:
            self._backend.set(*next(iter(values.items())))
        else:
            self._backend.set_many(values)
        for key in values:
            self._unreadable.pop(key, None)

    def get_accounts(self) -> list[Account]:
        return self._read_list(ACCOUNTS_KEY, Account.model_validate)

    def save_accounts(self, accounts: list[Account]) -> None:
        self._write({ACCOUNTS_KEY: _dump_accounts(accounts)})

    def get_transactions(self) -> list[TransactionBase]:
        return self._read_list(TRANSACTIONS_KEY, transaction_adapter.validate_python)

    def save_transactions(self, transactions: list[TransactionBase]) -> None:
        self._write({TRANSACTIONS_KEY: _dump_transactions(transactions)})

    def get_stocks(self) -> list[StockHolding]:
        return self._read_list(STOCKS_KEY, StockHolding.model_validate)

    def save_stocks(self, stock_holdings: list[StockHolding]) -> None:
        self._write({STOCKS_KEY: _dump_stocks(stock_holdings)})

    def get_dashboard_start(self) -> datetime:
        raw = self._backend.get(DASHBOARD_START_KEY)
        if raw:
            try:
                return ensure_aware(_datetime_adapter.validate_python(raw))
            except ValidationError:
                logger.warning("storage_unreadable", key=DASHBOARD_START_KEY)
        now = self._clock() if self._clock else None
        return default_window_start(now)

    def save_dashboard_start(self, start: datetime) -> None:
        self._backend.set(DASHBOARD_START_KEY, start.isoformat())

    def seed_defaults(self) -> bool:
        if self._backend.get(ACCOUNTS_KEY) is not None:
            return False
        self.save_accounts(list(DEFAULT_ACCOUNTS))
        logger.info("storage_seeded", accounts=len(DEFAULT_ACCOUNTS))
        return True

    def load_state(self) -> LedgerState:
        return LedgerState(
            accounts=self.get_accounts(),
            stock_holdings=self.get_stocks(),
            transactions=self.get_transactions(),
            dashboard_start=self.get_dashboard_start(),
        )

    def commit(self, state: LedgerState) -> None:
        try:
            self._write({
                ACCOUNTS_KEY: _dump_accounts(state.accounts),
                TRANSACTIONS_KEY: _dump_transactions(state.transactions),
                STOCKS_KEY: _dump_stocks(state.stock_holdings),
                DASHBOARD_START_KEY: state.dashboard_start.isoformat(),
            })
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to commit ledger state: {e}")


class KeyValueAuditStorage(AuditStorageInterface):
    """
    Audit log kept as a capped JSON array in the same backend.

    Only the newest `limit` events are kept.
    """

    def __init__(self, backend: KeyValueBackend, limit: int = 500):
        self._backend = backend
        self._limit = limit

    def _load(self) -> list[dict]:
        raw = self._backend.get(AUDIT_LOG_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return []
        return data if isinstance(data, list) else []

    def append_event(self, event: AuditEvent) -> bool:
        try:
            events = self._load()
            events.append(event.model_dump(mode="json"))
            self._backend.set(AUDIT_LOG_KEY, json.dumps(events[-self._limit:]))
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.error("audit_append_failed", error=str(e))
            return False

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = []
        for item in reversed(self._load()):
            try:
                events.append(AuditEvent.model_validate(item))
            except ValidationError:
                continue  # Skip malformed entries
            if len(events) >= limit:
                break
        return events


def _dump_accounts(accounts: list[Account]) -> str:
    return _accounts_adapter.dump_json(accounts).decode("utf-8")


def _dump_stocks(stock_holdings: list[StockHolding]) -> str:
    return _stocks_adapter.dump_json(stock_holdings).decode("utf-8")


def _dump_transactions(transactions: list[TransactionBase]) -> str:
    return transaction_list_adapter.dump_json(
        transactions, exclude_none=True
    ).decode("utf-8")
