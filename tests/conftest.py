"""Shared fixtures. No test touches the network or the real settings file."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pocket_ledger.audit import AuditLogger
from pocket_ledger.config import AppSettings
from pocket_ledger.models import Account, AccountType, StockHolding
from pocket_ledger.orchestrator import LedgerService
from pocket_ledger.services.storage import (
    InMemoryBackend,
    KeyValueAuditStorage,
    KeyValueLedgerStore,
)
from pocket_ledger.validation import TransactionValidator


NOW = datetime(2024, 6, 15, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        currency_symbol="$",
        max_transaction_amount=1_000_000,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def validator(app_settings) -> TransactionValidator:
    return TransactionValidator(app_settings)


@pytest.fixture
def accounts() -> list[Account]:
    return [
        Account(id="bank", name="Main Bank", type=AccountType.BANK, balance=Decimal("1000")),
        Account(id="cash", name="Cash Wallet", type=AccountType.CASH, balance=Decimal("100")),
        Account(id="wallet", name="E-Wallet", type=AccountType.WALLET, balance=Decimal("0")),
    ]


@pytest.fixture
def holdings() -> list[StockHolding]:
    return [
        StockHolding(
            id="h_aapl",
            symbol="AAPL",
            quantity=Decimal("10"),
            average_buy_price=Decimal("100"),
            current_price=Decimal("120"),
        ),
    ]


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend) -> KeyValueLedgerStore:
    store = KeyValueLedgerStore(backend, clock=lambda: NOW)
    store.seed_defaults()
    return store


@pytest.fixture
def audit_storage(backend) -> KeyValueAuditStorage:
    return KeyValueAuditStorage(backend, limit=50)


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def service(store, validator, audit_logger) -> LedgerService:
    return LedgerService(store, validator=validator, audit_logger=audit_logger)
