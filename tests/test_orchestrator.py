"""
Tests for LedgerService and the application factory.

These run the full record flow against the in-memory backend:
validate → build → apply → commit → audit.
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from pydantic import ValidationError

from pocket_ledger.config import Settings
from pocket_ledger.models import (
    AccountType,
    StockHolding,
    TransactionDraft,
    TransactionType,
    ValidationResult,
)
from pocket_ledger.models.audit import AuditEventType
from pocket_ledger.orchestrator import (
    AccountNotFoundError,
    HoldingNotFoundError,
    LedgerService,
    create_app_components,
)
from pocket_ledger.services.storage import (
    KeyValueLedgerStore,
    StorageError,
)
from pocket_ledger.validation import TransactionBuildError


NOW = datetime(2024, 6, 15, 12, 30, tzinfo=timezone.utc)


def expense_draft(amount="50", source="acc_1", **fields) -> TransactionDraft:
    return TransactionDraft(
        type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        source_account_id=source,
        category_id="cat_food",
        date=date(2024, 6, 15),
        **fields,
    )


def buy_draft(symbol="AAPL", quantity="10", price="100") -> TransactionDraft:
    return TransactionDraft(
        type=TransactionType.STOCK_BUY,
        source_account_id="acc_1",
        stock_symbol=symbol,
        stock_quantity=Decimal(quantity),
        stock_price=Decimal(price),
        date=date(2024, 6, 15),
    )


def event_types(audit_logger) -> list[AuditEventType]:
    return [e.event_type for e in audit_logger.recent_events()]


class TestAccounts:

    def test_seeded_accounts_loaded(self, service):
        assert [(a.id, a.balance) for a in service.accounts] == [
            ("acc_1", Decimal("2500")),
            ("acc_2", Decimal("150")),
        ]

    def test_create_account_persists(self, service, store, audit_logger):
        account = service.create_account("Savings", AccountType.BANK, "300.50")

        assert account.balance == Decimal("300.50")
        assert store.get_accounts()[-1].id == account.id
        assert event_types(audit_logger)[0] == AuditEventType.ACCOUNT_CREATED

    def test_create_account_rejects_empty_name(self, service):
        with pytest.raises(ValidationError):
            service.create_account("   ")
        assert len(service.accounts) == 2

    def test_edit_account(self, service, store):
        updated = service.edit_account("acc_2", name="Pocket", balance=Decimal("75"))

        assert updated.name == "Pocket"
        assert updated.balance == Decimal("75")
        assert updated.type == AccountType.CASH
        assert store.get_accounts()[1].name == "Pocket"

    def test_edit_balance_is_not_a_transaction(self, service):
        service.edit_account("acc_1", balance=0)
        assert service.transactions == []

    def test_edit_missing_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.edit_account("nope", name="X")

    def test_delete_account_keeps_transactions(self, service, audit_logger):
        service.record_transaction(expense_draft(), now=NOW)
        service.delete_account("acc_1")

        assert [a.id for a in service.accounts] == ["acc_2"]
        assert len(service.transactions) == 1

        deleted = audit_logger.recent_events()[0]
        assert deleted.event_type == AuditEventType.ACCOUNT_DELETED
        assert deleted.details["dangling_references"] == 1

    def test_delete_missing_account(self, service):
        with pytest.raises(AccountNotFoundError):
            service.delete_account("nope")


class TestRecordTransaction:

    def test_valid_expense(self, service, store):
        txn, result, message = service.record_transaction(expense_draft(), now=NOW)

        assert txn is not None
        assert result.is_valid
        assert message == "✅ Transaction looks good."
        assert txn.date == NOW
        assert service.state.find_account("acc_1").balance == Decimal("2450")
        assert store.get_accounts()[0].balance == Decimal("2450")
        assert [t.id for t in store.get_transactions()] == [txn.id]

    def test_past_date_recorded_at_midnight(self, service):
        draft = expense_draft().model_copy(update={"date": date(2024, 6, 1)})
        txn, _, _ = service.record_transaction(draft, now=NOW)
        assert txn.date == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_rejected_draft_leaves_state(self, service, store, audit_logger):
        before = service.state

        txn, result, message = service.record_transaction(
            TransactionDraft(type=TransactionType.EXPENSE, source_account_id="acc_1"),
            now=NOW,
        )

        assert txn is None
        assert not result.is_valid
        assert message.startswith("Please specify a valid amount.")
        assert service.state is before
        assert store.get_transactions() == []
        assert event_types(audit_logger)[0] == AuditEventType.TRANSACTION_REJECTED

    @pytest.mark.parametrize("draft", [
        expense_draft(notes="x" * 1001),
        buy_draft(symbol="A" * 21),
    ])
    def test_overlong_text_rejected(self, service, store, draft):
        before = service.state

        txn, result, message = service.record_transaction(draft, now=NOW)

        assert txn is None
        assert not result.schema_valid
        assert "at most" in message
        assert service.state is before
        assert store.get_transactions() == []

    def test_unknown_account_rejected(self, service):
        txn, result, _ = service.record_transaction(expense_draft(source="gone"), now=NOW)
        assert txn is None
        assert result.errors[0].issue_type == "unknown_reference"
        assert result.errors[0].message == "Account gone no longer exists"

    def test_warnings_do_not_block(self, service):
        txn, result, message = service.record_transaction(expense_draft(amount="3000"), now=NOW)

        assert txn is not None
        assert result.warnings
        assert "⚠️" in message
        assert service.state.find_account("acc_1").balance == Decimal("-500")

    def test_buy_then_sell(self, service):
        service.record_transaction(buy_draft(), now=NOW)
        assert service.state.find_account("acc_1").balance == Decimal("1500")
        assert service.stock_holdings[0].symbol == "AAPL"

        sell = TransactionDraft(
            type=TransactionType.STOCK_SELL,
            destination_account_id="acc_2",
            stock_symbol="aapl",
            stock_quantity=Decimal("10"),
            stock_price=Decimal("110"),
        )
        txn, _, _ = service.record_transaction(sell, now=NOW)

        assert txn.amount == Decimal("1100")
        assert service.stock_holdings == []
        assert service.state.find_account("acc_2").balance == Decimal("1250")

    def test_oversell_rejected(self, service):
        service.record_transaction(buy_draft(quantity="2"), now=NOW)
        sell = TransactionDraft(
            type=TransactionType.STOCK_SELL,
            destination_account_id="acc_1",
            stock_symbol="AAPL",
            stock_quantity=Decimal("5"),
            stock_price=Decimal("100"),
        )
        txn, result, message = service.record_transaction(sell, now=NOW)

        assert txn is None
        assert message.startswith("You only hold 2 AAPL shares")

    def test_storage_failure_leaves_state(self, service, backend, audit_logger, monkeypatch):
        before = service.state

        def broken(values):
            raise RuntimeError("disk full")

        monkeypatch.setattr(backend, "set_many", broken)

        with pytest.raises(StorageError):
            service.record_transaction(expense_draft(), now=NOW)

        assert service.state is before
        assert service.state.find_account("acc_1").balance == Decimal("2500")
        assert event_types(audit_logger)[0] == AuditEventType.STORAGE_ERROR

    def test_build_failure_is_audited(self, store, audit_logger):
        validator = MagicMock()
        validator.validate.return_value = ValidationResult(
            schema_valid=True, semantic_valid=True, is_valid=True,
        )
        validator.get_user_friendly_summary.return_value = "ok"
        service = LedgerService(store, validator=validator, audit_logger=audit_logger)

        with pytest.raises(TransactionBuildError):
            service.record_transaction(TransactionDraft(), now=NOW)

        assert service.transactions == []
        assert event_types(audit_logger)[0] == AuditEventType.SYSTEM_ERROR

    def test_validate_draft_does_not_record(self, service):
        result, message = service.validate_draft(expense_draft())
        assert result.is_valid
        assert service.transactions == []


class TestHistoryAndWindow:

    def test_clear_history_keeps_balances(self, service, store):
        service.record_transaction(expense_draft(), now=NOW)
        service.record_transaction(expense_draft(amount="10"), now=NOW)

        assert service.clear_transaction_history() == 2
        assert service.transactions == []
        assert store.get_transactions() == []
        assert service.state.find_account("acc_1").balance == Decimal("2440")

    def test_reset_window(self, service, store):
        service.record_transaction(expense_draft(), now=NOW)
        assert service.dashboard().total_expense == Decimal("50")

        later = datetime(2024, 6, 16, tzinfo=timezone.utc)
        assert service.reset_dashboard_window(now=later) == later

        assert service.dashboard().total_expense == Decimal("0")
        assert store.get_dashboard_start() == later

    def test_history_view(self, service):
        service.record_transaction(expense_draft(notes="Lunch"), now=NOW)
        entry = service.history()[0]
        assert entry.title == "Food & Dining"
        assert entry.subtitle == "Lunch"
        assert entry.direction == "-"


class TestStockPrices:

    @pytest.fixture
    def priced_service(self, backend, validator, audit_logger):
        store = KeyValueLedgerStore(backend, clock=lambda: NOW)
        store.save_stocks([StockHolding(
            id="h1",
            symbol="MSFT",
            quantity=Decimal("4"),
            average_buy_price=Decimal("300"),
            current_price=Decimal("300"),
        )])
        return LedgerService(store, validator=validator, audit_logger=audit_logger)

    def test_update_price(self, priced_service, audit_logger):
        updated = priced_service.update_stock_price("h1", "350")

        assert updated.current_price == Decimal("350")
        assert updated.average_buy_price == Decimal("300")
        assert priced_service.portfolio().total_pnl == Decimal("200")
        assert priced_service.dashboard().stock_portfolio_value == Decimal("1400")
        assert event_types(audit_logger)[0] == AuditEventType.STOCK_PRICE_UPDATED

    def test_negative_price_rejected(self, priced_service):
        with pytest.raises(ValueError):
            priced_service.update_stock_price("h1", "-1")

    def test_missing_holding(self, priced_service):
        with pytest.raises(HoldingNotFoundError):
            priced_service.update_stock_price("nope", "1")


class TestCreateAppComponents:

    def test_memory_backend_without_assistant(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("SEED_DEFAULT_ACCOUNTS", "true")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        service, assistant = create_app_components(Settings())

        assert assistant is None
        assert [a.name for a in service.accounts] == ["Main Bank", "Cash Wallet"]

    def test_no_seeding(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("SEED_DEFAULT_ACCOUNTS", "false")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        service, _ = create_app_components(Settings())
        assert service.accounts == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
