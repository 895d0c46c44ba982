"""Tests for two-stage draft validation and transaction building."""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from pocket_ledger.models import (
    ExpenseTransaction,
    IncomeTransaction,
    StockBuyTransaction,
    StockSellTransaction,
    TransactionDraft,
    TransactionType,
    TransferTransaction,
    utc_today,
)
from pocket_ledger.validation import TransactionBuildError, build_transaction


TODAY = date(2024, 6, 15)


def draft(**fields) -> TransactionDraft:
    return TransactionDraft.model_validate(fields)


def messages(result, severity="error"):
    return [i.message for i in result.issues if i.severity == severity]


class TestSchemaStage:
    """Stage 1: per-type required fields."""

    def test_missing_type(self, validator, accounts, holdings):
        result = validator.validate(draft(amount="10"), accounts, holdings, today=TODAY)
        assert not result.schema_valid
        assert messages(result) == ["Please choose a transaction type."]

    def test_expense_needs_amount_and_source(self, validator, accounts, holdings):
        result = validator.validate(draft(type="EXPENSE"), accounts, holdings, today=TODAY)
        assert not result.is_valid
        assert messages(result) == [
            "Please specify a valid amount.",
            "Please specify the source account (From) where the money comes from.",
        ]

    def test_income_needs_destination(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="INCOME", amount="10", sourceAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == [
            "Please specify the destination account (To) where the money will be deposited."
        ]

    def test_transfer_needs_both_accounts(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="TRANSFER", amount="10"), accounts, holdings, today=TODAY,
        )
        assert messages(result) == [
            "Please specify the source account (From).",
            "Please specify the destination account (To).",
        ]

    def test_transfer_same_account(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="TRANSFER", amount="10", sourceAccountId="bank", destinationAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == ["Source and destination accounts cannot be the same."]

    def test_stock_buy_fields(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_BUY", amount="100", stockQuantity="0"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == [
            "Please specify the stock symbol.",
            "Please specify a valid quantity.",
            "Please specify a valid price per share.",
            "Please specify the Funding Account (Source) to pay for this purchase.",
        ]

    def test_stock_sell_needs_destination(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_SELL", stockSymbol="AAPL", stockQuantity="1", stockPrice="100"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == [
            "Please specify the destination account (To) for the sale proceeds."
        ]

    def test_stock_trade_ignores_amount_field(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_BUY", stockSymbol="MSFT", stockQuantity="2",
                  stockPrice="50", sourceAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid

    def test_both_category_fields_is_warning(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank",
                  categoryId="cat_food", categoryName="Snacks"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert any("custom category" in w for w in result.warnings)

    def test_overlong_stock_symbol(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_BUY", stockSymbol="A" * 21, stockQuantity="1",
                  stockPrice="10", sourceAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert not result.schema_valid
        assert messages(result) == ["Stock symbol must be at most 20 characters."]

    def test_symbol_at_limit_is_valid(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_BUY", stockSymbol="A" * 20, stockQuantity="1",
                  stockPrice="10", sourceAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid

    def test_overlong_notes(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank", notes="x" * 1001),
            accounts, holdings, today=TODAY,
        )
        assert not result.schema_valid
        assert messages(result) == ["Notes must be at most 1000 characters."]

    def test_overlong_custom_category_name(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="INCOME", amount="10", destinationAccountId="bank",
                  useCustomCategory=True, categoryName="c" * 101),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == ["Category name must be at most 100 characters."]

    def test_unused_category_name_not_length_checked(self, validator, accounts, holdings):
        # A selected category wins, so the stray name is never stored
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank",
                  categoryId="cat_food", categoryName="c" * 101),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid

    def test_length_checks_pass_build(self, validator, accounts, holdings):
        ok = draft(type="EXPENSE", amount="10", sourceAccountId="bank", notes="x" * 1000)
        assert validator.validate(ok, accounts, holdings, today=TODAY).is_valid
        assert build_transaction(ok).notes == "x" * 1000

    def test_semantic_stage_skipped_on_schema_errors(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", sourceAccountId="ghost"), accounts, holdings, today=TODAY,
        )
        assert not result.schema_valid
        assert not result.semantic_valid
        assert all(i.issue_type != "unknown_reference" for i in result.issues)


class TestSemanticStage:
    """Stage 2: checks against the current ledger."""

    def test_valid_expense(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank", categoryId="cat_food"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert result.issues == []

    def test_unknown_account(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="INCOME", amount="10", destinationAccountId="ghost"),
            accounts, holdings, today=TODAY,
        )
        assert result.schema_valid
        assert not result.semantic_valid
        assert messages(result) == ["Account ghost no longer exists"]

    def test_irrelevant_reference_is_ignored(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank",
                  destinationAccountId="not-an-account"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid

    def test_unknown_category_is_warning(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank", categoryId="cat_pets"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert result.warnings == ["Category cat_pets is not a known category"]

    def test_sell_without_holding(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_SELL", stockSymbol="tsla", stockQuantity="1",
                  stockPrice="10", destinationAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == ["You don't hold any TSLA shares to sell"]

    def test_sell_more_than_held(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_SELL", stockSymbol="AAPL", stockQuantity="11",
                  stockPrice="10", destinationAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert messages(result) == ["You only hold 10 AAPL shares"]

    def test_sell_everything_is_valid(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="STOCK_SELL", stockSymbol="AAPL", stockQuantity="10",
                  stockPrice="130", destinationAccountId="cash"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid

    def test_future_date_warning(self, validator, accounts, holdings):
        far = TODAY + timedelta(days=8)
        near = TODAY + timedelta(days=7)

        result = validator.validate(
            draft(type="INCOME", amount="10", destinationAccountId="bank", date=far.isoformat()),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert any("in the future" in w for w in result.warnings)

        result = validator.validate(
            draft(type="INCOME", amount="10", destinationAccountId="bank", date=near.isoformat()),
            accounts, holdings, today=TODAY,
        )
        assert result.warnings == []

    def test_large_amount_warning(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="INCOME", amount="2000000", destinationAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert result.warnings == ["Amount ($2,000,000.00) seems unusually high"]

    def test_overdraft_warning(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="150", sourceAccountId="cash"),
            accounts, holdings, today=TODAY,
        )
        assert result.is_valid
        assert result.warnings == ["This will take Cash Wallet below zero ($-50.00)"]


class TestUserFriendlySummary:

    def test_clean_result(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="10", sourceAccountId="bank"),
            accounts, holdings, today=TODAY,
        )
        assert validator.get_user_friendly_summary(result) == "✅ Transaction looks good."

    def test_first_line_is_blocking_message(self, validator, accounts, holdings):
        result = validator.validate(draft(type="TRANSFER", amount="5"), accounts, holdings, today=TODAY)
        summary = validator.get_user_friendly_summary(result)
        assert summary.splitlines()[0] == "Please specify the source account (From)."

    def test_warnings_listed(self, validator, accounts, holdings):
        result = validator.validate(
            draft(type="EXPENSE", amount="150", sourceAccountId="cash"),
            accounts, holdings, today=TODAY,
        )
        summary = validator.get_user_friendly_summary(result)
        assert "⚠️ Please verify the following:" in summary
        assert "Cash Wallet" in summary


class TestBuildTransaction:
    """Validated drafts become the matching variant."""

    NOW = datetime(2024, 6, 15, 12, 30, tzinfo=timezone.utc)

    def test_expense(self):
        txn = build_transaction(
            draft(type="EXPENSE", amount="12.5", sourceAccountId="bank",
                  destinationAccountId="stray", categoryId="cat_food", notes="Lunch"),
            now=self.NOW,
        )
        assert isinstance(txn, ExpenseTransaction)
        assert txn.amount == Decimal("12.5")
        assert txn.source_account_id == "bank"
        assert txn.destination_account_id is None
        assert txn.category_id == "cat_food"
        assert txn.notes == "Lunch"
        assert txn.date == self.NOW

    def test_today_keeps_current_time(self):
        txn = build_transaction(
            draft(type="INCOME", amount="1", destinationAccountId="bank", date="2024-06-15"),
            now=self.NOW,
        )
        assert txn.date == self.NOW

    def test_default_entry_day_keeps_current_time(self):
        # Just after midnight UTC, the local day may still be the previous one
        now = datetime(2024, 6, 16, 1, 30, tzinfo=timezone.utc)
        txn = build_transaction(
            draft(type="EXPENSE", amount="5", sourceAccountId="bank", date=utc_today(now)),
            now=now,
        )
        assert txn.date == now

    def test_other_day_is_midnight_utc(self):
        txn = build_transaction(
            draft(type="INCOME", amount="1", destinationAccountId="bank", date="2024-06-01"),
            now=self.NOW,
        )
        assert txn.date == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_stock_buy_amount_is_quantity_times_price(self):
        txn = build_transaction(
            draft(type="STOCK_BUY", amount="1", stockSymbol="msft", stockQuantity="3",
                  stockPrice="20.5", sourceAccountId="bank", categoryId="cat_food"),
            now=self.NOW,
        )
        assert isinstance(txn, StockBuyTransaction)
        assert txn.amount == Decimal("61.5")
        assert txn.stock_symbol == "MSFT"
        assert txn.category_id is None

    def test_stock_sell(self):
        txn = build_transaction(
            draft(type="STOCK_SELL", stockSymbol="AAPL", stockQuantity="2",
                  stockPrice="10", destinationAccountId="cash"),
            now=self.NOW,
        )
        assert isinstance(txn, StockSellTransaction)
        assert txn.amount == Decimal("20")

    def test_transfer_drops_category(self):
        txn = build_transaction(
            draft(type="TRANSFER", amount="5", sourceAccountId="bank",
                  destinationAccountId="cash", categoryName="Moving money"),
            now=self.NOW,
        )
        assert isinstance(txn, TransferTransaction)
        assert txn.category_name is None

    @pytest.mark.parametrize(
        "txn_type,account_field,expected",
        [
            ("INCOME", "destinationAccountId", "Custom Income"),
            ("EXPENSE", "sourceAccountId", "Custom Expense"),
        ],
    )
    def test_empty_custom_category_defaults(self, txn_type, account_field, expected):
        txn = build_transaction(
            draft(type=txn_type, amount="5", useCustomCategory=True, **{account_field: "bank"}),
            now=self.NOW,
        )
        assert txn.category_name == expected
        assert txn.category_id is None

    def test_custom_category_name(self):
        txn = build_transaction(
            draft(type="EXPENSE", amount="5", sourceAccountId="bank",
                  useCustomCategory=True, categoryId="cat_food", categoryName="Pets"),
            now=self.NOW,
        )
        assert txn.category_name == "Pets"
        assert txn.category_id is None

    def test_incomplete_draft_raises(self):
        with pytest.raises(TransactionBuildError):
            build_transaction(draft(type="EXPENSE", amount="5"), now=self.NOW)

    def test_missing_type_raises(self):
        with pytest.raises(TransactionBuildError):
            build_transaction(draft(amount="5"), now=self.NOW)

    def test_type_enum_round_trip(self):
        txn = build_transaction(
            draft(type=TransactionType.INCOME, amount="5", destinationAccountId="bank"),
            now=self.NOW,
        )
        assert isinstance(txn, IncomeTransaction)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
