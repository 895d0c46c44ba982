"""Tests for dashboard, portfolio and history views."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from pocket_ledger.models import (
    Account,
    AccountType,
    ExpenseTransaction,
    IncomeTransaction,
    StockBuyTransaction,
    StockHolding,
    StockSellTransaction,
    TransactionType,
    TransferTransaction,
)
from pocket_ledger.queries import (
    build_dashboard,
    build_history,
    default_window_start,
    summarize_portfolio,
)


WINDOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
BEFORE = datetime(2024, 5, 31, 23, 59, tzinfo=timezone.utc)
INSIDE = datetime(2024, 6, 10, 9, 0, tzinfo=timezone.utc)


def expense(amount, when=INSIDE, **fields):
    return ExpenseTransaction(
        amount=Decimal(amount), source_account_id="bank", date=when, **fields
    )


def income(amount, when=INSIDE, **fields):
    return IncomeTransaction(
        amount=Decimal(amount), destination_account_id="bank", date=when, **fields
    )


class TestDashboard:

    def test_windowed_totals(self, accounts, holdings):
        transactions = [
            income("500", when=BEFORE),
            income("300"),
            expense("40", category_id="cat_food"),
            expense("60", when=WINDOW, category_id="cat_food"),
            expense("999", when=BEFORE, category_id="cat_food"),
        ]
        summary = build_dashboard(accounts, transactions, holdings, WINDOW)

        assert summary.total_income == Decimal("300")
        assert summary.total_expense == Decimal("100")
        assert summary.net_flow == Decimal("200")

    def test_net_worth_not_windowed(self, accounts, holdings):
        summary = build_dashboard(accounts, [expense("999", when=BEFORE)], holdings, WINDOW)
        # 1000 + 100 + 0 in accounts, 10 x 120 in stocks
        assert summary.stock_portfolio_value == Decimal("1200")
        assert summary.total_net_worth == Decimal("2300")

    def test_stock_trades_are_not_income_or_expense(self, accounts):
        transactions = [
            StockBuyTransaction(
                amount=Decimal("100"), source_account_id="bank", date=INSIDE,
                stock_symbol="X", stock_quantity=Decimal("1"), stock_price=Decimal("100"),
            ),
            StockSellTransaction(
                amount=Decimal("120"), destination_account_id="bank", date=INSIDE,
                stock_symbol="X", stock_quantity=Decimal("1"), stock_price=Decimal("120"),
            ),
            TransferTransaction(
                amount=Decimal("10"), source_account_id="bank",
                destination_account_id="cash", date=INSIDE,
            ),
        ]
        summary = build_dashboard(accounts, transactions, [], WINDOW)
        assert summary.total_income == Decimal("0")
        assert summary.total_expense == Decimal("0")

    def test_expense_by_category_sorted(self, accounts):
        transactions = [
            expense("20", category_id="cat_transport"),
            expense("50", category_id="cat_food"),
            expense("15", category_name="Pets"),
            expense("30", category_id="cat_food"),
            expense("5", category_id="cat_nonexistent"),
            expense("7"),
        ]
        summary = build_dashboard(accounts, transactions, [], WINDOW)

        assert [(c.name, c.value) for c in summary.expense_by_category] == [
            ("Food & Dining", Decimal("80")),
            ("Transport", Decimal("20")),
            ("Pets", Decimal("15")),
            ("Other", Decimal("12")),
        ]

    def test_asset_distribution_keeps_positive_buckets(self, holdings):
        accounts = [
            Account(name="Bank A", type=AccountType.BANK, balance=Decimal("100")),
            Account(name="Bank B", type=AccountType.BANK, balance=Decimal("50")),
            Account(name="Cash", type=AccountType.CASH, balance=Decimal("-20")),
            Account(name="Wallet", type=AccountType.WALLET, balance=Decimal("0")),
            Account(name="Broker", type=AccountType.PORTFOLIO, balance=Decimal("999")),
        ]
        summary = build_dashboard(accounts, [], holdings, WINDOW)

        assert [(a.name, a.value) for a in summary.asset_distribution] == [
            ("Bank", Decimal("150")),
            ("Stocks", Decimal("1200")),
        ]

    def test_naive_window_is_utc(self, accounts):
        summary = build_dashboard(
            accounts, [income("10")], [], datetime(2024, 6, 1)
        )
        assert summary.total_income == Decimal("10")

    def test_empty_ledger(self):
        summary = build_dashboard([], [], [], WINDOW)
        assert summary.total_net_worth == Decimal("0")
        assert summary.expense_by_category == []
        assert summary.asset_distribution == []


class TestDefaultWindowStart:

    def test_first_instant_of_month(self):
        now = datetime(2024, 2, 29, 23, 59, 59, 999, tzinfo=timezone.utc)
        assert default_window_start(now) == datetime(2024, 2, 1, tzinfo=timezone.utc)


class TestPortfolio:

    def test_totals(self):
        holdings = [
            StockHolding(symbol="A", quantity=Decimal("10"),
                         average_buy_price=Decimal("10"), current_price=Decimal("15")),
            StockHolding(symbol="B", quantity=Decimal("5"),
                         average_buy_price=Decimal("20"), current_price=Decimal("10")),
        ]
        portfolio = summarize_portfolio(holdings)

        assert portfolio.total_value == Decimal("200")
        assert portfolio.total_cost == Decimal("200")
        assert portfolio.total_pnl == Decimal("0")
        assert portfolio.total_pnl_percent == Decimal("0")
        assert [(r.symbol, r.unrealized_pnl) for r in portfolio.holdings] == [
            ("A", Decimal("50")),
            ("B", Decimal("-50")),
        ]

    def test_empty_portfolio(self):
        portfolio = summarize_portfolio([])
        assert portfolio.total_value == Decimal("0")
        assert portfolio.total_pnl_percent is None
        assert portfolio.holdings == []


class TestHistory:

    def test_sorted_newest_first(self, accounts):
        old = income("1", when=BEFORE)
        new = income("2", when=INSIDE)
        entries = build_history([old, new], accounts)
        assert [e.transaction_id for e in entries] == [new.id, old.id]

    def test_titles(self, accounts):
        transactions = [
            expense("1", when=datetime(2024, 6, 1, tzinfo=timezone.utc), category_id="cat_food"),
            expense("1", when=datetime(2024, 6, 2, tzinfo=timezone.utc)),
            income("1", when=datetime(2024, 6, 3, tzinfo=timezone.utc), category_name="Gift"),
            StockBuyTransaction(
                amount=Decimal("10"), source_account_id="bank",
                date=datetime(2024, 6, 4, tzinfo=timezone.utc),
                stock_symbol="abc", stock_quantity=Decimal("1"), stock_price=Decimal("10"),
            ),
            StockSellTransaction(
                amount=Decimal("10"), destination_account_id="bank",
                date=datetime(2024, 6, 5, tzinfo=timezone.utc),
                stock_symbol="ABC", stock_quantity=Decimal("1"), stock_price=Decimal("10"),
            ),
            TransferTransaction(
                amount=Decimal("10"), source_account_id="bank", destination_account_id="cash",
                date=datetime(2024, 6, 6, tzinfo=timezone.utc),
            ),
        ]
        entries = build_history(transactions, accounts)
        assert [e.title for e in entries] == [
            "Transfer", "Sell ABC", "Buy ABC", "Gift", "General", "Food & Dining",
        ]
        assert [e.direction for e in entries] == [None, "+", "-", "+", "-", "-"]

    def test_subtitle_is_notes_or_humanized_type(self, accounts):
        entries = build_history([
            expense("1", when=BEFORE, notes="Coffee"),
            StockBuyTransaction(
                amount=Decimal("10"), source_account_id="bank", date=INSIDE,
                stock_symbol="X", stock_quantity=Decimal("1"), stock_price=Decimal("10"),
            ),
        ], accounts)
        assert [e.subtitle for e in entries] == ["stock buy", "Coffee"]

    def test_transfer_route_with_unknown_account(self, accounts):
        txn = TransferTransaction(
            amount=Decimal("10"), source_account_id="deleted", destination_account_id="cash",
        )
        entry = build_history([txn], accounts)[0]
        assert entry.route == "Unknown → Cash Wallet"
        assert entry.transaction_type == TransactionType.TRANSFER

    def test_only_transfers_have_routes(self, accounts):
        entry = build_history([income("5")], accounts)[0]
        assert entry.route is None
        assert entry.signed_amount == "+5"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
