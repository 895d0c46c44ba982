"""
Dashboard Aggregation

DESIGN DECISION: Every figure on the dashboard is computed from the
stored ledger on demand. Nothing here is cached or persisted, so the
dashboard can never disagree with the accounts and transactions it
summarizes.

Income and expense totals are windowed by the dashboard start (the
"New Day" reset). Net worth and asset distribution are not windowed.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from pocket_ledger.ledger.categories import DASHBOARD_FALLBACK, resolve_category_label
from pocket_ledger.ledger.engine import total_balance
from pocket_ledger.models.ledger import (
    Account,
    AccountType,
    StockHolding,
    TransactionBase,
    TransactionType,
    default_window_start,
    ensure_aware,
)


# Asset distribution buckets, in display order
ASSET_BUCKETS: list[tuple[str, AccountType]] = [
    ("Bank", AccountType.BANK),
    ("Cash", AccountType.CASH),
    ("Wallet", AccountType.WALLET),
]
STOCKS_BUCKET = "Stocks"


class LabelledAmount(BaseModel):
    """One slice of a breakdown chart."""

    name: str
    value: Decimal


class DashboardSummary(BaseModel):
    """Figures shown on the dashboard."""

    window_start: datetime = Field(
        ...,
        description="Transactions before this instant are not counted"
    )
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    net_flow: Decimal = Decimal("0")
    stock_portfolio_value: Decimal = Decimal("0")
    total_net_worth: Decimal = Decimal("0")

    expense_by_category: list[LabelledAmount] = Field(
        default_factory=list,
        description="Windowed expenses per category, largest first"
    )
    asset_distribution: list[LabelledAmount] = Field(
        default_factory=list,
        description="Positive totals per asset bucket"
    )


class HoldingRow(BaseModel):
    """One line of the portfolio table."""

    holding_id: str
    symbol: str
    name: str
    quantity: Decimal
    average_buy_price: Decimal
    current_price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Optional[Decimal] = None


class PortfolioSummary(BaseModel):
    """Totals for the stocks page."""

    total_value: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    total_pnl: Decimal = Decimal("0")
    total_pnl_percent: Optional[Decimal] = None
    holdings: list[HoldingRow] = Field(default_factory=list)


def portfolio_value(stock_holdings: Iterable[StockHolding]) -> Decimal:
    """Market value of all holdings at their last entered prices."""
    return sum((h.market_value for h in stock_holdings), Decimal("0"))


def build_dashboard(
    accounts: list[Account],
    transactions: list[TransactionBase],
    stock_holdings: list[StockHolding],
    window_start: datetime,
) -> DashboardSummary:
    """
    Aggregate the ledger into dashboard figures.

    Args:
        accounts: Current accounts
        transactions: Full transaction history
        stock_holdings: Current holdings
        window_start: Start of the income/expense window

    Returns:
        DashboardSummary
    """
    window_start = ensure_aware(window_start)
    in_window = [t for t in transactions if t.date >= window_start]

    total_income = Decimal("0")
    total_expense = Decimal("0")
    by_category: dict[str, Decimal] = {}

    for txn in in_window:
        if txn.transaction_type == TransactionType.INCOME:
            total_income += txn.amount
        elif txn.transaction_type == TransactionType.EXPENSE:
            total_expense += txn.amount
            label = resolve_category_label(txn, DASHBOARD_FALLBACK)
            by_category[label] = by_category.get(label, Decimal("0")) + txn.amount

    stock_value = portfolio_value(stock_holdings)

    expense_by_category = sorted(
        (LabelledAmount(name=name, value=value) for name, value in by_category.items()),
        key=lambda item: item.value,
        reverse=True,
    )

    return DashboardSummary(
        window_start=window_start,
        total_income=total_income,
        total_expense=total_expense,
        net_flow=total_income - total_expense,
        stock_portfolio_value=stock_value,
        total_net_worth=total_balance(accounts) + stock_value,
        expense_by_category=expense_by_category,
        asset_distribution=asset_distribution(accounts, stock_value),
    )


def asset_distribution(
    accounts: list[Account],
    stock_value: Decimal,
) -> list[LabelledAmount]:
    """Bank, Cash, Wallet and Stocks totals; non-positive buckets are dropped."""
    slices = [
        LabelledAmount(
            name=name,
            value=total_balance(a for a in accounts if a.type == account_type),
        )
        for name, account_type in ASSET_BUCKETS
    ]
    slices.append(LabelledAmount(name=STOCKS_BUCKET, value=stock_value))
    return [s for s in slices if s.value > 0]


def summarize_portfolio(stock_holdings: list[StockHolding]) -> PortfolioSummary:
    """Per-holding rows and portfolio totals."""
    rows = [
        HoldingRow(
            holding_id=h.id,
            symbol=h.symbol,
            name=h.name,
            quantity=h.quantity,
            average_buy_price=h.average_buy_price,
            current_price=h.current_price,
            market_value=h.market_value,
            cost_basis=h.cost_basis,
            unrealized_pnl=h.unrealized_pnl,
            unrealized_pnl_percent=h.unrealized_pnl_percent,
        )
        for h in stock_holdings
    ]

    total_value = sum((r.market_value for r in rows), Decimal("0"))
    total_cost = sum((r.cost_basis for r in rows), Decimal("0"))
    total_pnl = total_value - total_cost

    return PortfolioSummary(
        total_value=total_value,
        total_cost=total_cost,
        total_pnl=total_pnl,
        total_pnl_percent=total_pnl / total_cost * 100 if total_cost else None,
        holdings=rows,
    )


__all__ = [
    "DashboardSummary",
    "HoldingRow",
    "LabelledAmount",
    "PortfolioSummary",
    "asset_distribution",
    "build_dashboard",
    "default_window_start",
    "portfolio_value",
    "summarize_portfolio",
]
