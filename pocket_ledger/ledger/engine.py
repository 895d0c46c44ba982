"""
Ledger Engine

The one piece of real domain logic: given the current accounts, the
current stock holdings and one new transaction, compute the next
accounts and holdings.

GUARANTEES:
- Pure: inputs are never mutated, new model instances are returned
- Total: every transaction variant is handled; anything else is a
  programming error and raises TypeError
- Trusting: `transaction.amount` is the single source of truth for how
  much cash moved. It is never recomputed from quantity x price here.
- Lenient on references: an account id or symbol that is not present is
  simply a no-op. Validation happens before the engine is called.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from pocket_ledger.models.ledger import (
    Account,
    ExpenseTransaction,
    IncomeTransaction,
    StockBuyTransaction,
    StockHolding,
    StockSellTransaction,
    TransactionBase,
    TransactionType,
    TransferTransaction,
)


_VARIANTS = (
    IncomeTransaction,
    ExpenseTransaction,
    TransferTransaction,
    StockBuyTransaction,
    StockSellTransaction,
)

DEBIT_TYPES = (
    TransactionType.EXPENSE,
    TransactionType.TRANSFER,
    TransactionType.STOCK_BUY,
)
CREDIT_TYPES = (
    TransactionType.INCOME,
    TransactionType.TRANSFER,
    TransactionType.STOCK_SELL,
)


def apply_transaction(
    accounts: Sequence[Account],
    stock_holdings: Sequence[StockHolding],
    transaction: TransactionBase,
) -> tuple[list[Account], list[StockHolding]]:
    """
    Apply one transaction to snapshots of accounts and holdings.

    Returns:
        (next_accounts, next_stock_holdings)
    """
    if not isinstance(transaction, _VARIANTS):
        raise TypeError(
            f"Unsupported transaction object: {type(transaction).__name__}"
        )

    next_accounts = [
        _apply_to_account(account, transaction) for account in accounts
    ]

    if isinstance(transaction, StockBuyTransaction):
        next_holdings = _apply_buy(stock_holdings, transaction)
    elif isinstance(transaction, StockSellTransaction):
        next_holdings = _apply_sell(stock_holdings, transaction)
    else:
        next_holdings = [holding.model_copy() for holding in stock_holdings]

    return next_accounts, next_holdings


def _apply_to_account(account: Account, transaction: TransactionBase) -> Account:
    """
    Debit and credit are two independent checks, not if/else.

    STOCK_BUY can only ever debit and STOCK_SELL can only ever credit.
    """
    balance = account.balance
    kind = transaction.transaction_type

    if kind in DEBIT_TYPES and transaction.source_account_id == account.id:
        balance -= transaction.amount

    if kind in CREDIT_TYPES and transaction.destination_account_id == account.id:
        balance += transaction.amount

    return account.model_copy(update={"balance": balance})


def _apply_buy(
    stock_holdings: Sequence[StockHolding],
    transaction: StockBuyTransaction,
) -> list[StockHolding]:
    symbol = transaction.stock_symbol
    existing = next((h for h in stock_holdings if h.symbol == symbol), None)

    if existing is None:
        return [h.model_copy() for h in stock_holdings] + [
            StockHolding(
                symbol=symbol,
                name=symbol,
                quantity=transaction.stock_quantity,
                average_buy_price=transaction.stock_price,
                current_price=transaction.stock_price,
            )
        ]

    total_quantity = existing.quantity + transaction.stock_quantity
    total_cost = existing.quantity * existing.average_buy_price + transaction.amount

    updated = existing.model_copy(update={
        "quantity": total_quantity,
        "average_buy_price": total_cost / total_quantity,
        "current_price": transaction.stock_price or existing.current_price,
    })
    return [
        updated if h.symbol == symbol else h.model_copy()
        for h in stock_holdings
    ]


def _apply_sell(
    stock_holdings: Sequence[StockHolding],
    transaction: StockSellTransaction,
) -> list[StockHolding]:
    """Selling keeps the average cost; an emptied position is dropped."""
    result = []
    for holding in stock_holdings:
        if holding.symbol != transaction.stock_symbol:
            result.append(holding.model_copy())
            continue

        remaining = holding.quantity - transaction.stock_quantity
        if remaining > 0:
            result.append(holding.model_copy(update={"quantity": remaining}))
    return result


def replay(
    accounts: Sequence[Account],
    stock_holdings: Sequence[StockHolding],
    transactions: Iterable[TransactionBase],
) -> tuple[list[Account], list[StockHolding]]:
    """Fold a sequence of transactions through the engine, one at a time."""
    current_accounts = list(accounts)
    current_holdings = list(stock_holdings)
    for transaction in transactions:
        current_accounts, current_holdings = apply_transaction(
            current_accounts, current_holdings, transaction
        )
    return current_accounts, current_holdings


def total_balance(accounts: Iterable[Account]) -> Decimal:
    """Sum of all account balances."""
    return sum((account.balance for account in accounts), Decimal("0"))
