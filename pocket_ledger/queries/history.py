"""Transaction history list: one display row per recorded transaction."""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel

from pocket_ledger.ledger.categories import HISTORY_FALLBACK, resolve_category_label
from pocket_ledger.models.ledger import Account, TransactionBase, TransactionType

UNKNOWN_ACCOUNT = "Unknown"

# Sign shown in front of the amount; transfers carry none
DIRECTIONS: dict[TransactionType, Optional[str]] = {
    TransactionType.INCOME: "+",
    TransactionType.STOCK_SELL: "+",
    TransactionType.EXPENSE: "-",
    TransactionType.STOCK_BUY: "-",
    TransactionType.TRANSFER: None,
}


class HistoryEntry(BaseModel):
    """A transaction as shown in the history list."""

    transaction_id: str
    transaction_type: TransactionType
    date: datetime
    title: str
    subtitle: str
    amount: Decimal
    direction: Optional[Literal["+", "-"]] = None
    route: Optional[str] = None

    @property
    def signed_amount(self) -> str:
        return f"{self.direction or ''}{self.amount:,}"


def humanize_type(transaction_type: TransactionType) -> str:
    """'STOCK_BUY' -> 'stock buy'."""
    return transaction_type.value.replace("_", " ").lower()


def transaction_title(transaction: TransactionBase) -> str:
    kind = transaction.transaction_type
    if kind == TransactionType.STOCK_BUY:
        return f"Buy {transaction.stock_symbol}"
    if kind == TransactionType.STOCK_SELL:
        return f"Sell {transaction.stock_symbol}"
    if kind == TransactionType.TRANSFER:
        return "Transfer"
    return resolve_category_label(transaction, HISTORY_FALLBACK)


def build_history(
    transactions: list[TransactionBase],
    accounts: list[Account],
) -> list[HistoryEntry]:
    """
    Display rows for the history page, newest first.

    Accounts that were deleted after a transaction was recorded are
    shown as "Unknown" in transfer routes.
    """
    names = {account.id: account.name for account in accounts}

    def account_name(account_id: Optional[str]) -> str:
        return names.get(account_id, UNKNOWN_ACCOUNT)

    entries = []
    for txn in sorted(transactions, key=lambda t: t.date, reverse=True):
        kind = txn.transaction_type
        route = None
        if kind == TransactionType.TRANSFER:
            route = (
                f"{account_name(txn.source_account_id)} → "
                f"{account_name(txn.destination_account_id)}"
            )

        entries.append(HistoryEntry(
            transaction_id=txn.id,
            transaction_type=kind,
            date=txn.date,
            title=transaction_title(txn),
            subtitle=txn.notes or humanize_type(kind),
            amount=txn.amount,
            direction=DIRECTIONS[kind],
            route=route,
        ))

    return entries
