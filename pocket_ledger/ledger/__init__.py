"""Ledger engine package."""

from pocket_ledger.ledger.categories import (
    DASHBOARD_FALLBACK,
    HISTORY_FALLBACK,
    resolve_category_label,
)
from pocket_ledger.ledger.engine import apply_transaction, replay, total_balance

__all__ = [
    "DASHBOARD_FALLBACK",
    "HISTORY_FALLBACK",
    "apply_transaction",
    "replay",
    "resolve_category_label",
    "total_balance",
]
