"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.category import (
    PREDEFINED_CATEGORIES,
    Category,
    CategoryKind,
    categories_for,
    get_category,
)
from pocket_ledger.models.ledger import (
    TRANSACTION_VARIANTS,
    Account,
    AccountType,
    ExpenseTransaction,
    IncomeTransaction,
    LedgerState,
    StockBuyTransaction,
    StockHolding,
    StockSellTransaction,
    Transaction,
    TransactionBase,
    TransactionDraft,
    TransactionType,
    TransferTransaction,
    ValidationIssue,
    ValidationResult,
    default_window_start,
    ensure_aware,
    generate_id,
    transaction_adapter,
    transaction_list_adapter,
    utc_now,
    utc_today,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Category catalog
    "PREDEFINED_CATEGORIES",
    "Category",
    "CategoryKind",
    "categories_for",
    "get_category",
    # Ledger models
    "TRANSACTION_VARIANTS",
    "Account",
    "AccountType",
    "ExpenseTransaction",
    "IncomeTransaction",
    "LedgerState",
    "StockBuyTransaction",
    "StockHolding",
    "StockSellTransaction",
    "Transaction",
    "TransactionBase",
    "TransactionDraft",
    "TransactionType",
    "TransferTransaction",
    "ValidationIssue",
    "ValidationResult",
    "default_window_start",
    "ensure_aware",
    "generate_id",
    "transaction_adapter",
    "transaction_list_adapter",
    "utc_now",
    "utc_today",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
