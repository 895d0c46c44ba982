"""
Validation Package

Two-stage validation of transaction drafts, and conversion of validated
drafts into recorded transactions.
"""

from pocket_ledger.validation.validator import (
    TransactionBuildError,
    TransactionValidator,
    build_transaction,
    resolve_timestamp,
)

__all__ = [
    "TransactionBuildError",
    "TransactionValidator",
    "build_transaction",
    "resolve_timestamp",
]
