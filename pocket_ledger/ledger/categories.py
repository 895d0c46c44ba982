"""Category label resolution for transactions."""

from pocket_ledger.models.category import get_category
from pocket_ledger.models.ledger import TransactionBase

DASHBOARD_FALLBACK = "Other"
HISTORY_FALLBACK = "General"


def resolve_category_label(
    transaction: TransactionBase,
    fallback: str = DASHBOARD_FALLBACK,
) -> str:
    """
    Human-readable category for a transaction.

    A custom category name wins, then the catalog entry for category_id,
    then the fallback label.
    """
    if transaction.category_name:
        return transaction.category_name

    category = get_category(transaction.category_id)
    if category is not None:
        return category.name

    return fallback

