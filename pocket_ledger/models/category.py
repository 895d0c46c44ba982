"""
Category Catalog

A fixed list of spending and income categories. Transactions reference
these by id; anything outside the catalog is stored as a free-text
custom category name on the transaction itself.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CategoryKind(str, Enum):
    """Direction of money a category describes."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Category(BaseModel):
    """A predefined category."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon: str
    kind: CategoryKind


PREDEFINED_CATEGORIES: tuple[Category, ...] = (
    Category(id="cat_salary", name="Salary", icon="briefcase", kind=CategoryKind.INCOME),
    Category(id="cat_freelance", name="Freelance", icon="laptop", kind=CategoryKind.INCOME),
    Category(id="cat_food", name="Food & Dining", icon="utensils", kind=CategoryKind.EXPENSE),
    Category(id="cat_transport", name="Transport", icon="car", kind=CategoryKind.EXPENSE),
    Category(id="cat_shopping", name="Shopping", icon="shopping-bag", kind=CategoryKind.EXPENSE),
    Category(id="cat_bills", name="Bills & Utilities", icon="file-text", kind=CategoryKind.EXPENSE),
    Category(id="cat_entertainment", name="Entertainment", icon="film", kind=CategoryKind.EXPENSE),
    Category(id="cat_health", name="Health", icon="heart", kind=CategoryKind.EXPENSE),
)

_CATEGORIES_BY_ID = {category.id: category for category in PREDEFINED_CATEGORIES}


def get_category(category_id: Optional[str]) -> Optional[Category]:
    """Look up a predefined category by exact id."""
    if not category_id:
        return None
    return _CATEGORIES_BY_ID.get(category_id)


def categories_for(kind: CategoryKind) -> list[Category]:
    """All predefined categories of one kind, in catalog order."""
    return [category for category in PREDEFINED_CATEGORIES if category.kind == kind]
