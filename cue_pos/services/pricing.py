"""Hourly rate lookup for a table."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from ..core.money import to_decimal
from .models import BilliardTable, PriceCategory


def find_category(
    categories: Iterable[PriceCategory], category_id: Optional[str]
) -> Optional[PriceCategory]:
    if not category_id:
        return None
    for cat in categories:
        if cat.id == category_id:
            return cat
    return None


def resolve_rate(
    table: BilliardTable,
    price_categories: Iterable[PriceCategory],
    default_rate,
) -> Decimal:
    """Return the table's category rate, or *default_rate*.

    A table pointing at a category that no longer exists silently gets the
    default rate; deleting a category never rewrites the tables using it.
    """
    category = find_category(price_categories, table.price_category_id)
    if category is not None:
        return to_decimal(category.hourly_rate)
    return to_decimal(default_rate)
