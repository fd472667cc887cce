"""Tables, price categories and the default hourly rate."""
from __future__ import annotations

import logging
from typing import Optional

from ..core.money import to_decimal
from .models import BilliardTable, PriceCategory, new_id
from .state import PosState

logger = logging.getLogger(__name__)


def _clean_name(name: str, what: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError(f"{what} name is required")
    return cleaned


def _positive_rate(value):
    rate = to_decimal(value)
    if rate <= 0:
        raise ValueError("hourly rate must be greater than zero")
    return rate


class FloorManager:
    __slots__ = ("state",)

    def __init__(self, state: PosState) -> None:
        self.state = state

    # ----- tables -----
    def add_table(self, name: str, price_category_id: Optional[str] = None) -> BilliardTable:
        table = BilliardTable(
            id=new_id("table"),
            name=_clean_name(name, "table"),
            price_category_id=price_category_id or None,
        )
        self.state.tables.append(table)
        self.state.commit("add_table")
        return table

    def remove_table(self, table_id: str) -> bool:
        table = self.state.get_table(table_id)
        if table is None:
            return False
        if not table.is_available:
            # the running session would be lost with the table
            logger.debug("remove_table(%s) refused: table is %s", table_id, table.status)
            return False
        self.state.tables.remove(table)
        self.state.commit("remove_table")
        return True

    def rename_table(self, table_id: str, name: str) -> bool:
        table = self.state.get_table(table_id)
        if table is None:
            return False
        cleaned = _clean_name(name, "table")
        if cleaned == table.name:
            return True
        table.name = cleaned
        self.state.commit("rename_table")
        return True

    def assign_price_category(self, table_id: str, category_id: Optional[str]) -> bool:
        """Takes effect from the next session; a running session keeps its rate."""
        table = self.state.get_table(table_id)
        if table is None:
            return False
        table.price_category_id = category_id or None
        self.state.commit("assign_price_category")
        return True

    def move_table(self, table_id: str, x: int, y: int) -> bool:
        table = self.state.get_table(table_id)
        if table is None:
            return False
        table.x, table.y = int(x), int(y)
        self.state.commit("move_table")
        return True

    def resize_table(self, table_id: str, width: int, height: int) -> bool:
        table = self.state.get_table(table_id)
        if table is None or width <= 0 or height <= 0:
            return False
        table.width, table.height = int(width), int(height)
        self.state.commit("resize_table")
        return True

    # ----- rates -----
    def set_hourly_rate(self, rate) -> None:
        self.state.hourly_rate = _positive_rate(rate)
        self.state.commit("set_hourly_rate")

    def add_price_category(self, name: str, hourly_rate) -> PriceCategory:
        category = PriceCategory(
            id=new_id("cat"),
            name=_clean_name(name, "category"),
            hourly_rate=_positive_rate(hourly_rate),
        )
        self.state.price_categories.append(category)
        self.state.commit("add_price_category")
        return category

    def update_price_category(self, category_id: str, name: str, hourly_rate) -> bool:
        category = self.state.get_category(category_id)
        if category is None:
            return False
        cleaned = _clean_name(name, "category")
        rate = _positive_rate(hourly_rate)
        category.name, category.hourly_rate = cleaned, rate
        self.state.commit("update_price_category")
        return True

    def delete_price_category(self, category_id: str) -> bool:
        """Remove a category; tables that used it fall back to the default rate."""
        category = self.state.get_category(category_id)
        if category is None:
            return False
        self.state.price_categories.remove(category)
        self.state.commit("delete_price_category")
        return True
