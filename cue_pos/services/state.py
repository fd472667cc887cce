"""In-memory venue state with change notification.

``PosState`` is the single writer's view of the venue. Commands in the
other service modules mutate it and then call :meth:`PosState.commit`, which
emits ``state_changed`` on the container's own bus. Persistence listens to
that event; nothing here knows about storage.
"""
from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ..core.bus import EventBus
from ..core.money import to_decimal
from .models import (
    BilliardTable,
    Order,
    PriceCategory,
    RetailItem,
    RetailSale,
    SessionRecord,
)

logger = logging.getLogger(__name__)

STATE_CHANGED = "state_changed"
STATE_REPLACED = "state_replaced"

DEFAULT_HOURLY_RATE = Decimal("15")


def _default_tables() -> List[BilliardTable]:
    spots = [(50, 50), (250, 50), (450, 50), (50, 200)]
    return [
        BilliardTable(id=f"table-{i}", name=f"Table {i}", x=x, y=y)
        for i, (x, y) in enumerate(spots, start=1)
    ]


def _default_categories() -> List[PriceCategory]:
    return [
        PriceCategory("cat-regular", "Regular", Decimal("15")),
        PriceCategory("cat-vip", "VIP", Decimal("25")),
        PriceCategory("cat-vvip", "VVIP", Decimal("50")),
    ]


def _default_items() -> List[RetailItem]:
    return [
        RetailItem("item-1", "Coca-Cola", Decimal("3.50"), "Drinks", 50),
        RetailItem("item-2", "Water Bottle", Decimal("2.00"), "Drinks", 100),
        RetailItem("item-3", "Energy Drink", Decimal("4.50"), "Drinks", 30),
        RetailItem("item-4", "Chips", Decimal("2.50"), "Snacks", 40),
        RetailItem("item-5", "Candy Bar", Decimal("1.50"), "Snacks", 60),
        RetailItem("item-6", "Cigarettes", Decimal("12.00"), "Tobacco", 25),
    ]


def _parse_list(data: Dict[str, Any], key: str, parse) -> Optional[list]:
    raw = data.get(key)
    if raw is None:
        return None
    return [parse(entry) for entry in raw]


def empty_snapshot(hourly_rate=DEFAULT_HOURLY_RATE) -> Dict[str, Any]:
    """Shape returned by a store that has never been written."""
    return {
        "tables": [],
        "sessions": [],
        "retailItems": [],
        "retailSales": [],
        "hourlyRate": float(hourly_rate),
        "updatedAt": int(time.time() * 1000),
    }


class PosState:
    __slots__ = (
        "events",
        "tables",
        "sessions",
        "price_categories",
        "retail_items",
        "retail_sales",
        "orders",
        "hourly_rate",
    )

    def __init__(self, hourly_rate=DEFAULT_HOURLY_RATE) -> None:
        self.events = EventBus()
        self.tables: List[BilliardTable] = []
        self.sessions: List[SessionRecord] = []
        self.price_categories: List[PriceCategory] = []
        self.retail_items: List[RetailItem] = []
        self.retail_sales: List[RetailSale] = []
        self.orders: List[Order] = []
        self.hourly_rate: Decimal = to_decimal(hourly_rate)

    @classmethod
    def with_defaults(cls, hourly_rate=DEFAULT_HOURLY_RATE) -> "PosState":
        state = cls(hourly_rate)
        state._seed()
        return state

    def _seed(self) -> None:
        self.tables = _default_tables()
        self.price_categories = _default_categories()
        self.retail_items = _default_items()

    # ----- lookups -----
    def get_table(self, table_id: str) -> Optional[BilliardTable]:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def get_record(self, session_id: str) -> Optional[SessionRecord]:
        for record in self.sessions:
            if record.id == session_id:
                return record
        return None

    def get_item(self, item_id: str) -> Optional[RetailItem]:
        for item in self.retail_items:
            if item.id == item_id:
                return item
        return None

    def get_order(self, order_id: str) -> Optional[Order]:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def get_category(self, category_id: str) -> Optional[PriceCategory]:
        for cat in self.price_categories:
            if cat.id == category_id:
                return cat
        return None

    # ----- change notification -----
    def commit(self, reason: str) -> None:
        logger.debug("state committed: %s", reason)
        self.events.emit(STATE_CHANGED, reason)

    def subscribe(self, callback) -> None:
        self.events.subscribe(STATE_CHANGED, callback)

    # ----- snapshot -----
    def snapshot(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "sessions": [s.to_dict() for s in self.sessions],
            "retailItems": [i.to_dict() for i in self.retail_items],
            "priceCategories": [c.to_dict() for c in self.price_categories],
            "retailSales": [s.to_dict() for s in self.retail_sales],
            "orders": [o.to_dict() for o in self.orders],
            "hourlyRate": float(self.hourly_rate),
            "updatedAt": int(time.time() * 1000),
        }

    def apply_snapshot(self, data: Dict[str, Any]) -> None:
        """Overwrite the collections with a fetched snapshot.

        Missing keys keep the local value. An empty table or category list
        keeps the local floor too, so a freshly created store does not wipe
        the venue layout. The whole document is parsed before anything is
        assigned; a malformed snapshot raises ``ValueError`` and leaves the
        state untouched.
        """
        try:
            parsed = {
                "tables": [BilliardTable.from_dict(t) for t in data.get("tables") or []],
                "price_categories": [
                    PriceCategory.from_dict(c) for c in data.get("priceCategories") or []
                ],
                "sessions": _parse_list(data, "sessions", SessionRecord.from_dict),
                "retail_items": _parse_list(data, "retailItems", RetailItem.from_dict),
                "retail_sales": _parse_list(data, "retailSales", RetailSale.from_dict),
                "orders": _parse_list(data, "orders", Order.from_dict),
                "hourly_rate": (
                    None if data.get("hourlyRate") is None else to_decimal(data["hourlyRate"])
                ),
            }
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise ValueError(f"malformed state snapshot: {exc!r}") from exc

        for name, value in parsed.items():
            if value is None or (name in ("tables", "price_categories") and not value):
                continue
            setattr(self, name, value)
        self._link_unowned_sales()
        self.events.emit(STATE_REPLACED)

    def _link_unowned_sales(self) -> None:
        # older blobs tie a sale to its order only by sharing a timestamp
        for sale in self.retail_sales:
            if sale.order_id:
                continue
            for order in self.orders:
                if order.timestamp == sale.timestamp and any(
                    line.item_id == sale.item_id for line in order.items
                ):
                    sale.order_id = order.id
                    break

    def reset(self) -> None:
        """Back to factory data: default floor, categories and stock, empty ledger."""
        self.sessions = []
        self.retail_sales = []
        self.orders = []
        self.hourly_rate = DEFAULT_HOURLY_RATE
        self._seed()
        self.commit("reset")
