"""Retail inventory, counter sales and order corrections."""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.money import to_money
from .models import (
    ORDER_VOIDED,
    Order,
    OrderItem,
    RetailItem,
    RetailSale,
    new_id,
)
from .state import PosState

logger = logging.getLogger(__name__)

INVENTORY_LOW = "inventory_low"
DEFAULT_LOW_STOCK = 5

CartLine = Tuple[str, int]


class StockError(Exception):
    pass


def _clean_quantity(quantity) -> int:
    qty = int(quantity)
    if qty <= 0:
        raise ValueError("quantity must be at least 1")
    return qty


def _merge_lines(lines: Iterable[CartLine]) -> "OrderedDict[str, int]":
    merged: "OrderedDict[str, int]" = OrderedDict()
    for item_id, quantity in lines:
        merged[item_id] = merged.get(item_id, 0) + _clean_quantity(quantity)
    return merged


class RetailManager:
    __slots__ = ("state", "clock", "low_stock_threshold")

    def __init__(
        self,
        state: PosState,
        clock: Optional[Callable[[], datetime]] = None,
        low_stock_threshold: int = DEFAULT_LOW_STOCK,
    ) -> None:
        self.state = state
        self.clock = clock or datetime.now
        self.low_stock_threshold = low_stock_threshold

    # ----- items -----
    def add_item(self, name: str, price, category: str, stock: int = 0) -> RetailItem:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("item name is required")
        amount = to_money(price)
        if amount < 0:
            raise ValueError("price cannot be negative")
        qty = int(stock)
        if qty < 0:
            raise ValueError("stock cannot be negative")
        item = RetailItem(new_id("item"), cleaned, amount, (category or "").strip(), qty)
        self.state.retail_items.append(item)
        self.state.commit("add_item")
        return item

    def update_item(
        self,
        item_id: str,
        *,
        name: Optional[str] = None,
        price=None,
        category: Optional[str] = None,
        stock: Optional[int] = None,
    ) -> bool:
        item = self.state.get_item(item_id)
        if item is None:
            return False
        new_name = item.name if name is None else name.strip()
        if not new_name:
            raise ValueError("item name is required")
        new_price = item.price if price is None else to_money(price)
        if new_price < 0:
            raise ValueError("price cannot be negative")
        new_stock = item.stock if stock is None else int(stock)
        if new_stock < 0:
            raise ValueError("stock cannot be negative")
        item.name = new_name
        item.price = new_price
        item.category = item.category if category is None else category.strip()
        item.stock = new_stock
        self.state.commit("update_item")
        return True

    def remove_item(self, item_id: str) -> bool:
        item = self.state.get_item(item_id)
        if item is None:
            return False
        self.state.retail_items.remove(item)
        self.state.commit("remove_item")
        return True

    def low_stock(self, threshold: Optional[int] = None) -> List[RetailItem]:
        limit = self.low_stock_threshold if threshold is None else threshold
        return [i for i in self.state.retail_items if i.stock <= limit]

    def inventory_value(self) -> Decimal:
        return to_money(sum((i.price * i.stock for i in self.state.retail_items), Decimal("0")))

    # ----- sales -----
    def record_sale(self, item_id: str, quantity: int) -> Order:
        return self.checkout([(item_id, quantity)])

    def checkout(self, lines: Sequence[CartLine], notes: str = "") -> Order:
        """Sell a cart as one order.

        Every line is checked against stock before anything is written, so a
        short line rejects the whole cart.
        """
        wanted = _merge_lines(lines)
        if not wanted:
            raise ValueError("cart is empty")

        picked: List[Tuple[RetailItem, int]] = []
        for item_id, qty in wanted.items():
            item = self.state.get_item(item_id)
            if item is None:
                raise StockError(f"unknown item '{item_id}'")
            if item.stock < qty:
                raise StockError(f"not enough '{item.name}' in stock ({item.stock} left)")
            picked.append((item, qty))

        now = self.clock()
        order = Order(id=new_id("order"), timestamp=now, notes=notes)
        low: List[Tuple[str, int, int]] = []
        for item, qty in picked:
            before = item.stock
            item.stock = before - qty
            order.items.append(OrderItem(item.id, item.name, qty, item.price))
            self.state.retail_sales.append(
                RetailSale(
                    id=new_id("sale"),
                    item_id=item.id,
                    item_name=item.name,
                    quantity=qty,
                    unit_price=item.price,
                    total_price=to_money(item.price * qty),
                    timestamp=now,
                    order_id=order.id,
                )
            )
            if before > self.low_stock_threshold >= item.stock:
                low.append((item.name, before, item.stock))
        self.state.orders.append(order)
        self.state.commit("checkout")

        for name, before, after in low:
            logger.info("inventory low: %s %s -> %s", name, before, after)
            self.state.events.emit(INVENTORY_LOW, name, before, after, self.low_stock_threshold)
        return order

    # ----- orders -----
    def create_order(self, items: Sequence[OrderItem], notes: str = "") -> Order:
        """Record an order without moving stock."""
        kept = [i for i in items if i.quantity > 0]
        if not kept:
            raise ValueError("order has no items")
        order = Order(id=new_id("order"), items=list(kept), timestamp=self.clock(), notes=notes)
        self.state.orders.append(order)
        self.state.commit("create_order")
        return order

    def _linked_sales(self, order: Order) -> List[RetailSale]:
        return [sale for sale in self.state.retail_sales if sale.order_id == order.id]

    def edit_order(
        self,
        order_id: str,
        items: Sequence[OrderItem],
        notes: Optional[str] = None,
    ) -> bool:
        """Replace an order's lines.

        Quantity changes on lines that came from a counter sale are carried
        to the sale record and to stock. Lines with no sale behind them only
        change the order.
        """
        order = self.state.get_order(order_id)
        if order is None:
            return False
        new_items = [i for i in items if i.quantity > 0]
        old_qty: Dict[str, int] = {}
        for line in order.items:
            old_qty[line.item_id] = old_qty.get(line.item_id, 0) + line.quantity
        new_qty: Dict[str, int] = {}
        for line in new_items:
            new_qty[line.item_id] = new_qty.get(line.item_id, 0) + line.quantity

        sales = {sale.item_id: sale for sale in self._linked_sales(order)}
        moves: List[Tuple[RetailSale, int]] = []
        for item_id, sale in sales.items():
            diff = new_qty.get(item_id, 0) - old_qty.get(item_id, 0)
            if diff == 0:
                continue
            item = self.state.get_item(item_id)
            if diff > 0 and item is not None and item.stock < diff:
                raise StockError(f"not enough '{item.name}' in stock ({item.stock} left)")
            moves.append((sale, diff))

        for sale, diff in moves:
            item = self.state.get_item(sale.item_id)
            if item is not None:
                item.stock -= diff
            remaining = sale.quantity + diff
            if remaining > 0:
                sale.quantity = remaining
                sale.total_price = to_money(sale.unit_price * remaining)
            else:
                self.state.retail_sales.remove(sale)

        order.items = list(new_items)
        if notes is not None:
            order.notes = notes
        self.state.commit("edit_order")
        return True

    def delete_order(self, order_id: str) -> bool:
        """Undo an order: its sales are removed and their stock comes back."""
        order = self.state.get_order(order_id)
        if order is None:
            return False
        for sale in self._linked_sales(order):
            item = self.state.get_item(sale.item_id)
            if item is not None:
                item.stock += sale.quantity
            self.state.retail_sales.remove(sale)
        self.state.orders.remove(order)
        self.state.commit("delete_order")
        return True

    def void_order(self, order_id: str) -> bool:
        """Flag an order as voided for the audit trail; stock is left as is."""
        order = self.state.get_order(order_id)
        if order is None:
            return False
        if order.status == ORDER_VOIDED:
            return True
        order.status = ORDER_VOIDED
        self.state.commit("void_order")
        return True
