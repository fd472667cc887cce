from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QListWidget, QLabel, QPushButton, QComboBox, QSpinBox
)

from ...core.money import fmt_money, to_money


class RetailPanel(QWidget):
    """Counter cart: pick items, then sell the cart as one order."""

    def __init__(self, on_checkout, currency: str = "₱"):
        super().__init__()
        self.on_checkout = on_checkout
        self.currency = currency
        self._cart: list[tuple[str, str, int, object]] = []
        self._catalog: dict[str, tuple[str, object]] = {}

        v = QVBoxLayout(self)
        v.addWidget(QLabel("Counter sale"))

        pick = QHBoxLayout()
        self.items = QComboBox()
        self.qty = QSpinBox(); self.qty.setRange(1, 999)
        add_btn = QPushButton("Add")
        pick.addWidget(self.items, 1); pick.addWidget(self.qty); pick.addWidget(add_btn)
        v.addLayout(pick)

        self.cart = QListWidget()
        v.addWidget(self.cart, 1)
        self.total = QLabel("")
        v.addWidget(self.total)

        row = QHBoxLayout()
        remove_btn = QPushButton("Remove line")
        self.sell_btn = QPushButton("Sell")
        row.addWidget(remove_btn); row.addWidget(self.sell_btn)
        v.addLayout(row)

        add_btn.clicked.connect(self._add)
        remove_btn.clicked.connect(self._remove)
        self.sell_btn.clicked.connect(self._sell)
        self._render()

    def set_items(self, items):
        current = self.items.currentData()
        self.items.clear()
        self._catalog = {item.id: (item.name, item.price) for item in items}
        for item in items:
            self.items.addItem(f"{item.name}  {fmt_money(item.price, self.currency)}  ({item.stock} left)", item.id)
        idx = self.items.findData(current)
        if idx >= 0:
            self.items.setCurrentIndex(idx)

    def clear_cart(self):
        self._cart = []
        self._render()

    def _add(self):
        item_id = self.items.currentData()
        if not item_id:
            return
        label, price = self._catalog[item_id]
        self._cart.append((item_id, label, self.qty.value(), price))
        self._render()

    def _remove(self):
        row = self.cart.currentRow()
        if row >= 0:
            del self._cart[row]
            self._render()

    def _sell(self):
        if not self._cart:
            return
        if self.on_checkout([(item_id, qty) for item_id, _, qty, _ in self._cart]):
            self.clear_cart()

    def _render(self):
        self.cart.clear()
        total = to_money(0)
        for _, label, qty, price in self._cart:
            line_total = to_money(price * qty)
            total += line_total
            self.cart.addItem(f"{qty} x {label}  {fmt_money(line_total, self.currency)}")
        self.total.setText(f"Total: {fmt_money(total, self.currency)}")
        self.sell_btn.setEnabled(bool(self._cart))
