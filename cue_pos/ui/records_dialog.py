# cue_pos/ui/records_dialog.py
from PyQt6.QtWidgets import (
    QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit, QComboBox,
    QTableWidget, QTableWidgetItem, QHeaderView, QMessageBox, QTabWidget, QWidget
)
from PyQt6.QtCore import Qt

from .common.big_dialog import BigDialog
from ..core.money import fmt_money
from ..services.billing import format_span
from ..services.reports import filter_orders, filter_sessions, records_total
from ..services.retail import RetailManager
from ..services.sessions import SessionManager

PERIOD_LABELS = [
    ("today", "Today"),
    ("yesterday", "Yesterday"),
    ("week", "Last 7 days"),
    ("month", "Last 30 days"),
    ("last_month", "Previous month"),
    ("all", "All time"),
]


def _item(text, data=None):
    cell = QTableWidgetItem(str(text))
    cell.setFlags(cell.flags() & ~Qt.ItemFlag.ItemIsEditable)
    if data is not None:
        cell.setData(Qt.ItemDataRole.UserRole, data)
    return cell


class RecordsDialog(BigDialog):
    """Session ledger and order history with search, period filter and corrections."""

    def __init__(self, sessions: SessionManager, retail: RetailManager, printer=None,
                 currency: str = "₱", parent=None):
        super().__init__("Records", remember_key="records", parent=parent)
        self.sessions = sessions
        self.retail = retail
        self.printer = printer
        self.currency = currency
        self.state = sessions.state

        root = QVBoxLayout(self)
        filters = QHBoxLayout()
        self.search = QLineEdit(); self.search.setPlaceholderText("Search")
        self.search.textChanged.connect(self._reload)
        self.period = QComboBox()
        for key, label in PERIOD_LABELS:
            self.period.addItem(label, key)
        self.period.currentIndexChanged.connect(self._reload)
        filters.addWidget(self.search, 1)
        filters.addWidget(self.period)
        root.addLayout(filters)

        self.tabs = QTabWidget()
        root.addWidget(self.tabs, 1)

        # sessions tab
        sess_page = QWidget(); sv = QVBoxLayout(sess_page)
        self.session_table = QTableWidget(0, 6)
        self.session_table.setHorizontalHeaderLabels(["Table", "Start", "Duration", "Type", "Amount", "Status"])
        self.session_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.session_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        sv.addWidget(self.session_table, 1)
        srow = QHBoxLayout()
        self.session_total = QLabel("")
        srow.addWidget(self.session_total, 1)
        btn_reprint = QPushButton("Reprint receipt"); btn_reprint.clicked.connect(self._reprint)
        btn_void = QPushButton("Void session"); btn_void.clicked.connect(self._void_session)
        srow.addWidget(btn_reprint); srow.addWidget(btn_void)
        btn_reprint.setEnabled(printer is not None)
        sv.addLayout(srow)
        self.tabs.addTab(sess_page, "Sessions")

        # orders tab
        order_page = QWidget(); ov = QVBoxLayout(order_page)
        self.order_table = QTableWidget(0, 5)
        self.order_table.setHorizontalHeaderLabels(["Time", "Items", "Total", "Status", "Notes"])
        self.order_table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.order_table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        ov.addWidget(self.order_table, 1)
        orow = QHBoxLayout(); orow.addStretch(1)
        btn_void_order = QPushButton("Void order"); btn_void_order.clicked.connect(self._void_order)
        btn_delete_order = QPushButton("Delete order (restock)"); btn_delete_order.clicked.connect(self._delete_order)
        orow.addWidget(btn_void_order); orow.addWidget(btn_delete_order)
        ov.addLayout(orow)
        self.tabs.addTab(order_page, "Orders")

        close = QPushButton("Close"); close.clicked.connect(self.accept)
        root.addWidget(close, 0, alignment=Qt.AlignmentFlag.AlignRight)

        self._reload()

    def _reload(self):
        search = self.search.text()
        period = self.period.currentData()

        records = filter_sessions(self.state.sessions, search, period, now=self.sessions.clock())
        self.session_table.setRowCount(len(records))
        for r, rec in enumerate(records):
            self.session_table.setItem(r, 0, _item(rec.table_name, rec.id))
            self.session_table.setItem(r, 1, _item(f"{rec.start_time:%Y-%m-%d %H:%M}"))
            self.session_table.setItem(r, 2, _item(format_span(rec.start_time, rec.end_time)))
            self.session_table.setItem(r, 3, _item(rec.session_type))
            self.session_table.setItem(r, 4, _item(fmt_money(rec.total_amount, self.currency)))
            self.session_table.setItem(r, 5, _item(rec.status))
        self.session_total.setText(f"Total: {fmt_money(records_total(records), self.currency)}")

        orders = filter_orders(self.state.orders, search, period, now=self.retail.clock())
        self.order_table.setRowCount(len(orders))
        for r, order in enumerate(orders):
            items = ", ".join(f"{line.quantity}x {line.item_name}" for line in order.items)
            self.order_table.setItem(r, 0, _item(f"{order.timestamp:%Y-%m-%d %H:%M}", order.id))
            self.order_table.setItem(r, 1, _item(items))
            self.order_table.setItem(r, 2, _item(fmt_money(order.total_price, self.currency)))
            self.order_table.setItem(r, 3, _item(order.status))
            self.order_table.setItem(r, 4, _item(order.notes))

    def _selected_id(self, table: QTableWidget):
        row = table.currentRow()
        if row < 0:
            return None
        cell = table.item(row, 0)
        return cell.data(Qt.ItemDataRole.UserRole) if cell else None

    def _void_session(self):
        session_id = self._selected_id(self.session_table)
        if not session_id:
            return
        answer = QMessageBox.question(self, "Void session", "Void the selected session? It stays in the ledger.")
        if answer != QMessageBox.StandardButton.Yes:
            return
        self.sessions.void_session(session_id)
        self._reload()

    def _reprint(self):
        session_id = self._selected_id(self.session_table)
        record = self.state.get_record(session_id) if session_id else None
        if record is None or self.printer is None:
            return
        path = self.printer.print_session_receipt(record)
        QMessageBox.information(self, "Receipt", f"Saved: {path}")

    def _void_order(self):
        order_id = self._selected_id(self.order_table)
        if not order_id:
            return
        self.retail.void_order(order_id)
        self._reload()

    def _delete_order(self):
        order_id = self._selected_id(self.order_table)
        if not order_id:
            return
        answer = QMessageBox.question(self, "Delete order", "Delete the order and return its items to stock?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        self.retail.delete_order(order_id)
        self._reload()
