# cue_pos/ui/main_window.py
import logging

from PyQt6.QtWidgets import (
    QMainWindow,
    QWidget,
    QVBoxLayout,
    QLabel,
    QToolBar,
    QHBoxLayout,
    QPushButton,
    QFrame,
    QScrollArea,
)
from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QAction, QShortcut, QKeySequence

from .components.table_map import TableMap
from .components.session_panel import SessionPanel
from .components.summary_panel import SummaryPanel
from .components.retail_panel import RetailPanel
from .records_dialog import RecordsDialog
from .tables_dialog import TablesDialog
from ..core.money import fmt_money
from ..services.billing import estimate_amount, is_overtime
from ..services.models import SESSION_OPEN, SESSION_FIXED, TABLE_RUNNING
from ..services.reports import build_summary
from ..services.retail import INVENTORY_LOW, StockError
from ..services.state import STATE_CHANGED, STATE_REPLACED

logger = logging.getLogger(__name__)

BANNER_STYLE = """
QFrame#ToastBanner { border-radius:10px; background:#333; }
QFrame#ToastBanner[kind="success"] { background:#1b5e20; }
QFrame#ToastBanner[kind="warn"] { background:#8d6e00; }
QFrame#ToastBanner[kind="error"] { background:#8e1b1b; }
"""


class MainWindow(QMainWindow):
    def __init__(self, state, sessions, floor, retail, printer=None, config=None):
        super().__init__()
        self.state = state
        self.sessions = sessions
        self.floor = floor
        self.retail = retail
        self.printer = printer
        self.config = config or {}
        self.currency = self.config.get("currency", "₱")
        self.auto_print = bool(self.config.get("auto_print_receipts", False))
        self.current_table = None

        self.resize(1440, 900)
        self.setWindowTitle("Cue POS")
        self.setStyleSheet(BANNER_STYLE)
        self._status = self.statusBar()
        self._status.setSizeGripEnabled(False)

        bar = QToolBar("Main"); self.addToolBar(bar)
        self.act_tables = QAction("Tables && pricing", self); self.act_tables.triggered.connect(self._open_tables)
        self.act_records = QAction("Records", self); self.act_records.triggered.connect(self._open_records)
        bar.addAction(self.act_tables)
        bar.addAction(self.act_records)

        QShortcut(QKeySequence("Esc"), self, activated=self._clear_selection)
        QShortcut(QKeySequence("Ctrl+Shift+T"), self, activated=self._open_tables)
        QShortcut(QKeySequence("Ctrl+Shift+R"), self, activated=self._open_records)

        container = QWidget()
        container_layout = QVBoxLayout(container)
        container_layout.setContentsMargins(16, 16, 16, 16)
        container_layout.setSpacing(12)

        self.banner = QFrame()
        self.banner.setObjectName("ToastBanner")
        banner_layout = QHBoxLayout(self.banner)
        banner_layout.setContentsMargins(18, 12, 12, 12)
        self.banner_label = QLabel()
        self.banner_label.setWordWrap(True)
        self.banner_close = QPushButton("✕")
        self.banner_close.setFixedWidth(36)
        self.banner_close.setFlat(True)
        self.banner_close.clicked.connect(self._hide_banner)
        banner_layout.addWidget(self.banner_label, 1)
        banner_layout.addWidget(self.banner_close, 0, alignment=Qt.AlignmentFlag.AlignTop)
        self.banner.setVisible(False)
        container_layout.addWidget(self.banner, 0)

        self.banner_timer = QTimer(self)
        self.banner_timer.setSingleShot(True)
        self.banner_timer.timeout.connect(self._hide_banner)

        row = QHBoxLayout()
        self.table_map = TableMap(self._on_table_select)
        scroll = QScrollArea(); scroll.setWidgetResizable(True); scroll.setWidget(self.table_map)
        row.addWidget(scroll, 3)

        side = QVBoxLayout()
        self.session_panel = SessionPanel(
            on_start_open=lambda: self._start(SESSION_OPEN),
            on_start_fixed=lambda hours: self._start(SESSION_FIXED, hours),
            on_end=self._end,
            on_pay=self._pay,
            on_change_duration=self._change_duration,
        )
        side.addWidget(self.session_panel, 0)
        self.retail_panel = RetailPanel(self._checkout, self.currency)
        side.addWidget(self.retail_panel, 1)
        row.addLayout(side, 1)

        self.summary_panel = SummaryPanel(self.currency)
        row.addWidget(self.summary_panel, 1)
        container_layout.addLayout(row, 1)
        self.setCentralWidget(container)

        # the bus holds bound methods weakly; the window outlives its subscriptions
        self.state.events.subscribe(STATE_CHANGED, self._on_state_changed)
        self.state.events.subscribe(STATE_REPLACED, self._on_state_replaced)
        self.state.events.subscribe(INVENTORY_LOW, self._on_inventory_low)

        self._tick_timer = QTimer(self)
        self._tick_timer.timeout.connect(self._tick)
        self._tick_timer.start(1000)

        self._refresh_all()

    # ---------------- refresh ----------------
    def _refresh_all(self):
        self.table_map.set_tables(self.state.tables)
        if self.current_table and self.state.get_table(self.current_table) is None:
            self.current_table = None
            self.table_map.clear_selection()
        self.session_panel.show_table(self.state.get_table(self.current_table) if self.current_table else None)
        self.retail_panel.set_items(self.state.retail_items)
        self.summary_panel.show_summary(
            build_summary(self.state.sessions, self.state.retail_sales, self.state.orders, now=self.sessions.clock())
        )
        self._tick()

    def _tick(self):
        """Redraw clocks and amounts; read-only, so a session paid out meanwhile is simply skipped."""
        now = self.sessions.clock()
        for table in self.state.tables:
            session = table.current_session
            if session is None:
                self.table_map.update_table(table.id, None, None, False, self.currency)
                continue
            elapsed = self.sessions.live_elapsed_ms(table.id, now)
            if elapsed is None:
                continue
            if table.status == TABLE_RUNNING and session.session_type == SESSION_OPEN:
                amount = estimate_amount(elapsed, session.hourly_rate)
            else:
                amount = self.sessions.current_amount(table.id, now)
            self.table_map.update_table(
                table.id, elapsed, amount, is_overtime(session, elapsed), self.currency
            )

        if self.current_table:
            table = self.state.get_table(self.current_table)
            session = table.current_session if table is not None else None
            if session is None:
                self.session_panel.show_live(None, None)
                return
            elapsed = self.sessions.live_elapsed_ms(table.id, now)
            self.session_panel.show_live(
                elapsed,
                self.sessions.current_amount(table.id, now),
                self.currency,
                elapsed is not None and is_overtime(session, elapsed),
            )

    # ---------------- table flow ----------------
    def _on_table_select(self, table_id):
        self.current_table = table_id
        self.session_panel.show_table(self.state.get_table(table_id))
        self._tick()

    def _clear_selection(self):
        self.current_table = None
        self.table_map.clear_selection()
        self.session_panel.show_table(None)

    def _start(self, session_type, hours=None):
        if not self.current_table:
            self._show_banner("Select a table first.", "warn")
            return
        if self.sessions.start_session(self.current_table, session_type, hours) is None:
            self._show_banner("This table already has a session.", "warn")

    def _end(self):
        if not self.current_table:
            return
        # freeze exactly what the operator is looking at
        elapsed = self.sessions.live_elapsed_ms(self.current_table)
        if not self.sessions.end_session(self.current_table, elapsed):
            self._show_banner("No running session on this table.", "warn")

    def _pay(self):
        if not self.current_table:
            return
        record = self.sessions.complete_payment(self.current_table)
        if record is None:
            self._show_banner("Stop the clock before taking payment.", "warn")
            return
        self._show_banner(f"{record.table_name} paid: {fmt_money(record.total_amount, self.currency)}", "success")
        if self.auto_print and self.printer is not None:
            self._print(self.printer.print_session_receipt, record)

    def _change_duration(self, hours):
        if not self.current_table:
            return
        if not self.sessions.update_fixed_duration(self.current_table, hours):
            self._show_banner("Only fixed-time sessions can change duration.", "warn")

    def _checkout(self, lines):
        try:
            order = self.retail.checkout(lines)
        except StockError as exc:
            self._show_banner(str(exc), "error", duration=8000)
            return False
        self._show_banner(f"Sold {len(order.items)} line(s).", "success")
        if self.auto_print and self.printer is not None:
            self._print(self.printer.print_order_receipt, order)
        return True

    def _print(self, render, subject):
        try:
            render(subject)
        except OSError as exc:
            logger.warning("receipt printing failed: %s", exc)
            self._status.showMessage(f"Receipt not printed: {exc}", 10000)

    # ---------------- dialogs ----------------
    def _open_tables(self):
        TablesDialog(self.floor, parent=self).exec()

    def _open_records(self):
        RecordsDialog(self.sessions, self.retail, self.printer, self.currency, parent=self).exec()

    # ---------------- bus handlers ----------------
    def _on_state_changed(self, _reason=None):
        self._refresh_all()

    def _on_state_replaced(self):
        self._refresh_all()
        self._status.showMessage("Loaded saved state.", 5000)

    def _on_inventory_low(self, name, prev_stock, new_stock, threshold):
        msg = f"Low stock: {name} {prev_stock} -> {new_stock} (threshold {threshold})"
        self._status.showMessage(msg, 10000)
        if new_stock <= 0:
            self._show_banner(msg, "warn", duration=10000)

    # ---------------- banner ----------------
    def _hide_banner(self):
        self.banner_timer.stop()
        self.banner.setVisible(False)

    def _show_banner(self, text: str, kind: str = "info", duration: int | None = 6000):
        self.banner.setProperty("kind", kind)
        self.banner_label.setText(text)
        self.banner.setVisible(True)
        self.banner_timer.stop()
        if duration and duration > 0:
            self.banner_timer.start(duration)
        self.banner.style().unpolish(self.banner)
        self.banner.style().polish(self.banner)

    def closeEvent(self, event):
        if self._tick_timer.isActive():
            self._tick_timer.stop()
        super().closeEvent(event)
