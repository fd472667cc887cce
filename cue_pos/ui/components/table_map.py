# cue_pos/ui/components/table_map.py
from PyQt6.QtWidgets import (
    QWidget, QPushButton, QLabel, QGridLayout, QFrame,
    QSizePolicy, QVBoxLayout, QHBoxLayout
)
from PyQt6.QtCore import Qt, QSize

from ...core.money import fmt_money
from ...services.billing import format_duration
from ...services.models import TABLE_AVAILABLE, TABLE_CLOSED, TABLE_RUNNING

STYLE = """
QFrame#tile { background-color:#2b2b2b; border:1px solid #444; border-radius:12px; }
QPushButton#tableBtn {
  background-color:#3b3b3b; color:#eee; border:0; border-radius:10px; padding:16px; font-weight:700;
}
QPushButton#tableBtn:checked { border:2px solid #4fc3f7; }
QLabel#badge { background:#111; color:#fff; border-radius:10px; padding:2px 8px; }
QLabel#clock { color:#ddd; font-family:monospace; }
QLabel#overtime { color:#ffab91; font-weight:600; }
"""

PALETTE = {
    TABLE_AVAILABLE: "#2e7d32",
    TABLE_RUNNING: "#f9a825",
    TABLE_CLOSED: "#c62828",
}
OVERTIME_BORDER = "#8e24aa"

STATUS_TEXT = {
    TABLE_AVAILABLE: "Available",
    TABLE_RUNNING: "In use",
    TABLE_CLOSED: "Awaiting payment",
}


class TableTile(QFrame):
    def __init__(self, table_id: str, name: str, on_select):
        super().__init__()
        self.setObjectName("tile")
        self.setStyleSheet(STYLE)
        self.table_id = table_id
        self._status = TABLE_AVAILABLE
        self._overtime = False

        v = QVBoxLayout(self)
        v.setContentsMargins(10, 10, 10, 10)
        v.setSpacing(6)

        # Top row: status + amount badge
        top = QHBoxLayout()
        top.setSpacing(6)
        self.status_label = QLabel(STATUS_TEXT[TABLE_AVAILABLE])
        self.badge = QLabel("")
        self.badge.setObjectName("badge")
        self.badge.hide()
        top.addWidget(self.status_label)
        top.addStretch(1)
        top.addWidget(self.badge)
        v.addLayout(top)

        self.btn = QPushButton(name)
        self.btn.setObjectName("tableBtn")
        self.btn.setCheckable(True)
        self.btn.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.btn.clicked.connect(lambda: on_select(table_id))
        v.addWidget(self.btn, 1)

        self.clock = QLabel("")
        self.clock.setObjectName("clock")
        self.clock.setAlignment(Qt.AlignmentFlag.AlignCenter)
        v.addWidget(self.clock)

        self.overtime_label = QLabel("Overtime")
        self.overtime_label.setObjectName("overtime")
        self.overtime_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.overtime_label.hide()
        v.addWidget(self.overtime_label)
        self._apply_style()

    def set_name(self, name: str):
        self.btn.setText(name)

    def set_status(self, status: str):
        if status == self._status:
            return
        self._status = status
        self.status_label.setText(STATUS_TEXT.get(status, status))
        if status == TABLE_AVAILABLE:
            self.clock.setText("")
            self.badge.hide()
            self.set_overtime(False)
        self._apply_style()

    def set_elapsed(self, ms):
        self.clock.setText("" if ms is None else format_duration(ms))

    def set_amount(self, amount, currency: str = "₱"):
        if amount is not None and amount > 0:
            self.badge.setText(fmt_money(amount, currency))
            self.badge.show()
        else:
            self.badge.hide()

    def set_overtime(self, overtime: bool):
        if overtime == self._overtime:
            return
        self._overtime = overtime
        self.overtime_label.setVisible(overtime)
        self._apply_style()

    def set_checked(self, checked: bool):
        self.btn.setChecked(checked)

    def _apply_style(self):
        color = PALETTE.get(self._status, PALETTE[TABLE_AVAILABLE])
        if self._overtime and self._status == TABLE_RUNNING:
            color = OVERTIME_BORDER
        self.btn.setStyleSheet(
            f"background-color:#3b3b3b; color:white; border:2px solid {color}; "
            f"border-radius:10px; padding:16px; font-weight:700;"
        )


class TableMap(QWidget):
    MIN_TILE = QSize(160, 120)

    def __init__(self, on_select):
        super().__init__()
        self.tiles: dict[str, TableTile] = {}
        self._order: list[str] = []
        self._current = None
        self._external_select_cb = on_select
        self._last_cols = -1

        self.grid = QGridLayout(self)
        self.grid.setContentsMargins(12, 12, 12, 12)
        self.grid.setHorizontalSpacing(14)
        self.grid.setVerticalSpacing(14)
        self.grid.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)

    @property
    def current(self):
        return self._current

    def _on_click(self, table_id: str):
        if self._current and self._current != table_id and self._current in self.tiles:
            self.tiles[self._current].set_checked(False)
        self._current = table_id
        self.tiles[table_id].set_checked(True)
        self._external_select_cb(table_id)

    def clear_selection(self):
        if self._current and self._current in self.tiles:
            self.tiles[self._current].set_checked(False)
        self._current = None

    def set_tables(self, tables):
        """Sync tiles with *tables*; layout order follows the saved floor position."""
        ordered = sorted(tables, key=lambda t: (t.y, t.x, t.name))
        ids = [t.id for t in ordered]

        for table_id in set(self.tiles) - set(ids):
            widget = self.tiles.pop(table_id)
            widget.setParent(None)
            widget.deleteLater()

        for table in ordered:
            tile = self.tiles.get(table.id)
            if tile is None:
                tile = TableTile(table.id, table.name, self._on_click)
                tile.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
                self.tiles[table.id] = tile
            else:
                tile.set_name(table.name)
            tile.set_status(table.status)

        if self._current and self._current not in self.tiles:
            self._current = None
        if ids != self._order:
            self._order = ids
            self._relayout(force=True)

    def update_table(self, table_id, elapsed_ms=None, amount=None, overtime=None, currency="₱"):
        t = self.tiles.get(table_id)
        if not t:
            return
        t.set_elapsed(elapsed_ms)
        t.set_amount(amount, currency)
        if overtime is not None:
            t.set_overtime(overtime)

    def resizeEvent(self, e):
        super().resizeEvent(e)
        self._relayout()

    def _relayout(self, force: bool = False):
        width = max(self.width(), 1)
        cols = max(
            1,
            min(max(len(self._order), 1),
                width // (self.MIN_TILE.width() + self.grid.horizontalSpacing()))
        )
        if not force and cols == self._last_cols:
            return
        self._last_cols = cols

        while self.grid.count():
            self.grid.takeAt(0)

        for i, table_id in enumerate(self._order):
            r, c = divmod(i, cols)
            self.grid.addWidget(self.tiles[table_id], r, c)
