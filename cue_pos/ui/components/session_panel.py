from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QDoubleSpinBox
)
from PyQt6.QtCore import Qt

from ...core.money import fmt_money
from ...services.billing import format_duration
from ...services.models import SESSION_FIXED, TABLE_AVAILABLE, TABLE_CLOSED, TABLE_RUNNING


class SessionPanel(QWidget):
    """Controls for the selected table. Button state follows the table status."""

    def __init__(self, on_start_open, on_start_fixed, on_end, on_pay, on_change_duration):
        super().__init__()
        v = QVBoxLayout(self); v.setContentsMargins(0, 0, 0, 0); v.setSpacing(6)

        self.title = QLabel("No table selected"); self.title.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.title.setStyleSheet("font-size:16px; font-weight:700;")
        v.addWidget(self.title)

        self.status = QLabel(""); self.status.setAlignment(Qt.AlignmentFlag.AlignCenter)
        v.addWidget(self.status)

        self.clock = QLabel(""); self.clock.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.clock.setStyleSheet("font-family:monospace; font-size:22px;")
        v.addWidget(self.clock)

        self.amount = QLabel(""); self.amount.setAlignment(Qt.AlignmentFlag.AlignCenter)
        v.addWidget(self.amount)

        hours_row = QHBoxLayout()
        hours_row.addWidget(QLabel("Hours:"))
        self.hours = QDoubleSpinBox()
        self.hours.setRange(0.25, 24.0); self.hours.setSingleStep(0.5); self.hours.setDecimals(2)
        self.hours.setValue(1.0)
        hours_row.addWidget(self.hours, 1)
        v.addLayout(hours_row)

        r1 = QHBoxLayout()
        self.btn_open = QPushButton("Start open time"); self.btn_fixed = QPushButton("Start fixed time")
        r1.addWidget(self.btn_open); r1.addWidget(self.btn_fixed); v.addLayout(r1)

        r2 = QHBoxLayout()
        self.btn_end = QPushButton("Stop clock"); self.btn_pay = QPushButton("Complete payment")
        r2.addWidget(self.btn_end); r2.addWidget(self.btn_pay); v.addLayout(r2)

        self.btn_duration = QPushButton("Change fixed duration"); v.addWidget(self.btn_duration)
        v.addStretch(1)

        self.btn_open.clicked.connect(on_start_open)
        self.btn_fixed.clicked.connect(lambda: on_start_fixed(self.hours.value()))
        self.btn_end.clicked.connect(on_end)
        self.btn_pay.clicked.connect(on_pay)
        self.btn_duration.clicked.connect(lambda: on_change_duration(self.hours.value()))
        self.show_table(None)

    def show_table(self, table):
        """Refresh labels and buttons for *table* (``None`` clears the panel)."""
        if table is None:
            self.title.setText("No table selected")
            self.status.setText("")
            self.clock.setText("")
            self.amount.setText("")
            for btn in (self.btn_open, self.btn_fixed, self.btn_end, self.btn_pay, self.btn_duration):
                btn.setEnabled(False)
            return

        session = table.current_session
        self.title.setText(table.name)
        is_fixed = session is not None and session.session_type == SESSION_FIXED
        if session is None:
            self.status.setText("Available")
        elif is_fixed:
            self.status.setText(f"Fixed {session.fixed_duration:g} h at {fmt_money(session.hourly_rate)}/h")
        else:
            self.status.setText(f"Open time at {fmt_money(session.hourly_rate)}/h")

        self.btn_open.setEnabled(table.status == TABLE_AVAILABLE)
        self.btn_fixed.setEnabled(table.status == TABLE_AVAILABLE)
        self.btn_end.setEnabled(table.status == TABLE_RUNNING)
        self.btn_pay.setEnabled(table.status == TABLE_CLOSED)
        self.btn_duration.setEnabled(is_fixed and table.status in (TABLE_RUNNING, TABLE_CLOSED))
        if session is None:
            self.clock.setText("")
            self.amount.setText("")

    def show_live(self, elapsed_ms, amount, currency="₱", overtime=False):
        if elapsed_ms is None:
            self.clock.setText("")
            self.amount.setText("")
            return
        self.clock.setText(format_duration(elapsed_ms))
        text = f"Due: {fmt_money(amount, currency)}" if amount is not None else ""
        if overtime:
            text += "  (overtime)"
        self.amount.setText(text)
