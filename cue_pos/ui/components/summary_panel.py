from PyQt6.QtWidgets import QWidget, QVBoxLayout, QGridLayout, QLabel, QListWidget, QFrame
from PyQt6.QtCore import Qt

from ...services.reports import RevenueSummary, days_remaining_in_month


class SummaryPanel(QFrame):
    """Today's figures, best sellers and the trailing week."""

    def __init__(self, currency: str = "₱"):
        super().__init__()
        self.currency = currency
        self.setObjectName("summary")
        v = QVBoxLayout(self)
        v.setContentsMargins(8, 8, 8, 8)
        v.setSpacing(8)

        heading = QLabel("Revenue")
        heading.setStyleSheet("font-size:16px; font-weight:700;")
        v.addWidget(heading)

        grid = QGridLayout()
        self._values: dict[str, QLabel] = {}
        rows = [
            ("today_total", "Today"),
            ("today_table_revenue", "Tables today"),
            ("today_retail_revenue", "Retail today"),
            ("today_sessions", "Sessions today"),
            ("today_transactions", "Sales today"),
            ("total_revenue", "All time"),
            ("avg_duration_mins", "Avg. session (min)"),
        ]
        for r, (key, label) in enumerate(rows):
            grid.addWidget(QLabel(label), r, 0)
            value = QLabel("-")
            value.setAlignment(Qt.AlignmentFlag.AlignRight)
            grid.addWidget(value, r, 1)
            self._values[key] = value
        v.addLayout(grid)

        self.month_left = QLabel("")
        v.addWidget(self.month_left)

        v.addWidget(QLabel("Best sellers"))
        self.best = QListWidget()
        self.best.setMaximumHeight(120)
        v.addWidget(self.best)

        v.addWidget(QLabel("Last 7 days"))
        self.daily = QListWidget()
        v.addWidget(self.daily, 1)

    def show_summary(self, summary: RevenueSummary):
        data = summary.as_dict(self.currency)
        for key, label in self._values.items():
            label.setText(str(data[key]))
        self.month_left.setText(f"{days_remaining_in_month(summary.day)} days left this month")

        self.best.clear()
        for entry in data["best_sellers"]:
            self.best.addItem(f"{entry['name']}  x{entry['quantity']}  {entry['revenue']}")

        self.daily.clear()
        for entry in data["daily"]:
            self.daily.addItem(f"{entry['day']}:  {entry['total']}  (tables {entry['tables']}, retail {entry['retail']})")
