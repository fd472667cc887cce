# cue_pos/ui/tables_dialog.py
from PyQt6.QtWidgets import (
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QHBoxLayout,
    QPushButton,
    QLineEdit,
    QLabel,
    QComboBox,
    QDoubleSpinBox,
    QGroupBox,
)
from PyQt6.QtCore import Qt

from .common.big_dialog import BigDialog
from ..core.money import fmt_money
from ..services.floor import FloorManager

_NO_CATEGORY = "(default rate)"


class TablesDialog(BigDialog):
    """Floor editor: tables, their price category, and the category list."""

    def __init__(self, floor: FloorManager, parent=None):
        super().__init__("Tables & pricing", remember_key="tables_admin", parent=parent)
        self.floor = floor
        self.state = floor.state

        root = QVBoxLayout(self)

        self.feedback = QLabel("")
        self.feedback.setWordWrap(True)
        self.feedback.hide()
        root.addWidget(self.feedback)

        # ----- tables -----
        tables_box = QGroupBox("Tables")
        tv = QVBoxLayout(tables_box)
        self.table_list = QListWidget()
        self.table_list.itemSelectionChanged.connect(self._sync_table_entry)
        tv.addWidget(self.table_list, 1)

        row = QHBoxLayout()
        self.table_name = QLineEdit(); self.table_name.setPlaceholderText("Table name")
        self.table_category = QComboBox()
        row.addWidget(self.table_name, 1)
        row.addWidget(self.table_category)
        tv.addLayout(row)

        actions = QHBoxLayout()
        for text, slot in (
            ("Add", self._add_table),
            ("Rename", self._rename_table),
            ("Set category", self._assign_category),
            ("Remove", self._remove_table),
        ):
            btn = QPushButton(text); btn.clicked.connect(slot); actions.addWidget(btn)
        tv.addLayout(actions)
        root.addWidget(tables_box, 2)

        # ----- categories -----
        cat_box = QGroupBox("Price categories")
        cv = QVBoxLayout(cat_box)
        self.category_list = QListWidget()
        self.category_list.itemSelectionChanged.connect(self._sync_category_entry)
        cv.addWidget(self.category_list, 1)

        crow = QHBoxLayout()
        self.category_name = QLineEdit(); self.category_name.setPlaceholderText("Category name")
        self.category_rate = QDoubleSpinBox(); self.category_rate.setRange(0.01, 100000); self.category_rate.setDecimals(2)
        crow.addWidget(self.category_name, 1)
        crow.addWidget(self.category_rate)
        cv.addLayout(crow)

        cactions = QHBoxLayout()
        for text, slot in (
            ("Add", self._add_category),
            ("Update", self._update_category),
            ("Delete", self._delete_category),
        ):
            btn = QPushButton(text); btn.clicked.connect(slot); cactions.addWidget(btn)
        cv.addLayout(cactions)

        rate_row = QHBoxLayout()
        rate_row.addWidget(QLabel("Default hourly rate:"))
        self.default_rate = QDoubleSpinBox(); self.default_rate.setRange(0.01, 100000); self.default_rate.setDecimals(2)
        self.default_rate.setValue(float(self.state.hourly_rate))
        rate_btn = QPushButton("Apply"); rate_btn.clicked.connect(self._set_default_rate)
        rate_row.addWidget(self.default_rate); rate_row.addWidget(rate_btn)
        cv.addLayout(rate_row)
        root.addWidget(cat_box, 1)

        close = QPushButton("Close"); close.clicked.connect(self.accept)
        root.addWidget(close, 0, alignment=Qt.AlignmentFlag.AlignRight)

        self._reload()

    # ------------------------------------------------------------------ UI --
    def _reload(self):
        self.table_list.clear()
        for table in self.state.tables:
            cat = self.state.get_category(table.price_category_id) if table.price_category_id else None
            label = f"{table.name}  [{cat.name if cat else _NO_CATEGORY}]  {table.status}"
            item = QListWidgetItem(label)
            item.setData(Qt.ItemDataRole.UserRole, table.id)
            self.table_list.addItem(item)

        self.category_list.clear()
        self.table_category.clear()
        self.table_category.addItem(_NO_CATEGORY, None)
        for cat in self.state.price_categories:
            item = QListWidgetItem(f"{cat.name}  {fmt_money(cat.hourly_rate)}/h")
            item.setData(Qt.ItemDataRole.UserRole, cat.id)
            self.category_list.addItem(item)
            self.table_category.addItem(cat.name, cat.id)

    def _set_feedback(self, text: str, kind: str = "info"):
        palette = {
            "info": "color:#F1C58F;",
            "warn": "color:#F5B300;",
            "error": "color:#F46A6A;",
            "success": "color:#7CD992;",
        }
        self.feedback.setStyleSheet(palette.get(kind, ""))
        self.feedback.setText(text)
        self.feedback.setVisible(bool(text))

    def _selected(self, widget: QListWidget):
        item = widget.currentItem()
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    def _sync_table_entry(self):
        table = self.state.get_table(self._selected(self.table_list) or "")
        if table is None:
            return
        self.table_name.setText(table.name)
        idx = self.table_category.findData(table.price_category_id)
        self.table_category.setCurrentIndex(max(idx, 0))

    def _sync_category_entry(self):
        cat = self.state.get_category(self._selected(self.category_list) or "")
        if cat is None:
            return
        self.category_name.setText(cat.name)
        self.category_rate.setValue(float(cat.hourly_rate))

    # ------------------------------------------------------------- actions --
    def _run(self, fn, ok_text: str, fail_text: str):
        try:
            done = fn()
        except ValueError as exc:
            self._set_feedback(str(exc), "warn")
            return
        if done is False:
            self._set_feedback(fail_text, "error")
            return
        self._set_feedback(ok_text, "success")
        self._reload()

    def _add_table(self):
        self._run(
            lambda: self.floor.add_table(self.table_name.text(), self.table_category.currentData()),
            "Table added.", "Could not add the table.",
        )

    def _rename_table(self):
        table_id = self._selected(self.table_list)
        if not table_id:
            self._set_feedback("Select a table first.", "warn")
            return
        self._run(
            lambda: self.floor.rename_table(table_id, self.table_name.text()),
            "Table renamed.", "Could not rename the table.",
        )

    def _assign_category(self):
        table_id = self._selected(self.table_list)
        if not table_id:
            self._set_feedback("Select a table first.", "warn")
            return
        self._run(
            lambda: self.floor.assign_price_category(table_id, self.table_category.currentData()),
            "Category assigned.", "Could not assign the category.",
        )

    def _remove_table(self):
        table_id = self._selected(self.table_list)
        if not table_id:
            self._set_feedback("Select a table first.", "warn")
            return
        self._run(
            lambda: self.floor.remove_table(table_id),
            "Table removed.", "A table with a session on it cannot be removed.",
        )

    def _add_category(self):
        self._run(
            lambda: self.floor.add_price_category(self.category_name.text(), self.category_rate.value()),
            "Category added.", "Could not add the category.",
        )

    def _update_category(self):
        cat_id = self._selected(self.category_list)
        if not cat_id:
            self._set_feedback("Select a category first.", "warn")
            return
        self._run(
            lambda: self.floor.update_price_category(
                cat_id, name=self.category_name.text(), hourly_rate=self.category_rate.value()
            ),
            "Category updated.", "Could not update the category.",
        )

    def _delete_category(self):
        cat_id = self._selected(self.category_list)
        if not cat_id:
            self._set_feedback("Select a category first.", "warn")
            return
        self._run(
            lambda: self.floor.delete_price_category(cat_id),
            "Category deleted. Tables using it fall back to the default rate.",
            "Could not delete the category.",
        )

    def _set_default_rate(self):
        self._run(
            lambda: self.floor.set_hourly_rate(self.default_rate.value()),
            "Default rate updated.", "Could not update the rate.",
        )
