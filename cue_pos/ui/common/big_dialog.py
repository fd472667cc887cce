# cue_pos/ui/common/big_dialog.py
from PyQt6.QtWidgets import QDialog
from PyQt6.QtCore import Qt

from ...core.config_store import get_config_value, set_config_value


class BigDialog(QDialog):
    """
    Standard large dialog: big size, resizable with size grip.
    Remembers its geometry in settings.json under ``geom_<key>`` (optional).
    """
    def __init__(self, title: str, remember_key: str | None = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle(title)
        self.setWindowModality(Qt.WindowModality.ApplicationModal)
        self.setMinimumSize(720, 480)
        self.setSizeGripEnabled(True)
        self._remember_key = remember_key

        if remember_key:
            g = get_config_value(f"geom_{remember_key}", "")
            parts = str(g).split(",") if g else []
            if len(parts) == 4 and all(p.strip().lstrip("-").isdigit() for p in parts):
                x, y, w, h = [int(v) for v in parts]
                self.setGeometry(x, y, w, h)

    def accept(self):
        self._save_geometry()
        return super().accept()

    def reject(self):
        self._save_geometry()
        return super().reject()

    def _save_geometry(self):
        if not self._remember_key:
            return
        g = self.geometry()
        set_config_value(f"geom_{self._remember_key}", f"{g.x()},{g.y()},{g.width()},{g.height()}")
