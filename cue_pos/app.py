"""Application bootstrap wiring for the Cue POS desktop client."""

import logging
import sys
import traceback

from PyQt6.QtWidgets import QApplication, QMessageBox

from .core import paths
from .core.config_store import load_config
from .services.floor import FloorManager
from .services.printer import PrinterService
from .services.retail import RetailManager
from .services.sessions import SessionManager
from .services.state import PosState
from .services.stores import StoreError, build_store
from .services.sync import SyncAdapter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level=logging.INFO) -> None:
    paths.ensure_storage_dirs()
    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(paths.LOG_FILE, encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.addHandler(stream_handler)


def _qt_excepthook(exctype, value, tb):
    # Show the exception instead of killing the app silently
    msg = "".join(traceback.format_exception(exctype, value, tb))
    logger.error("unhandled exception\n%s", msg)
    box = QMessageBox()
    box.setWindowTitle("Unexpected Error")
    box.setText("An unexpected error occurred.\nThe application keeps running.")
    box.setDetailedText(msg)
    box.setIcon(QMessageBox.Icon.Critical)
    box.exec()


def build_services(config):
    """State, managers and sync adapter, wired but not yet pulled."""
    state = PosState.with_defaults(config.get("default_hourly_rate", 15))
    store = build_store(config)
    sync = SyncAdapter(
        store,
        state,
        debounce_ms=int(config.get("sync_debounce_ms", 500)),
        quiet_ms=int(config.get("sync_quiet_ms", 300)),
    )
    sessions = SessionManager(state)
    floor = FloorManager(state)
    retail = RetailManager(state, low_stock_threshold=int(config.get("low_stock_threshold", 5)))
    printer = PrinterService(
        printer_name=config.get("receipt_printer"),
        currency=config.get("currency", "₱"),
        auto_dispatch=bool(config.get("auto_print_receipts", False)),
    )
    return state, sync, sessions, floor, retail, printer


def main():
    configure_logging()
    sys.excepthook = _qt_excepthook

    config = load_config()
    logger.info("starting Cue POS with %s store, data in %s", config["store_backend"], paths.BASE_DIR)

    app = QApplication(sys.argv)

    try:
        state, sync, sessions, floor, retail, printer = build_services(config)
    except (StoreError, ValueError) as exc:
        QMessageBox.critical(None, "Storage error", f"Could not open the state store:\n{exc}")
        sys.exit(1)

    if not sync.pull():
        logger.warning("starting from local defaults; saved state was not loaded")
    sync.attach()
    app.aboutToQuit.connect(sync.close)

    # imported late so the services can be built and tested without a display
    from .ui.main_window import MainWindow

    mw = MainWindow(state, sessions, floor, retail, printer, config)
    mw.show()
    sys.exit(app.exec())
