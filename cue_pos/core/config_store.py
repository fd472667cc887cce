"""JSON configuration stored next to the venue data with atomic writes."""
from __future__ import annotations

import json
import logging
import os
from threading import RLock
from typing import Any, Dict

from . import paths

logger = logging.getLogger(__name__)

_LOCK = RLock()
_DEFAULT_CONFIG: Dict[str, Any] = {
    "store_backend": "json",
    "remote_url": "",
    "remote_timeout": 10,
    "sync_debounce_ms": 500,
    "sync_quiet_ms": 300,
    "default_hourly_rate": 15,
    "low_stock_threshold": 5,
    "currency": "₱",
    "auto_print_receipts": False,
    "receipt_printer": "",
}

_VALID_BACKENDS = {"json", "sqlite", "http"}


def default_config() -> Dict[str, Any]:
    return dict(_DEFAULT_CONFIG)


def _ensure_file_exists() -> None:
    paths.ensure_storage_dirs()
    if not paths.SETTINGS_FILE.exists():
        _atomic_write_json(_DEFAULT_CONFIG)


def _atomic_write_json(payload: Dict[str, Any]) -> None:
    target = paths.SETTINGS_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(".tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2, sort_keys=True)
    os.replace(tmp_path, target)


def load_config() -> Dict[str, Any]:
    with _LOCK:
        _ensure_file_exists()
        try:
            with paths.SETTINGS_FILE.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except json.JSONDecodeError:
            logger.warning("settings file %s is corrupt, using defaults", paths.SETTINGS_FILE)
            data = {}
        if not isinstance(data, dict):
            data = {}
        merged = {**_DEFAULT_CONFIG, **data}
        if merged.get("store_backend") not in _VALID_BACKENDS:
            merged["store_backend"] = _DEFAULT_CONFIG["store_backend"]
        if merged != data:
            _atomic_write_json(merged)
        return merged


def save_config(data: Dict[str, Any]) -> None:
    with _LOCK:
        merged = {**_DEFAULT_CONFIG, **data}
        _atomic_write_json(merged)


def get_config_value(key: str, default: Any = None) -> Any:
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    config = load_config()
    if config.get(key) == value:
        return
    config[key] = value
    save_config(config)
