"""Centralised storage paths for Cue POS on Windows and fallbacks."""
from __future__ import annotations

import os
from pathlib import Path

__all__ = [
    "BASE_DIR",
    "DATA_DIR",
    "CONFIG_DIR",
    "LOG_DIR",
    "PRINTS_DIR",
    "STATE_FILE",
    "STATE_DB_PATH",
    "SETTINGS_FILE",
    "LOG_FILE",
    "ensure_storage_dirs",
]


def _detect_base_dir() -> Path:
    env_override = os.getenv("CUE_POS_DATA_ROOT")
    if env_override:
        return Path(env_override).expanduser().resolve()

    if os.name == "nt":
        program_data = os.environ.get("PROGRAMDATA") or r"C:\\ProgramData"
        return Path(program_data) / "CuePOS"

    return Path.home() / ".cue_pos"


BASE_DIR = _detect_base_dir()
DATA_DIR = BASE_DIR / "data"
CONFIG_DIR = BASE_DIR / "config"
LOG_DIR = BASE_DIR / "logs"
PRINTS_DIR = DATA_DIR / "prints"

STATE_FILE = DATA_DIR / "state.json"
STATE_DB_PATH = DATA_DIR / "cue_pos.db"
SETTINGS_FILE = CONFIG_DIR / "settings.json"
LOG_FILE = LOG_DIR / "cue_pos.log"


def ensure_storage_dirs() -> None:
    """Create the directory tree required for persistent storage."""
    for path in (DATA_DIR, CONFIG_DIR, LOG_DIR):
        path.mkdir(parents=True, exist_ok=True)
