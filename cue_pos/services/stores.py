"""Durable homes for the venue state blob.

A store keeps exactly one JSON document. ``load`` returns ``None`` when
nothing was ever written; every failure surfaces as :class:`StoreError`.
Writes replace the whole document in one step, so a reader never sees a
half-written state.
"""
from __future__ import annotations

import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

import requests
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError

from ..core import paths

logger = logging.getLogger(__name__)

STATE_KEY = "cue-pos:state"


class StoreError(Exception):
    pass


class StateStore:
    """Interface shared by the concrete stores."""

    name = "base"

    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


def _check_document(data: Any, source: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise StoreError(f"{source} does not hold a state document")
    return data


class JsonFileStore(StateStore):
    name = "json"

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else paths.STATE_FILE
        self._lock = RLock()

    def load(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            if not self.path.exists():
                return None
            try:
                with self.path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, json.JSONDecodeError) as exc:
                raise StoreError(f"cannot read {self.path}: {exc}") from exc
        return _check_document(data, str(self.path))

    def save(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            tmp_path = self.path.with_suffix(".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tmp_path.open("w", encoding="utf-8") as fh:
                    json.dump(payload, fh, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except (OSError, TypeError, ValueError) as exc:
                raise StoreError(f"cannot write {self.path}: {exc}") from exc


class SqliteStateStore(StateStore):
    """Single-row key/value table in a local SQLite file."""

    name = "sqlite"

    def __init__(self, db_path: Optional[Path] = None, key: str = STATE_KEY) -> None:
        self.db_path = Path(db_path) if db_path is not None else paths.STATE_DB_PATH
        self.key = key
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_engine(
            f"sqlite:///{self.db_path.as_posix()}",
            connect_args={"check_same_thread": False},
        )
        event.listen(self._engine, "connect", _apply_pragmas)
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    text(
                        """CREATE TABLE IF NOT EXISTS kv_state(
                                key TEXT PRIMARY KEY,
                                value TEXT NOT NULL,
                                updated_at TEXT NOT NULL
                            )"""
                    )
                )
        except SQLAlchemyError as exc:
            raise StoreError(f"cannot open {self.db_path}: {exc}") from exc

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(
                    text("SELECT value FROM kv_state WHERE key = :key"), {"key": self.key}
                ).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"cannot read state: {exc}") from exc
        if row is None:
            return None
        try:
            data = json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise StoreError(f"stored state is not JSON: {exc}") from exc
        return _check_document(data, self.key)

    def save(self, payload: Dict[str, Any]) -> None:
        try:
            body = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"state is not serialisable: {exc}") from exc
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    text(
                        """INSERT INTO kv_state(key, value, updated_at)
                               VALUES(:key, :value, :ts)
                               ON CONFLICT(key) DO UPDATE SET
                                   value = excluded.value,
                                   updated_at = excluded.updated_at"""
                    ),
                    {"key": self.key, "value": body, "ts": datetime.now(timezone.utc).isoformat()},
                )
        except SQLAlchemyError as exc:
            raise StoreError(f"cannot write state: {exc}") from exc

    def close(self) -> None:
        self._engine.dispose()


def _apply_pragmas(dbapi_conn: sqlite3.Connection, _record) -> None:  # pragma: no cover - runtime hook
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=FULL;")
    finally:
        cursor.close()


class HttpStateStore(StateStore):
    """Remote blob behind ``GET``/``POST`` on a single URL."""

    name = "http"

    def __init__(
        self,
        url: str,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not url:
            raise ValueError("remote_url is required for the http store")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Content-Type": "application/json"}

    def load(self) -> Optional[Dict[str, Any]]:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise StoreError(f"GET {self.url} failed: {exc}") from exc
        except ValueError as exc:
            raise StoreError(f"GET {self.url} returned invalid JSON") from exc
        if isinstance(data, dict) and data.get("error"):
            raise StoreError(f"GET {self.url} reported {data['error']}")
        return _check_document(data, self.url)

    def save(self, payload: Dict[str, Any]) -> None:
        try:
            response = self.session.post(
                self.url, json=payload, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StoreError(f"POST {self.url} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("ok") is False:
            raise StoreError(f"POST {self.url} rejected: {body.get('error', 'unknown error')}")

    def close(self) -> None:
        self.session.close()


def build_store(config: Dict[str, Any]) -> StateStore:
    backend = str(config.get("store_backend", "json")).lower()
    if backend == "sqlite":
        return SqliteStateStore()
    if backend == "http":
        return HttpStateStore(
            str(config.get("remote_url", "")),
            timeout=float(config.get("remote_timeout", 10)),
        )
    return JsonFileStore()
