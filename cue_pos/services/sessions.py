"""Table session lifecycle: available -> running -> closed -> available.

``closed`` means the clock has stopped and the bill is waiting to be paid; the
session stays on the table until :meth:`SessionManager.complete_payment`
archives it into the ledger.

Every transition checks its preconditions before touching anything. A call
made in the wrong state is ignored (logged at debug level) and reported
through the return value: ``None``/``False`` when nothing happened.
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from ..core.money import parse_money, to_decimal
from .billing import calculate_amount, elapsed_ms
from .models import (
    RECORD_COMPLETED,
    RECORD_VOIDED,
    SESSION_FIXED,
    SESSION_TYPES,
    TABLE_AVAILABLE,
    TABLE_CLOSED,
    TABLE_RUNNING,
    SessionRecord,
    TableSession,
    dt_from_json,
    new_id,
)
from .pricing import resolve_rate
from .state import PosState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_EDITABLE_FIELDS = {
    "table_name",
    "start_time",
    "end_time",
    "session_type",
    "fixed_duration",
    "hourly_rate",
    "total_amount",
    "status",
}
_FIELD_ALIASES = {
    "tableName": "table_name",
    "startTime": "start_time",
    "endTime": "end_time",
    "sessionType": "session_type",
    "fixedDuration": "fixed_duration",
    "hourlyRate": "hourly_rate",
    "totalAmount": "total_amount",
}


def _coerce_field(name: str, value: Any) -> Any:
    if name in ("start_time", "end_time"):
        return value if isinstance(value, datetime) else dt_from_json(value)
    if name == "total_amount":
        return parse_money(value)
    if name == "hourly_rate":
        return _finite_decimal(value)
    if name == "fixed_duration":
        return None if value in (None, "") else _finite_decimal(value)
    return value


def _finite_decimal(value) -> Decimal:
    number = to_decimal(value)
    if not number.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return number


class SessionManager:
    __slots__ = ("state", "clock")

    def __init__(self, state: PosState, clock: Optional[Clock] = None) -> None:
        self.state = state
        self.clock: Clock = clock or datetime.now

    def _ignored(self, op: str, key: str, reason: str) -> None:
        logger.debug("%s(%s) ignored: %s", op, key, reason)

    # ----- transitions -----
    def start_session(
        self,
        table_id: str,
        session_type: str,
        fixed_duration=None,
    ) -> Optional[TableSession]:
        table = self.state.get_table(table_id)
        if table is None:
            self._ignored("start_session", table_id, "unknown table")
            return None
        if table.status != TABLE_AVAILABLE or table.current_session is not None:
            self._ignored("start_session", table_id, f"table is {table.status}")
            return None
        if session_type not in SESSION_TYPES:
            self._ignored("start_session", table_id, f"bad session type {session_type!r}")
            return None
        duration: Optional[Decimal] = None
        if session_type == SESSION_FIXED and fixed_duration not in (None, ""):
            try:
                duration = _finite_decimal(fixed_duration)
            except (ValueError, ArithmeticError):
                self._ignored("start_session", table_id, f"bad duration {fixed_duration!r}")
                return None
            if duration < 0:
                self._ignored("start_session", table_id, "negative duration")
                return None

        rate = resolve_rate(table, self.state.price_categories, self.state.hourly_rate)
        session = TableSession(
            id=new_id("session"),
            table_id=table.id,
            table_name=table.name,
            start_time=self.clock(),
            session_type=session_type,
            hourly_rate=rate,
            fixed_duration=duration,
        )
        table.current_session = session
        table.status = TABLE_RUNNING
        self.state.commit("start_session")
        return session

    def end_session(self, table_id: str, elapsed: Optional[int] = None) -> bool:
        """Stop the clock and freeze the billable duration.

        *elapsed* is the value the operator saw when pressing stop; when it is
        omitted zero is recorded, so callers are expected to pass it.
        """
        table = self.state.get_table(table_id)
        if table is None or table.current_session is None:
            self._ignored("end_session", table_id, "no session")
            return False
        if table.status != TABLE_RUNNING:
            self._ignored("end_session", table_id, f"table is {table.status}")
            return False
        frozen = 0 if elapsed is None else max(0, int(elapsed))
        table.current_session.ended_elapsed_ms = frozen
        table.status = TABLE_CLOSED
        self.state.commit("end_session")
        return True

    def complete_payment(self, table_id: str) -> Optional[SessionRecord]:
        table = self.state.get_table(table_id)
        if table is None or table.current_session is None:
            self._ignored("complete_payment", table_id, "no session")
            return None
        if table.status != TABLE_CLOSED:
            self._ignored("complete_payment", table_id, f"table is {table.status}")
            return None

        session = table.current_session
        frozen = session.ended_elapsed_ms or 0
        total = calculate_amount(
            frozen, session.session_type, session.fixed_duration, session.hourly_rate
        )
        # another terminal's clock may be ahead of ours
        end_time = max(self.clock(), session.start_time)
        record = SessionRecord(
            id=session.id,
            table_id=session.table_id,
            table_name=session.table_name,
            start_time=session.start_time,
            end_time=end_time,
            session_type=session.session_type,
            hourly_rate=session.hourly_rate,
            total_amount=total,
            fixed_duration=session.fixed_duration,
            ended_elapsed_ms=frozen,
            status=RECORD_COMPLETED,
        )
        self.state.sessions.append(record)
        table.current_session = None
        table.status = TABLE_AVAILABLE
        self.state.commit("complete_payment")
        return record

    def update_fixed_duration(self, table_id: str, new_duration) -> bool:
        table = self.state.get_table(table_id)
        session = table.current_session if table is not None else None
        if session is None:
            self._ignored("update_fixed_duration", table_id, "no session")
            return False
        if session.session_type != SESSION_FIXED:
            self._ignored("update_fixed_duration", table_id, "not a fixed session")
            return False
        if table.status not in (TABLE_RUNNING, TABLE_CLOSED):
            self._ignored("update_fixed_duration", table_id, f"table is {table.status}")
            return False
        try:
            duration = _finite_decimal(new_duration)
        except (ValueError, ArithmeticError):
            self._ignored("update_fixed_duration", table_id, f"bad duration {new_duration!r}")
            return False
        if duration <= 0:
            self._ignored("update_fixed_duration", table_id, "duration must be positive")
            return False
        session.fixed_duration = duration
        self.state.commit("update_fixed_duration")
        return True

    # ----- ledger corrections -----
    def void_session(self, session_id: str) -> bool:
        record = self.state.get_record(session_id)
        if record is None:
            self._ignored("void_session", session_id, "unknown session")
            return False
        if record.is_voided:
            return True
        self._replace_record(record, dataclasses.replace(record, status=RECORD_VOIDED))
        self.state.commit("void_session")
        return True

    def edit_session(self, session_id: str, updates: Mapping[str, Any]) -> bool:
        """Patch an archived record without reopening its table."""
        record = self.state.get_record(session_id)
        if record is None:
            self._ignored("edit_session", session_id, "unknown session")
            return False

        changes: Dict[str, Any] = {}
        for key, value in updates.items():
            name = _FIELD_ALIASES.get(key, key)
            if name not in _EDITABLE_FIELDS:
                continue
            try:
                changes[name] = _coerce_field(name, value)
            except (ValueError, TypeError, ArithmeticError):
                self._ignored("edit_session", session_id, f"bad value for {name}")
                return False
        if not changes:
            return False

        patched = dataclasses.replace(record, **changes)
        if patched.start_time is None or ("end_time" in changes and patched.end_time is None):
            self._ignored("edit_session", session_id, "missing timestamps")
            return False
        if patched.end_time is not None and patched.end_time < patched.start_time:
            self._ignored("edit_session", session_id, "end before start")
            return False
        if patched.total_amount < 0:
            self._ignored("edit_session", session_id, "negative total")
            return False
        if patched.status not in (RECORD_COMPLETED, RECORD_VOIDED):
            self._ignored("edit_session", session_id, f"bad status {patched.status!r}")
            return False
        if patched.session_type not in SESSION_TYPES:
            self._ignored("edit_session", session_id, f"bad session type {patched.session_type!r}")
            return False

        self._replace_record(record, patched)
        self.state.commit("edit_session")
        return True

    def _replace_record(self, old: SessionRecord, new: SessionRecord) -> None:
        records = self.state.sessions
        for idx, rec in enumerate(records):
            if rec is old:
                records[idx] = new
                return

    # ----- read-only display helpers -----
    def live_elapsed_ms(self, table_id: str, now: Optional[datetime] = None) -> Optional[int]:
        """Elapsed time to show on the table; frozen once the table is closed.

        Called from a refresh timer, so the session may have been paid out
        since the tick was scheduled: that case returns ``None``.
        """
        table = self.state.get_table(table_id)
        session = table.current_session if table is not None else None
        if session is None:
            return None
        if session.ended_elapsed_ms is not None:
            return session.ended_elapsed_ms
        return elapsed_ms(session.start_time, now or self.clock())

    def current_amount(self, table_id: str, now: Optional[datetime] = None) -> Optional[Decimal]:
        table = self.state.get_table(table_id)
        session = table.current_session if table is not None else None
        if session is None:
            return None
        elapsed = self.live_elapsed_ms(table_id, now)
        if elapsed is None:
            return None
        return calculate_amount(
            elapsed, session.session_type, session.fixed_duration, session.hourly_rate
        )
