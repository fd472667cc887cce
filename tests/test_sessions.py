"""Table session lifecycle: start, stop, pay, corrections."""

import random
from datetime import timedelta
from decimal import Decimal

import pytest

from cue_pos.services.models import TABLE_AVAILABLE, TABLE_CLOSED, TABLE_RUNNING

MIN = 60_000


class TestStartSession:
    def test_start_marks_table_running(self, state, sessions, changes):
        session = sessions.start_session("table-1", "open")
        table = state.get_table("table-1")

        assert session is not None
        assert table.status == TABLE_RUNNING
        assert table.current_session is session
        assert session.table_name == "Table 1"
        assert changes == ["start_session"]

    def test_rate_comes_from_category_and_is_snapshotted(self, state, sessions, floor):
        floor.assign_price_category("table-2", "cat-vip")
        session = sessions.start_session("table-2", "open")
        floor.update_price_category("cat-vip", "VIP", 99)

        assert session.hourly_rate == Decimal("25")

    def test_start_on_busy_table_is_ignored(self, state, sessions, changes):
        first = sessions.start_session("table-1", "open")
        assert sessions.start_session("table-1", "fixed", 2) is None
        assert state.get_table("table-1").current_session is first
        assert changes == ["start_session"]

    def test_unknown_table_is_ignored(self, sessions, changes):
        assert sessions.start_session("nope", "open") is None
        assert changes == []

    def test_bad_session_type_is_ignored(self, state, sessions):
        assert sessions.start_session("table-1", "weekly") is None
        assert state.get_table("table-1").status == TABLE_AVAILABLE


class TestFullRoundTrip:
    def test_open_session_46_minutes_bills_one_hour(self, state, sessions, clock):
        sessions.start_session("table-1", "open")
        clock.advance(minutes=46)
        assert sessions.end_session("table-1", 46 * MIN)
        assert state.get_table("table-1").status == TABLE_CLOSED

        record = sessions.complete_payment("table-1")
        table = state.get_table("table-1")

        assert record.total_amount == Decimal("15.00")
        assert record.ended_elapsed_ms == 46 * MIN
        assert table.status == TABLE_AVAILABLE
        assert table.current_session is None
        assert state.sessions == [record]

    def test_fixed_session_stopped_early_pays_full_booking(self, state, sessions, clock, floor):
        floor.assign_price_category("table-3", "cat-vip")
        sessions.start_session("table-3", "fixed", 2)
        clock.advance(minutes=30)
        sessions.end_session("table-3", 30 * MIN)

        record = sessions.complete_payment("table-3")
        assert record.total_amount == Decimal("50.00")

    def test_payment_uses_frozen_elapsed_not_wall_clock(self, sessions, clock):
        sessions.start_session("table-1", "open")
        clock.advance(minutes=10)
        sessions.end_session("table-1", 10 * MIN)
        clock.advance(hours=3)

        record = sessions.complete_payment("table-1")
        assert record.total_amount == Decimal("3.75")
        assert record.end_time - record.start_time == timedelta(hours=3, minutes=10)

    def test_end_without_elapsed_records_zero(self, state, sessions):
        sessions.start_session("table-1", "open")
        sessions.end_session("table-1")
        assert state.get_table("table-1").current_session.ended_elapsed_ms == 0


class TestIgnoredTransitions:
    def test_end_on_available_table(self, sessions, changes):
        assert sessions.end_session("table-1", 1000) is False
        assert changes == []

    def test_end_twice(self, state, sessions):
        sessions.start_session("table-1", "open")
        sessions.end_session("table-1", 5 * MIN)
        assert sessions.end_session("table-1", 9 * MIN) is False
        assert state.get_table("table-1").current_session.ended_elapsed_ms == 5 * MIN

    def test_pay_while_running(self, state, sessions):
        sessions.start_session("table-1", "open")
        assert sessions.complete_payment("table-1") is None
        assert state.sessions == []
        assert state.get_table("table-1").status == TABLE_RUNNING

    def test_pay_on_available_table(self, sessions):
        assert sessions.complete_payment("table-1") is None


class TestFixedDuration:
    def test_update_while_running_and_closed(self, state, sessions):
        sessions.start_session("table-1", "fixed", 1)
        assert sessions.update_fixed_duration("table-1", 2)
        sessions.end_session("table-1", 20 * MIN)
        assert sessions.update_fixed_duration("table-1", 3)

        record = sessions.complete_payment("table-1")
        assert record.fixed_duration == Decimal("3")
        assert record.total_amount == Decimal("45.00")

    def test_open_session_duration_cannot_change(self, sessions):
        sessions.start_session("table-1", "open")
        assert sessions.update_fixed_duration("table-1", 2) is False

    def test_non_positive_duration_rejected(self, state, sessions):
        sessions.start_session("table-1", "fixed", 1)
        assert sessions.update_fixed_duration("table-1", 0) is False
        assert state.get_table("table-1").current_session.fixed_duration == Decimal("1")

    @pytest.mark.parametrize("bad", [None, "abc", float("nan"), "Infinity"])
    def test_malformed_duration_is_ignored(self, state, sessions, changes, bad):
        sessions.start_session("table-1", "fixed", 1)
        changes.clear()
        assert sessions.update_fixed_duration("table-1", bad) is False
        assert state.get_table("table-1").current_session.fixed_duration == Decimal("1")
        assert changes == []

    @pytest.mark.parametrize("bad", ["abc", float("nan"), "-Infinity"])
    def test_start_with_malformed_duration_is_ignored(self, state, sessions, changes, bad):
        assert sessions.start_session("table-1", "fixed", bad) is None
        assert state.get_table("table-1").status == TABLE_AVAILABLE
        assert changes == []


class TestLedgerCorrections:
    def _paid_record(self, sessions, clock, minutes=30):
        sessions.start_session("table-1", "open")
        clock.advance(minutes=minutes)
        sessions.end_session("table-1", minutes * MIN)
        return sessions.complete_payment("table-1")

    def test_void_is_idempotent_and_keeps_record(self, state, sessions, clock, changes):
        record = self._paid_record(sessions, clock)
        changes.clear()

        assert sessions.void_session(record.id)
        assert sessions.void_session(record.id)
        assert len(state.sessions) == 1
        assert state.sessions[0].is_voided
        assert changes == ["void_session"]

    def test_void_unknown_session(self, sessions):
        assert sessions.void_session("session-missing") is False

    def test_edit_total_and_name(self, state, sessions, clock):
        record = self._paid_record(sessions, clock)
        assert sessions.edit_session(record.id, {"totalAmount": 12.5, "table_name": "Snooker"})

        edited = state.get_record(record.id)
        assert edited.total_amount == Decimal("12.50")
        assert edited.table_name == "Snooker"

    def test_edit_rejects_end_before_start(self, state, sessions, clock):
        record = self._paid_record(sessions, clock)
        bad_end = record.start_time - timedelta(minutes=1)
        assert sessions.edit_session(record.id, {"end_time": bad_end}) is False
        assert state.get_record(record.id).end_time == record.end_time

    def test_edit_rejects_negative_total(self, state, sessions, clock):
        record = self._paid_record(sessions, clock)
        assert sessions.edit_session(record.id, {"total_amount": -1}) is False
        assert state.get_record(record.id).total_amount == record.total_amount

    def test_edit_ignores_unknown_fields(self, sessions, clock):
        record = self._paid_record(sessions, clock)
        assert sessions.edit_session(record.id, {"colour": "green"}) is False

    @pytest.mark.parametrize(
        "updates",
        [
            {"totalAmount": "abc"},
            {"totalAmount": None},
            {"totalAmount": float("nan")},
            {"hourlyRate": "fifteen"},
            {"fixedDuration": "Infinity"},
            {"startTime": "not a date"},
        ],
    )
    def test_edit_with_malformed_value_leaves_record_alone(self, state, sessions, clock, changes, updates):
        record = self._paid_record(sessions, clock)
        changes.clear()
        assert sessions.edit_session(record.id, updates) is False
        assert state.get_record(record.id) == record
        assert state.get_record(record.id).total_amount == Decimal("7.50")
        assert changes == []


class TestLiveDisplay:
    def test_running_elapsed_and_amount(self, sessions, clock):
        sessions.start_session("table-1", "open")
        clock.advance(minutes=20)
        assert sessions.live_elapsed_ms("table-1") == 20 * MIN
        assert sessions.current_amount("table-1") == Decimal("7.50")

    def test_closed_table_shows_frozen_value(self, sessions, clock):
        sessions.start_session("table-1", "open")
        clock.advance(minutes=20)
        sessions.end_session("table-1", 20 * MIN)
        clock.advance(minutes=40)
        assert sessions.live_elapsed_ms("table-1") == 20 * MIN

    def test_vanished_session_returns_none(self, sessions):
        assert sessions.live_elapsed_ms("table-1") is None
        assert sessions.current_amount("table-1") is None
        assert sessions.live_elapsed_ms("ghost") is None


def _assert_table_invariants(state):
    for table in state.tables:
        session = table.current_session
        assert (table.status == TABLE_AVAILABLE) == (session is None), table
        if session is not None:
            assert (session.ended_elapsed_ms is not None) == (table.status == TABLE_CLOSED), table


class TestLifecycleInvariants:
    """Arbitrary call orders never leave a table in a contradictory state."""

    TABLES = ("table-1", "table-2", "ghost")

    def _step(self, rng, state, sessions, clock):
        table_id = rng.choice(self.TABLES)
        op = rng.choice(("start_open", "start_fixed", "end", "pay", "update", "void", "edit"))
        clock.advance(minutes=rng.randint(0, 50))
        if op == "start_open":
            sessions.start_session(table_id, "open")
        elif op == "start_fixed":
            sessions.start_session(table_id, "fixed", rng.choice([1, 0.5, "abc", None, float("nan")]))
        elif op == "end":
            sessions.end_session(table_id, rng.choice([None, rng.randint(0, 120) * MIN]))
        elif op == "pay":
            sessions.complete_payment(table_id)
        elif op == "update":
            sessions.update_fixed_duration(table_id, rng.choice([2, 0, -1, "abc", None]))
        elif state.sessions:
            record = rng.choice(state.sessions)
            if op == "void":
                sessions.void_session(record.id)
            else:
                sessions.edit_session(record.id, {"totalAmount": rng.choice([5, "abc", -3])})

    @pytest.mark.parametrize("seed", range(20))
    def test_random_call_sequences(self, state, sessions, clock, seed):
        rng = random.Random(seed)
        for _ in range(60):
            before = len(state.sessions)
            self._step(rng, state, sessions, clock)
            _assert_table_invariants(state)
            assert len(state.sessions) - before in (0, 1)
            assert all(rec.total_amount >= 0 for rec in state.sessions)
