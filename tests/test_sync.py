"""Debounced persistence between the state container and a store."""

import logging

import pytest

from cue_pos.services.state import PosState
from cue_pos.services.stores import StateStore, StoreError
from cue_pos.services.sync import Debouncer, SyncAdapter


class MemoryStore(StateStore):
    name = "memory"

    def __init__(self, doc=None, fail_load=False, fail_save=False):
        self.doc = doc
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saves = []
        self.closed = False

    def load(self):
        if self.fail_load:
            raise StoreError("offline")
        return self.doc

    def save(self, payload):
        if self.fail_save:
            raise StoreError("offline")
        self.saves.append(payload)
        self.doc = payload

    def close(self):
        self.closed = True


class Tick:
    def __init__(self):
        self.value = 100.0

    def __call__(self):
        return self.value


class TestDebouncer:
    def test_burst_collapses_to_last_call(self, scheduler):
        calls = []
        debouncer = Debouncer(500, calls.append, scheduler)
        for n in range(5):
            debouncer.trigger(n)

        assert debouncer.pending
        assert scheduler.run_pending() == 1
        assert calls == [4]
        assert not debouncer.pending

    def test_delay_is_passed_in_seconds(self, scheduler):
        Debouncer(500, lambda: None, scheduler).trigger()
        assert scheduler.pending[0].delay == 0.5

    def test_cancel_drops_pending_call(self, scheduler):
        calls = []
        debouncer = Debouncer(500, calls.append, scheduler)
        debouncer.trigger("x")
        debouncer.cancel()
        assert scheduler.run_pending() == 0
        assert calls == []

    def test_flush_runs_now(self, scheduler):
        calls = []
        debouncer = Debouncer(500, calls.append, scheduler)
        debouncer.trigger("now")
        debouncer.flush()
        debouncer.flush()
        assert calls == ["now"]


class TestSyncAdapter:
    def _adapter(self, store, state, scheduler, tick=None):
        return SyncAdapter(store, state, debounce_ms=500, quiet_ms=300, scheduler=scheduler, monotonic=tick or Tick())

    def test_load_empty_store_gives_default_shape(self, state, scheduler):
        data = self._adapter(MemoryStore(), state, scheduler).load()
        assert data["tables"] == [] and data["sessions"] == [] and data["retailSales"] == []
        assert data["hourlyRate"] == 15.0
        assert "updatedAt" in data

    def test_load_failure_returns_none(self, state, scheduler, caplog):
        adapter = self._adapter(MemoryStore(fail_load=True), state, scheduler)
        with caplog.at_level(logging.WARNING):
            assert adapter.load() is None
        assert "offline" in caplog.text

    def test_save_failure_is_logged_and_returns_false(self, state, scheduler, caplog):
        adapter = self._adapter(MemoryStore(fail_save=True), state, scheduler)
        with caplog.at_level(logging.WARNING):
            assert adapter.save() is False
        assert "pushing state to memory store failed" in caplog.text

    def test_mutations_are_pushed_once_after_burst(self, state, sessions, scheduler):
        store = MemoryStore()
        adapter = self._adapter(store, state, scheduler)
        adapter.attach()

        sessions.start_session("table-1", "open")
        sessions.end_session("table-1", 60_000)
        sessions.complete_payment("table-1")
        assert store.saves == []

        scheduler.run_pending()
        assert len(store.saves) == 1
        assert len(store.saves[0]["sessions"]) == 1

    def test_pushed_snapshot_is_taken_at_mutation_time(self, state, floor, scheduler):
        store = MemoryStore()
        adapter = self._adapter(store, state, scheduler)
        adapter.attach()

        floor.rename_table("table-1", "Front")
        # a change that bypasses commit is not part of the pending push
        state.get_table("table-1").name = "Sneaky"
        scheduler.run_pending()
        assert store.saves[0]["tables"][0]["name"] == "Front"

    def test_failed_push_does_not_roll_back(self, state, floor, scheduler):
        adapter = self._adapter(MemoryStore(fail_save=True), state, scheduler)
        adapter.attach()
        floor.rename_table("table-1", "Front")
        scheduler.run_pending()
        assert state.get_table("table-1").name == "Front"

    def test_pull_replaces_state_and_mutes_echo(self, scheduler):
        remote = PosState.with_defaults()
        remote.tables[0].name = "Remote table"
        remote.hourly_rate = remote.hourly_rate * 2
        store = MemoryStore(remote.snapshot())
        local = PosState.with_defaults()
        tick = Tick()
        adapter = self._adapter(store, local, scheduler, tick)
        adapter.attach()
        replaced = []
        local.events.subscribe("state_replaced", lambda: replaced.append(True))

        assert adapter.pull()
        assert local.tables[0].name == "Remote table"
        assert local.hourly_rate == 30
        assert replaced == [True]

        # inside the quiet window the change is not echoed back
        local.commit("echo")
        assert scheduler.pending == []

        tick.value += 0.5
        local.commit("later")
        assert len(scheduler.pending) == 1

    def test_pull_keeps_local_floor_when_remote_has_none(self, state, scheduler):
        store = MemoryStore({"tables": [], "priceCategories": [], "sessions": [], "hourlyRate": 15})
        assert self._adapter(store, state, scheduler).pull()
        assert len(state.tables) == 4
        assert len(state.price_categories) == 3

    def test_pull_on_empty_store_seeds_it(self, state, scheduler):
        store = MemoryStore()
        assert self._adapter(store, state, scheduler).pull()
        assert len(store.saves) == 1
        assert len(state.retail_items) == 6

    def test_pull_failure_keeps_local_state(self, state, scheduler):
        assert self._adapter(MemoryStore(fail_load=True), state, scheduler).pull() is False
        assert len(state.tables) == 4

    def test_malformed_snapshot_is_rejected_whole(self, state, scheduler):
        doc = {"sessions": [], "retailItems": [{"name": "no id"}]}
        state.sessions = ["sentinel"]
        assert self._adapter(MemoryStore(doc), state, scheduler).pull() is False
        assert state.sessions == ["sentinel"]
        assert len(state.retail_items) == 6

    @pytest.mark.parametrize(
        "doc",
        [
            {"retailItems": [{"id": "i", "name": "Cola", "price": "oops", "category": "Drinks", "stock": 3}]},
            {"sessions": [{"id": "s", "startTime": "2024-03-15T10:00:00", "totalAmount": "NaN"}]},
            {"orders": [{"id": "o", "items": [{"itemId": "i", "quantity": 1, "unitPrice": None}]}]},
            {"retailSales": [{"id": "r", "quantity": 1, "unitPrice": 2, "totalPrice": "two"}]},
        ],
    )
    def test_garbage_money_rejects_the_snapshot(self, state, scheduler, doc):
        prices = [item.price for item in state.retail_items]
        assert self._adapter(MemoryStore(doc), state, scheduler).pull() is False
        assert [item.price for item in state.retail_items] == prices
        assert state.sessions == [] and state.orders == []

    def test_close_flushes_and_detaches(self, state, floor, scheduler):
        store = MemoryStore()
        adapter = self._adapter(store, state, scheduler)
        adapter.attach()
        floor.rename_table("table-1", "Front")
        adapter.close()

        assert len(store.saves) == 1
        assert store.closed
        floor.rename_table("table-1", "Back")
        assert scheduler.pending == []
