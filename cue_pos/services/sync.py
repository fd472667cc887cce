"""Debounced, best-effort propagation of the venue state to a store.

Local mutations are never blocked or rolled back by persistence. Each
``state_changed`` captures a snapshot on the writer's thread and (re)starts a
short timer; when the timer fires only the latest snapshot is written. A
failed write is logged and dropped; the next mutation tries again.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from .state import STATE_CHANGED, PosState, empty_snapshot
from .stores import StateStore, StoreError

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


def thread_scheduler(delay_s: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay_s, fn)
    timer.daemon = True
    timer.start()
    return timer


class Debouncer:
    """Coalesce bursts of calls into one, *delay_ms* after the last call.

    The scheduler returns a handle with ``cancel()``; ``threading.Timer`` is
    the default.
    """

    __slots__ = ("delay_ms", "callback", "_schedule", "_lock", "_handle", "_args")

    def __init__(
        self,
        delay_ms: int,
        callback: Callable[..., None],
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.delay_ms = max(0, int(delay_ms))
        self.callback = callback
        self._schedule = scheduler or thread_scheduler
        self._lock = threading.Lock()
        self._handle = None
        self._args: tuple = ()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._args = args
            self._handle = self._schedule(self.delay_ms / 1000.0, self._fire)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._args = ()

    def flush(self) -> None:
        """Run the pending call now, if there is one."""
        with self._lock:
            if self._handle is None:
                return
            self._handle.cancel()
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            args = self._args
            self._handle = None
            self._args = ()
        self.callback(*args)


class SyncAdapter:
    __slots__ = (
        "store",
        "state",
        "debouncer",
        "quiet_ms",
        "monotonic",
        "_quiet_until",
        "_attached",
        "__weakref__",
    )

    def __init__(
        self,
        store: StateStore,
        state: PosState,
        *,
        debounce_ms: int = 500,
        quiet_ms: int = 300,
        scheduler: Optional[Scheduler] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.state = state
        self.debouncer = Debouncer(debounce_ms, self._push, scheduler)
        self.quiet_ms = quiet_ms
        self.monotonic = monotonic
        self._quiet_until = 0.0
        self._attached = False

    # ----- store access -----
    def load(self) -> Optional[Dict[str, Any]]:
        """Stored snapshot, the empty default shape on first run, ``None`` on failure."""
        try:
            data = self.store.load()
        except StoreError as exc:
            logger.warning("loading state from %s store failed: %s", self.store.name, exc)
            return None
        if data is None:
            logger.info("%s store is empty, starting from defaults", self.store.name)
            return empty_snapshot(self.state.hourly_rate)
        return data

    def save(self, snapshot: Optional[Dict[str, Any]] = None) -> bool:
        payload = snapshot if snapshot is not None else self.state.snapshot()
        try:
            self.store.save(payload)
        except StoreError as exc:
            logger.warning("pushing state to %s store failed: %s", self.store.name, exc)
            return False
        logger.debug("state pushed to %s store", self.store.name)
        return True

    def pull(self) -> bool:
        """Replace local state with the stored snapshot (last snapshot wins).

        A store that was never written is seeded with the local state instead,
        so the factory stock is not replaced by the empty default shape.
        """
        try:
            data = self.store.load()
        except StoreError as exc:
            logger.warning("loading state from %s store failed: %s", self.store.name, exc)
            return False
        if data is None:
            logger.info("%s store is empty, seeding it with local state", self.store.name)
            return self.save()
        self.debouncer.cancel()
        try:
            self.state.apply_snapshot(data)
        except ValueError as exc:
            logger.warning("ignoring stored state from %s store: %s", self.store.name, exc)
            return False
        self._quiet_until = self.monotonic() + self.quiet_ms / 1000.0
        return True

    # ----- change feed -----
    def attach(self) -> None:
        if self._attached:
            return
        self.state.subscribe(self._on_state_changed)
        self._attached = True

    def detach(self) -> None:
        if not self._attached:
            return
        self.state.events.unsubscribe(STATE_CHANGED, self._on_state_changed)
        self._attached = False

    @property
    def in_quiet_window(self) -> bool:
        return self.monotonic() < self._quiet_until

    def _on_state_changed(self, reason: str = "") -> None:
        if self.in_quiet_window:
            logger.debug("skipping push for %s right after load", reason)
            return
        self.debouncer.trigger(self.state.snapshot())

    def _push(self, snapshot: Dict[str, Any]) -> None:
        self.save(snapshot)

    def flush(self) -> None:
        self.debouncer.flush()

    def close(self) -> None:
        self.flush()
        self.detach()
        self.store.close()
