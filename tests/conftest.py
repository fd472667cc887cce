import os
import tempfile
from datetime import datetime, timedelta

import pytest

# Point every data path at a throwaway root before cue_pos computes them
os.environ.setdefault("CUE_POS_DATA_ROOT", tempfile.mkdtemp(prefix="cue-pos-tests-"))

from cue_pos.services.floor import FloorManager
from cue_pos.services.retail import RetailManager
from cue_pos.services.sessions import SessionManager
from cue_pos.services.state import PosState


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ManualHandle:
    def __init__(self, scheduler, delay, fn):
        self.scheduler = scheduler
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Stands in for threading.Timer: callbacks run only on ``run_pending``."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, fn):
        handle = ManualHandle(self, delay, fn)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self):
        due = self.pending
        self.handles = []
        for handle in due:
            handle.fn()
        return len(due)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 15, 14, 0, 0))


@pytest.fixture
def state():
    return PosState.with_defaults()


@pytest.fixture
def sessions(state, clock):
    return SessionManager(state, clock)


@pytest.fixture
def floor(state):
    return FloorManager(state)


@pytest.fixture
def retail(state, clock):
    return RetailManager(state, clock)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def changes(state):
    """Reasons of every ``state_changed`` emitted during the test."""
    seen = []
    state.subscribe(seen.append)
    return seen
