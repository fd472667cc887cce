import gc

from cue_pos.core.bus import EventBus


class Listener:
    def __init__(self):
        self.calls = []

    def on_event(self, *args):
        self.calls.append(args)


def test_emit_reaches_functions_and_methods():
    bus = EventBus()
    seen = []
    listener = Listener()
    bus.subscribe("ping", seen.append)
    bus.subscribe("ping", listener.on_event)

    bus.emit("ping", 1)

    assert seen == [1]
    assert listener.calls == [(1,)]


def test_dead_bound_methods_are_dropped():
    bus = EventBus()
    listener = Listener()
    bus.subscribe("ping", listener.on_event)
    del listener
    gc.collect()

    bus.emit("ping")
    assert bus.listener_count("ping") == 0


def test_unsubscribe():
    bus = EventBus()
    listener = Listener()
    bus.subscribe("ping", listener.on_event)
    bus.unsubscribe("ping", listener.on_event)
    bus.emit("ping")
    assert listener.calls == []


def test_listener_added_during_emit_is_kept():
    bus = EventBus()
    late = []

    def first():
        bus.subscribe("ping", lambda: late.append(True))

    bus.subscribe("ping", first)
    bus.emit("ping")
    assert bus.listener_count("ping") == 2
    bus.emit("ping")
    assert late == [True]
