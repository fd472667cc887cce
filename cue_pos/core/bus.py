from collections import defaultdict
from types import MethodType
from typing import Callable, DefaultDict, List, Union
import weakref


Listener = Union[Callable[..., None], weakref.WeakMethod]


class EventBus:
    """Minimal pub/sub helper that avoids retaining dead listeners.

    Every state container owns its own bus; there is no module level instance.
    """

    __slots__ = ("_subs",)

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, event_name: str, callback: Callable[..., None]) -> None:
        listeners = self._subs[event_name]
        if isinstance(callback, MethodType):
            listeners.append(weakref.WeakMethod(callback))
        else:
            listeners.append(callback)

    def unsubscribe(self, event_name: str, callback: Callable[..., None]) -> None:
        listeners = self._subs.get(event_name)
        if not listeners:
            return
        kept: List[Listener] = []
        for cb in listeners:
            target = cb() if isinstance(cb, weakref.WeakMethod) else cb
            if target is None or target == callback:
                continue
            kept.append(cb)
        self._subs[event_name] = kept

    def listener_count(self, event_name: str) -> int:
        return len(self._subs.get(event_name, ()))

    def emit(self, event_name: str, *args, **kwargs) -> None:
        listeners = self._subs.get(event_name)
        if not listeners:
            return

        dead: List[Listener] = []
        # iterate a copy so listeners may subscribe while we dispatch
        for cb in list(listeners):
            if isinstance(cb, weakref.WeakMethod):
                fn = cb()
                if fn is None:
                    dead.append(cb)
                    continue
                fn(*args, **kwargs)
            else:
                cb(*args, **kwargs)
        if dead:
            self._subs[event_name] = [cb for cb in self._subs[event_name] if cb not in dead]
