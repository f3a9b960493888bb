# events.py
from __future__ import annotations

from typing import Any, Callable, Dict, List

START = "start"
PASS = "pass"
FAIL = "fail"
FINISH = "finish"
INFO = "info"

EVENTS = (START, PASS, FAIL, FINISH, INFO)

Handler = Callable[..., Any]


class EventEmitter:
    """
    Ordered, synchronous listener registry.

    Handlers for an event are called in registration order, at the moment
    emit() is called. Exceptions raised by a handler propagate to the caller
    of emit().
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {name: [] for name in EVENTS}

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register `handler` for `event` and return a function that removes it."""
        if event not in self._handlers:
            raise ValueError(f"Unknown event {event!r}. Known events: {list(EVENTS)}")
        if not callable(handler):
            raise TypeError(f"Handler must be callable, got {type(handler)}")

        self._handlers[event].append(handler)
        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            handlers = self._handlers[event]
            # remove this registration only, the same handler may be registered twice
            for i in range(len(handlers) - 1, -1, -1):
                if handlers[i] is handler:
                    del handlers[i]
                    break

        return unsubscribe

    def on(self, event: str, handler: Handler):
        """Chaining form of subscribe()."""
        self.subscribe(event, handler)
        return self

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        if event not in self._handlers:
            raise ValueError(f"Unknown event {event!r}")
        # copy: a handler may unsubscribe while we iterate
        for handler in list(self._handlers[event]):
            handler(*args)
