#
# src/lode/nuggets/events.py
#
"""
Per-node change notifications.

Every node owns its own listener table; there is no process-wide event bus.
"""

from collections.abc import Callable
from typing import Any

import structlog

log = structlog.get_logger("nuggets.events")

Listener = Callable[..., Any]
Unsubscribe = Callable[[], None]


class Emitter:
    """Minimal observer implementation used by the tree nodes."""

    __slots__ = ("_listeners",)

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Unsubscribe:
        """Subscribes `listener` to `event` and returns a callable that undoes it."""
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            self.off(event, listener)

        return unsubscribe

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Removes one listener, or every listener of `event` when none is given."""
        if listener is None:
            self._listeners.pop(event, None)
            return
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> None:
        """
        Calls every listener of `event` in subscription order.

        A failing listener is logged and skipped; it never interrupts the
        mutation that triggered the notification.
        """
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(*args)
            except Exception:
                log.exception("Listener failed", event_name=event, listener=getattr(listener, "__name__", repr(listener)))


# 🔼⚙️
