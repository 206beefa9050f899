"""Minimal observer interface used between the orchestrator and its components."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("minecraft-mcp.events")

# Every event a component may emit.  Subscribing to anything else is a bug.
EVENTS = frozenset({"connected", "log", "error", "stopped", "chat", "kicked"})

Listener = Callable[..., Any]


class EventEmitter:
    """Per-component subscription registry.

    Listeners run synchronously in emit order.  A listener that raises is
    logged and skipped so one bad subscriber cannot break the component that
    emitted the event.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Callable[[], None]:
        """Subscribe ``listener`` to ``event``; returns an unsubscribe callable."""
        if event not in EVENTS:
            raise ValueError(f"Unknown event: {event!r}")
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)
