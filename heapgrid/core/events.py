from __future__ import annotations

"""Lifecycle events emitted by grid hosts.

Listeners are plain callables registered per event.  Surrounding UI chrome
(toolbars, context menus, widgets) subscribes to these instead of poking at
grid internals.
"""

import enum
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

__all__ = ["GridEvent", "EventDispatcher"]

Listener = Callable[[Any], None]


class GridEvent(enum.Enum):
    CONTENT_SHOWN = "content-shown"
    SORTING_COMPLETE = "sorting-complete"
    VIEWPORT_UPDATED = "viewport-updated"


class EventDispatcher:
    """Per-instance listener registry."""

    def __init__(self) -> None:
        self._listeners: Dict[GridEvent, List[Listener]] = {}

    def add_listener(self, event: GridEvent, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: GridEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def has_listeners(self, event: GridEvent) -> bool:
        return bool(self._listeners.get(event))

    def dispatch(self, event: GridEvent, payload: Any = None) -> None:
        # Copy so listeners may unsubscribe themselves while being notified
        for listener in list(self._listeners.get(event, [])):
            listener(payload)
        logger.debug("Dispatched %s to %d listener(s)", event.value, len(self._listeners.get(event, [])))
