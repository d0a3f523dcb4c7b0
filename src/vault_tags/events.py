"""Event bus for index change notifications.

Listeners subscribe to named events; emitting is fire-and-forget and a
failing listener never prevents the others from running.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

TAGS_REINDEX = "tags:reindex"

Listener = Callable[[Any], None]


class EventBus:
    """Simple publish/subscribe registry."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Subscribe ``callback`` to ``event``. Returns an unsubscribe function."""
        callbacks = self._listeners.setdefault(event, [])
        if callback not in callbacks:
            callbacks.append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: str, callback: Listener) -> None:
        callbacks = self._listeners.get(event)
        if not callbacks:
            return
        if callback in callbacks:
            callbacks.remove(callback)
        if not callbacks:
            del self._listeners[event]

    def emit(self, event: str, data: Any = None) -> None:
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(data)
            except Exception as e:
                logger.error('Error in event listener for "%s": %s', event, e)

    def clear(self) -> None:
        """Drop every listener."""
        self._listeners.clear()

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))
