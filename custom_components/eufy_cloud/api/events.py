"""Event emitter used by the Eufy client (observer pattern)."""
from __future__ import annotations

from collections.abc import Callable
import inspect
import logging
from typing import Any

_LOGGER = logging.getLogger(__name__)

# Client event names
EVENT_CONNECT = "connect"
EVENT_CLOSE = "close"
EVENT_TFA_REQUEST = "tfa request"
EVENT_CAPTCHA_REQUEST = "captcha request"
EVENT_PUSH_CONNECT = "push connect"
EVENT_PUSH_CLOSE = "push close"
EVENT_DEVICE_ADDED = "device added"
EVENT_DEVICE_UPDATED = "device updated"
EVENT_STATION_ADDED = "station added"
EVENT_MOTION_DETECTED = "motion detected"


class EventEmitter:
    """Registers callbacks by event name and dispatches to them in order."""

    def __init__(self) -> None:
        self._events: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Register a handler and return a function that removes it."""
        self._events.setdefault(event, []).append(callback)

        def _unsubscribe() -> None:
            self.off(event, callback)

        return _unsubscribe

    def off(self, event: str, callback: Callable[..., Any] | None = None) -> None:
        """Remove one handler, or every handler of an event."""
        if event not in self._events:
            return
        if callback is None:
            del self._events[event]
            return
        self._events[event] = [cb for cb in self._events[event] if cb != callback]

    def listener_count(self, event: str) -> int:
        """Return the number of handlers registered for an event."""
        return len(self._events.get(event, []))

    def clear(self) -> None:
        """Remove every handler."""
        self._events.clear()

    async def async_emit(self, event: str, *args: Any) -> None:
        """Call every handler of an event, awaiting coroutine handlers."""
        # Copy so handlers may unsubscribe while being dispatched
        for callback in list(self._events.get(event, [])):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        _LOGGER.debug("Dispatched '%s' event", event)
