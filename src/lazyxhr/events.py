"""Lifecycle event publish/subscribe."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable

from .exceptions import InvalidOptionError
from .schemas import EVENT_PAYLOADS, LifecycleEvent, TransportEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[TransportEvent], None]


def _as_event(event: LifecycleEvent | str) -> LifecycleEvent:
    try:
        return LifecycleEvent(event)
    except ValueError:
        raise InvalidOptionError(f"Unknown lifecycle event: {event!r}") from None


class EventBus:
    """Dispatches lifecycle events to subscribed callbacks.

    Every lifecycle event is registered up front, so callbacks can subscribe
    before the first request is sent. Callbacks run on whichever thread the
    transport reports the event from.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._callbacks: dict[LifecycleEvent, dict[int, EventCallback]] = {
            event: {} for event in LifecycleEvent
        }

    @property
    def events(self) -> frozenset[LifecycleEvent]:
        return frozenset(self._callbacks)

    def on(self, event: LifecycleEvent | str, callback: EventCallback) -> int:
        """Subscribe ``callback`` to ``event``.

        Returns:
            An id that can be passed to ``off``.

        Raises:
            InvalidOptionError: If ``event`` is not a lifecycle event.
        """
        key = _as_event(event)
        with self._lock:
            callback_id = next(self._ids)
            self._callbacks[key][callback_id] = callback
        return callback_id

    def off(self, callback_id: int) -> bool:
        """Remove a subscription. Returns False if the id is unknown."""
        with self._lock:
            for callbacks in self._callbacks.values():
                if callbacks.pop(callback_id, None) is not None:
                    return True
        return False

    def clear(self) -> None:
        with self._lock:
            for callbacks in self._callbacks.values():
                callbacks.clear()

    def emit(self, event: LifecycleEvent | str, payload: TransportEvent) -> None:
        """Call every callback subscribed to ``event`` with ``payload``.

        A callback that raises is logged and does not stop the others.
        """
        key = _as_event(event)
        expected = EVENT_PAYLOADS[key]
        if not isinstance(payload, expected):
            raise TypeError(
                f"{key.value} expects {expected.__name__}, got {type(payload).__name__}"
            )

        with self._lock:
            callbacks = list(self._callbacks[key].values())
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("Callback for %r event failed", key.value)
