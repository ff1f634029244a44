"""
Synchronous event bus for run events.

Events are emitted from the orchestrator loop and from the resource monitor
thread. Events arriving after close() are dropped.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from plant_longrun.core.events.event_sink import EventSink

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches each event to every registered sink, in registration order."""

    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self._sinks: list[EventSink] = list(sinks) if sinks is not None else []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def emit(self, event: Any) -> None:
        with self._lock:
            if self._closed:
                # The monitor thread may outlive a timed-out join.
                LOGGER.debug("Dropping %s emitted after close", type(event).__name__)
                return
            sinks = list(self._sinks)

        for sink in sinks:
            sink.on_event(event)

    def close(self) -> None:
        """Close every sink that exposes close(); later emits are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            sinks = list(self._sinks)

        for sink in sinks:
            close_fn = getattr(sink, "close", None)
            if callable(close_fn):
                close_fn()
