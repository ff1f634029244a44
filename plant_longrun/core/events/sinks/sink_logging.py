"""
Logging event sink.
"""
from __future__ import annotations

import logging
from typing import Any

from plant_longrun.core.events.events import (
    CriticalStabilityEvent,
    FatalErrorEvent,
    MemoryCleanupEvent,
    StabilityIssueEvent,
)

_WARNING_EVENTS = (StabilityIssueEvent, MemoryCleanupEvent)
_ERROR_EVENTS = (CriticalStabilityEvent, FatalErrorEvent)


class LoggingEventSink:
    """Logs domain events using the standard logging module."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def on_event(self, event: Any) -> None:
        level = logging.INFO
        if isinstance(event, _ERROR_EVENTS):
            level = logging.ERROR
        elif isinstance(event, _WARNING_EVENTS):
            level = logging.WARNING

        self._logger.log(
            level,
            "domain_event %s",
            type(event).__name__,
            extra={"event": event},
        )
