from __future__ import annotations

from typing import Any

from plant_longrun.core.events.event_bus import EventBus


class NullEventBus(EventBus):
    """Bus without run logs; only counts what it discards."""

    def __init__(self) -> None:
        super().__init__(sinks=())
        self.discarded = 0

    def emit(self, event: Any) -> None:
        self.discarded += 1
