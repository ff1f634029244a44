"""
Run event sink interface.

A sink receives every run event (segment completion, progress, stability,
recovery, memory cleanup, checkpoints, fatal errors). on_event may be called
from the resource monitor thread. A sink holding files may also expose
close(), which EventBus.close() calls once at the end of a run.
"""
from __future__ import annotations

from typing import Any, Protocol


class EventSink(Protocol):
    def on_event(self, event: Any) -> None: ...
