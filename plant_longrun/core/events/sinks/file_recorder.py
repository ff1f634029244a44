"""
Append-only file recorder sink.
"""
from __future__ import annotations

import json
import threading
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Iterable


def event_record(event: Any) -> dict[str, Any]:
    """Return a JSON-compatible record for an event."""
    if is_dataclass(event) and not isinstance(event, type):
        record = asdict(event)
    elif hasattr(event, "__dict__"):
        record = dict(event.__dict__)
    else:
        record = {"event": str(event)}
    return {"event_type": type(event).__name__, **record}


class FileRecorderSink:
    """Writes each event as a JSON line to a file.

    When ``event_types`` is given, only events of those types are recorded.
    Writes are serialized because events may arrive from a monitor thread.
    """

    def __init__(
        self,
        path: str | Path,
        event_types: Iterable[type] | None = None,
    ) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._event_types = tuple(event_types) if event_types is not None else None
        self._fh = self._path.open("a", encoding="utf-8")
        self._lock = threading.Lock()
        self._closed = False

    @property
    def path(self) -> Path:
        return self._path

    def on_event(self, event: Any) -> None:
        if self._event_types is not None and not isinstance(event, self._event_types):
            return

        line = json.dumps(event_record(event), default=str)
        with self._lock:
            if self._closed:
                return
            self._fh.write(line + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._fh.flush()
            self._fh.close()
            self._closed = True
