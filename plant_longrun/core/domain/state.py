"""Mutable run-wide state owned by the orchestrator.

Invariant:
- ``current_day == completed_days + 1`` between segments.
- The stability history holds at most ``horizon_days`` entries, one per day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


class StabilityHistory:
    """Fixed-capacity, day-indexed record of stability verdicts.

    Slot ``day - 1`` holds the verdict for ``day``. A slot is written once;
    rewriting it requires ``overwrite=True`` (a retry of the same day).
    """

    def __init__(self, capacity: int, values: list[bool | None] | None = None) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be > 0")

        slots: list[bool | None] = [None] * capacity
        if values is not None:
            if len(values) > capacity:
                raise ValueError(
                    f"history of {len(values)} days exceeds capacity {capacity}"
                )
            slots[: len(values)] = values

        self._slots = slots

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def __len__(self) -> int:
        return sum(1 for v in self._slots if v is not None)

    def __getitem__(self, day: int) -> bool | None:
        return self._slots[self._index(day)]

    def _index(self, day: int) -> int:
        if not 1 <= day <= len(self._slots):
            raise IndexError(f"day {day} outside [1, {len(self._slots)}]")
        return day - 1

    def record(self, day: int, stable: bool, *, overwrite: bool = False) -> None:
        index = self._index(day)
        if self._slots[index] is not None and not overwrite:
            raise ValueError(f"stability for day {day} already recorded")
        self._slots[index] = bool(stable)

    def record_range(
        self,
        start_day: int,
        end_day: int,
        stable: bool,
        *,
        overwrite: bool = False,
    ) -> None:
        for day in range(start_day, end_day + 1):
            self.record(day, stable, overwrite=overwrite)

    def window(self, end_day: int, size: int) -> list[bool]:
        """Recorded verdicts for the ``size`` days ending at ``end_day``."""
        start = max(1, end_day - size + 1)
        return [
            v
            for v in self._slots[start - 1 : end_day]
            if v is not None
        ]

    def to_list(self) -> list[bool | None]:
        return list(self._slots)


@dataclass(slots=True)
class SimulationState:
    """Run-wide progress counters and history."""

    horizon_days: int
    current_day: int = 1
    completed_days: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error_count: int = 0
    recovery_count: int = 0
    stability: StabilityHistory | None = None
    memory_usage_mb: list[tuple[int, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.stability is None:
            self.stability = StabilityHistory(self.horizon_days)

    @property
    def is_complete(self) -> bool:
        return self.completed_days >= self.horizon_days

    def commit(self, end_day: int) -> None:
        """Advance past a successfully completed segment."""
        if end_day < self.current_day:
            raise ValueError(
                f"segment end {end_day} precedes current day {self.current_day}"
            )
        self.completed_days = end_day
        self.current_day = end_day + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "horizon_days": self.horizon_days,
            "current_day": self.current_day,
            "completed_days": self.completed_days,
            "started_at": self.started_at.isoformat(),
            "error_count": self.error_count,
            "recovery_count": self.recovery_count,
            "stability": self.stability.to_list(),
            "memory_usage_mb": [list(item) for item in self.memory_usage_mb],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SimulationState:
        horizon_days = int(data["horizon_days"])
        completed_days = int(data["completed_days"])

        return cls(
            horizon_days=horizon_days,
            # Any partially run segment is discarded.
            current_day=completed_days + 1,
            completed_days=completed_days,
            started_at=datetime.fromisoformat(data["started_at"]),
            error_count=int(data.get("error_count", 0)),
            recovery_count=int(data.get("recovery_count", 0)),
            stability=StabilityHistory(horizon_days, list(data.get("stability", []))),
            memory_usage_mb=[
                (int(day), float(mb)) for day, mb in data.get("memory_usage_mb", [])
            ],
        )
