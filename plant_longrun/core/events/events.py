"""
Domain event models.

These events represent immutable facts observed during a run.
They are consumed by loggers, run-log recorders, and monitoring pipelines.
Every event carries the simulated day it refers to and a UTC timestamp.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class SegmentCompletedEvent:
    day: int
    start_day: int
    end_day: int
    duration_seconds: float
    is_stable: bool
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class ProgressEvent:
    day: int
    horizon_days: int
    progress_pct: float
    elapsed_seconds: float
    eta_seconds: float | None
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class StabilityIssueEvent:
    day: int
    start_day: int
    end_day: int
    issues: list[str]
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class CriticalStabilityEvent:
    day: int
    unstable_ratio: float
    recent_stability: list[bool]
    message: str
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class RecoveryAttemptEvent:
    day: int
    error: str
    strategy: str
    success: bool
    recovery_count: int
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class FatalErrorEvent:
    day: int
    error: str
    error_count: int
    checkpoint: str | None
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class CheckpointSavedEvent:
    day: int
    path: str
    completed_results: int
    ts: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class MemoryCleanupEvent:
    day: int
    available_gb: float
    threshold_gb: float
    collected_objects: int
    ts: str = field(default_factory=utc_now_iso)
