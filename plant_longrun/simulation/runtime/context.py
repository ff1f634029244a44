from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from plant_longrun.core.events.event_bus import EventBus
from plant_longrun.core.events.events import (
    CheckpointSavedEvent,
    CriticalStabilityEvent,
    FatalErrorEvent,
    MemoryCleanupEvent,
    ProgressEvent,
    RecoveryAttemptEvent,
    StabilityIssueEvent,
)
from plant_longrun.core.events.sinks.file_recorder import FileRecorderSink
from plant_longrun.core.events.sinks.sink_logging import LoggingEventSink


@dataclass(frozen=True, slots=True)
class RunContext:
    """
    Output directory layout of one run.

    output_dir/
      checkpoints/        checkpoint_day_NNN.json[.gz]
      daily_results/      segment_SSS_EEE.npz
      monitoring/         stability, memory and progress logs
      recovery_logs/      recovery attempts and fatal errors
      events.jsonl        every domain event
    """

    output_dir: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "output_dir", Path(self.output_dir))

    @property
    def checkpoints_dir(self) -> Path:
        return self.output_dir / "checkpoints"

    @property
    def daily_results_dir(self) -> Path:
        return self.output_dir / "daily_results"

    @property
    def monitoring_dir(self) -> Path:
        return self.output_dir / "monitoring"

    @property
    def recovery_dir(self) -> Path:
        return self.output_dir / "recovery_logs"

    @property
    def events_file(self) -> Path:
        return self.output_dir / "events.jsonl"

    def create_directories(self) -> None:
        for directory in (
            self.output_dir,
            self.checkpoints_dir,
            self.daily_results_dir,
            self.monitoring_dir,
            self.recovery_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


def build_event_bus(ctx: RunContext, *, logger: logging.Logger | None = None) -> EventBus:
    """Event bus writing the run log files of ``ctx``."""
    ctx.create_directories()

    return EventBus(
        sinks=[
            LoggingEventSink(logger or logging.getLogger("plant_longrun.events")),
            FileRecorderSink(ctx.events_file),
            FileRecorderSink(
                ctx.monitoring_dir / "stability_issues.log",
                event_types=[StabilityIssueEvent],
            ),
            FileRecorderSink(
                ctx.monitoring_dir / "critical_stability.log",
                event_types=[CriticalStabilityEvent],
            ),
            FileRecorderSink(
                ctx.monitoring_dir / "memory_cleanup.log",
                event_types=[MemoryCleanupEvent],
            ),
            FileRecorderSink(
                ctx.monitoring_dir / "progress.log",
                event_types=[ProgressEvent, CheckpointSavedEvent],
            ),
            FileRecorderSink(
                ctx.recovery_dir / "recovery.log",
                event_types=[RecoveryAttemptEvent],
            ),
            FileRecorderSink(
                ctx.recovery_dir / "errors.log",
                event_types=[FatalErrorEvent],
            ),
        ]
    )
