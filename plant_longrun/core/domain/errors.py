"""Error taxonomy for long-horizon simulation runs.

Propagation rules:
- ConfigError and CheckpointCorruptError always escalate immediately.
- SimulatorError is absorbed once per failing day by the recovery layer and
  escalated as FatalSimulationError on the second failure.
- ExtractionError and StabilityWarning never leave the segment layer.
- CriticalStabilityError is logged, never raised out of a run.
"""

from __future__ import annotations

from pathlib import Path


class SimulationError(Exception):
    """Base class for all run-level errors."""


class ConfigError(SimulationError, ValueError):
    """Invalid run parameters. Raised before any run state exists."""


class SimulatorError(SimulationError):
    """The external plant simulator raised while running a segment."""

    def __init__(self, cause: BaseException, *, start_day: int | None = None) -> None:
        self.cause = cause
        self.start_day = start_day
        super().__init__(f"{type(cause).__name__}: {cause}")

    @property
    def signature(self) -> str:
        """Text used to classify the failure (exception type plus message)."""
        return str(self)


class ExtractionError(SimulationError):
    """An expected output signal is absent from the simulator trace."""

    def __init__(self, signal: str, available: list[str]) -> None:
        self.signal = signal
        self.available = available
        super().__init__(
            f"signal {signal!r} not found; available: {', '.join(available) or '<none>'}"
        )


class CheckpointCorruptError(SimulationError):
    """A checkpoint failed validation at load time."""


class FatalSimulationError(SimulationError):
    """Terminal run failure. A best-effort checkpoint precedes it."""

    def __init__(
        self,
        message: str,
        *,
        day: int,
        checkpoint: Path | None = None,
    ) -> None:
        self.day = day
        self.checkpoint = checkpoint
        super().__init__(message)


class CriticalStabilityError(SimulationError):
    """Trailing window dominated by unstable days (informational only)."""

    def __init__(self, day: int, unstable_ratio: float, window: list[bool]) -> None:
        self.day = day
        self.unstable_ratio = unstable_ratio
        self.window = window
        super().__init__(
            f"critical instability at day {day}: "
            f"{unstable_ratio:.0%} of the last {len(window)} days unstable"
        )


class RunInterruptedError(SimulationError):
    """The run was stopped between segments on request."""

    def __init__(self, completed_days: int, checkpoint: Path | None) -> None:
        self.completed_days = completed_days
        self.checkpoint = checkpoint
        super().__init__(f"run interrupted after day {completed_days}")


class StabilityWarning(UserWarning):
    """A segment produced numerically suspicious output."""
