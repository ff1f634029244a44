"""
Checkpoint persistence.

One file per checkpoint, keyed by day: ``checkpoint_day_NNN.json`` (or
``.json.gz`` when compression is on). A checkpoint holds the run config,
the simulation state, every completed SegmentResult, the recovery log and
the solver settings in effect, and is loadable from a separate process.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from plant_longrun.core.config.run_config import RunConfig
from plant_longrun.core.config.solver_config import SolverConfig
from plant_longrun.core.domain.errors import CheckpointCorruptError
from plant_longrun.core.domain.state import SimulationState
from plant_longrun.core.domain.types import RecoveryAttempt, SegmentResult

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"
CHECKPOINT_PATTERN = re.compile(r"^checkpoint_day_(\d{3,})\.json(\.gz)?$")


@dataclass(frozen=True, slots=True)
class Checkpoint:
    path: Path
    config: RunConfig
    state: SimulationState
    results: list[SegmentResult]
    recovery_log: list[RecoveryAttempt]
    solver_config: SolverConfig | None = None


def validate_coverage(completed_days: int, results: Sequence[SegmentResult]) -> None:
    """
    Results must cover exactly ``[1, completed_days]``, in order, without
    gaps or overlaps.
    """
    expected_start = 1
    for result in results:
        if result.start_day != expected_start or result.end_day < result.start_day:
            raise CheckpointCorruptError(
                f"result [{result.start_day}, {result.end_day}] breaks coverage "
                f"at day {expected_start}"
            )
        expected_start = result.end_day + 1

    covered_days = expected_start - 1
    if covered_days != completed_days:
        raise CheckpointCorruptError(
            f"completed_days={completed_days} but results cover {covered_days} days"
        )


class CheckpointStore:
    """Atomic, day-keyed checkpoint files under one directory."""

    def __init__(self, directory: str | Path, *, compress: bool = True) -> None:
        self._directory = Path(directory)
        self._compress = compress

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for_day(self, day: int) -> Path:
        suffix = ".json.gz" if self._compress else ".json"
        return self._directory / f"checkpoint_day_{day:03d}{suffix}"

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(
        self,
        config: RunConfig,
        state: SimulationState,
        results: Sequence[SegmentResult],
        recovery_log: Sequence[RecoveryAttempt] = (),
        solver_config: SolverConfig | None = None,
    ) -> Path:
        """Persist a checkpoint for ``state.completed_days``; return its path."""
        validate_coverage(state.completed_days, results)

        payload: dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "completed_days": state.completed_days,
            "config": config.model_dump(mode="json"),
            "state": state.to_dict(),
            "results": [result.to_dict() for result in results],
            "recovery_log": [attempt.to_dict() for attempt in recovery_log],
            "solver_config": (
                solver_config.model_dump(mode="json") if solver_config is not None else None
            ),
        }
        data = json.dumps(payload).encode("utf-8")
        if self._compress:
            data = gzip.compress(data)

        target = self.path_for_day(state.completed_days)
        self._atomic_write(target, data)

        LOGGER.info(
            "Checkpoint saved",
            extra={
                "path": str(target),
                "completed_days": state.completed_days,
                "results": len(results),
            },
        )

        return target

    def _atomic_write(self, target: Path, data: bytes) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.",
            suffix=".tmp",
            dir=self._directory,
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def latest(self) -> Path | None:
        """Checkpoint with the highest day number, if any."""
        if not self._directory.is_dir():
            return None

        best: tuple[int, Path] | None = None
        for path in self._directory.iterdir():
            match = CHECKPOINT_PATTERN.match(path.name)
            if match is None:
                continue
            day = int(match.group(1))
            if best is None or day > best[0]:
                best = (day, path)

        return best[1] if best else None

    @staticmethod
    def load(handle: str | Path) -> Checkpoint:
        """Load and validate a checkpoint file."""
        path = Path(handle)
        if not path.exists():
            raise CheckpointCorruptError(f"checkpoint not found: {path}")

        try:
            raw = path.read_bytes()
            if path.suffix == ".gz":
                raw = gzip.decompress(raw)
            payload = json.loads(raw.decode("utf-8"))
        except (OSError, EOFError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CheckpointCorruptError(f"unreadable checkpoint {path}: {exc}") from exc

        if not isinstance(payload, dict):
            raise CheckpointCorruptError(f"checkpoint root is not an object: {path}")

        try:
            config = RunConfig.model_validate(payload["config"])
            state = SimulationState.from_dict(payload["state"])
            results = [SegmentResult.from_dict(item) for item in payload["results"]]
            recovery_log = [
                RecoveryAttempt.from_dict(item)
                for item in payload.get("recovery_log", [])
            ]
            solver_config = (
                SolverConfig.model_validate(payload["solver_config"])
                if payload.get("solver_config") is not None
                else None
            )
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise CheckpointCorruptError(f"malformed checkpoint {path}: {exc}") from exc

        if payload.get("completed_days") != state.completed_days:
            raise CheckpointCorruptError(
                f"checkpoint header says {payload.get('completed_days')} completed days, "
                f"state says {state.completed_days}"
            )

        validate_coverage(state.completed_days, results)

        LOGGER.info(
            "Checkpoint loaded",
            extra={"path": str(path), "completed_days": state.completed_days},
        )

        return Checkpoint(
            path=path,
            config=config,
            state=state,
            results=results,
            recovery_log=recovery_log,
            solver_config=solver_config,
        )
