"""Streaming of per-segment traces to disk."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import numpy as np

from plant_longrun.core.domain.types import SegmentResult

LOGGER = logging.getLogger(__name__)

TIME_KEY = "time"


class SegmentTraceWriter:
    """
    Writes a segment's time vector and signals to
    ``segment_SSS_EEE.npz`` and returns a lightweight copy of the result
    that keeps only metrics, verdict and the file reference.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def path_for(self, start_day: int, end_day: int) -> Path:
        return self._directory / f"segment_{start_day:03d}_{end_day:03d}.npz"

    def write(self, result: SegmentResult) -> SegmentResult:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(result.start_day, result.end_day)

        arrays = {f"signal__{name}": np.asarray(values) for name, values in result.signals.items()}
        np.savez_compressed(path, **{TIME_KEY: np.asarray(result.time)}, **arrays)

        LOGGER.debug(
            "Segment traces written",
            extra={"path": str(path), "signals": len(arrays)},
        )

        return dataclasses.replace(
            result,
            time=np.empty(0),
            signals={},
            traces_file=str(path),
        )


def load_segment_traces(path: str | Path) -> tuple[np.ndarray, dict[str, np.ndarray]]:
    """Read back ``(time, signals)`` written by SegmentTraceWriter."""
    with np.load(Path(path)) as archive:
        time = np.asarray(archive[TIME_KEY])
        signals = {
            key.removeprefix("signal__"): np.asarray(archive[key])
            for key in archive.files
            if key.startswith("signal__")
        }
    return time, signals
