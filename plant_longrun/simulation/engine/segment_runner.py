"""Execution of a single segment against the plant simulator."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from plant_longrun.core.domain.errors import SimulatorError
from plant_longrun.core.domain.types import SegmentResult, SegmentSpec
from plant_longrun.simulation.engine.metrics import compute_segment_metrics
from plant_longrun.simulation.engine.signals import extract_signals
from plant_longrun.simulation.engine.stability import classify

if TYPE_CHECKING:
    from plant_longrun.core.ports.plant_simulator import PlantSimulator

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SegmentOutcome:
    """Either a SegmentResult or the SimulatorError that prevented it."""

    spec: SegmentSpec
    result: SegmentResult | None
    error: SimulatorError | None
    duration_seconds: float

    @property
    def ok(self) -> bool:
        return self.result is not None


class SegmentRunner:
    """
    Runs exactly one SegmentSpec through the plant simulator.

    One run_segment() call == one simulator.run() call. Simulator failures
    are returned, not raised, so retry policy stays with the caller.
    """

    def __init__(self, *, simulator: PlantSimulator) -> None:
        self._simulator = simulator

    def run_segment(self, spec: SegmentSpec) -> SegmentOutcome:
        started = time.perf_counter()
        sim_input = spec.to_simulator_input()

        LOGGER.info(
            "Running segment",
            extra={
                "start_day": spec.start_day,
                "end_day": spec.end_day,
                "window_seconds": spec.window_seconds,
            },
        )

        try:
            output = self._simulator.run(spec.window_seconds, sim_input)
        except SimulatorError as exc:
            return self._failed(spec, exc, started)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            return self._failed(spec, SimulatorError(exc, start_day=spec.start_day), started)

        time_vector = np.asarray(output.time, dtype=float).ravel()
        extracted = extract_signals(output.signals)

        result = SegmentResult(
            start_day=spec.start_day,
            end_day=spec.end_day,
            time=time_vector,
            signals=extracted.signals,
            metrics=compute_segment_metrics(extracted.signals, time_vector),
            verdict=classify(extracted.signals),
            missing_signals=extracted.missing,
        )

        return SegmentOutcome(
            spec=spec,
            result=result,
            error=None,
            duration_seconds=time.perf_counter() - started,
        )

    @staticmethod
    def _failed(spec: SegmentSpec, error: SimulatorError, started: float) -> SegmentOutcome:
        LOGGER.warning(
            "Segment failed: %s",
            error,
            extra={"start_day": spec.start_day, "end_day": spec.end_day},
        )
        return SegmentOutcome(
            spec=spec,
            result=None,
            error=error,
            duration_seconds=time.perf_counter() - started,
        )
