"""
Semantic test: segment runner.

Invariant:
One run_segment() call makes exactly one simulator call with an explicit
input record sized to the segment. Simulator exceptions come back as a
failed outcome carrying a SimulatorError; missing output signals are not
failures.
"""

from __future__ import annotations

import numpy as np
from conftest import FakePlantSimulator

from plant_longrun.core.domain.errors import SimulatorError
from plant_longrun.core.domain.types import SimulatorOutput
from plant_longrun.simulation.data.profiles import build_segment_spec
from plant_longrun.simulation.engine.segment_runner import SegmentRunner


def test_successful_segment(base_profile) -> None:
    simulator = FakePlantSimulator()
    spec = build_segment_spec(base_profile, 2, 3)

    outcome = SegmentRunner(simulator=simulator).run_segment(spec)

    assert outcome.ok is True
    assert outcome.error is None
    assert simulator.calls == [(2, 3)]
    assert simulator.windows == [2 * 86400.0]

    result = outcome.result
    assert (result.start_day, result.end_day) == (2, 3)
    assert result.is_stable is True
    assert result.missing_signals == ()
    assert result.metrics.pv_energy_kwh > 0
    assert result.metrics.duration_hours == 47.0


def test_simulator_exception_becomes_failed_outcome(base_profile) -> None:
    simulator = FakePlantSimulator(failures={1: [RuntimeError("solver exploded")]})

    outcome = SegmentRunner(simulator=simulator).run_segment(build_segment_spec(base_profile, 1, 1))

    assert outcome.ok is False
    assert outcome.result is None
    assert isinstance(outcome.error, SimulatorError)
    assert outcome.error.signature == "RuntimeError: solver exploded"
    assert outcome.error.start_day == 1


def test_missing_signals_are_partial_results(base_profile) -> None:
    class SparseSimulator(FakePlantSimulator):
        def run(self, window_seconds, inputs):
            full = super().run(window_seconds, inputs)
            return SimulatorOutput(time=full.time, signals={"P_pv": full.signals["P_pv"]})

    outcome = SegmentRunner(simulator=SparseSimulator()).run_segment(
        build_segment_spec(base_profile, 1, 1)
    )

    assert outcome.ok is True
    assert "soc" in outcome.result.missing_signals
    assert np.isnan(outcome.result.metrics.soc_min)
    assert not np.isnan(outcome.result.metrics.pv_energy_kwh)


def test_each_call_gets_its_own_input_record(base_profile) -> None:
    seen = []
    simulator = FakePlantSimulator(on_run=seen.append)
    runner = SegmentRunner(simulator=simulator)
    spec = build_segment_spec(base_profile, 1, 1)

    runner.run_segment(spec)
    runner.run_segment(spec)

    assert len(seen) == 2
    assert seen[0] is not seen[1]
    assert seen[0].signals is not seen[1].signals
    assert (seen[1].start_day, seen[1].end_day) == (1, 1)
    assert set(seen[1].signals) == {"pv_power", "load_power", "price"}
