"""
Semantic test: checkpoint consistency.

Invariant:
Every saved checkpoint's results cover exactly completed_days days; loading
a checkpoint whose count does not match fails with CheckpointCorruptError.
Saves are atomic and keyed by day, so re-saving a day overwrites in place.
"""

from __future__ import annotations

import gzip
import json

import numpy as np
import pytest

from plant_longrun.core.config.run_config import RunConfig
from plant_longrun.core.config.solver_config import SolverConfig
from plant_longrun.core.domain.errors import CheckpointCorruptError
from plant_longrun.core.domain.state import SimulationState
from plant_longrun.core.domain.types import (
    RecoveryAttempt,
    SegmentMetrics,
    SegmentResult,
    StabilityVerdict,
)
from plant_longrun.simulation.io.checkpoint_store import CheckpointStore


def _result(start_day: int, end_day: int, pv_energy: float = 10.0) -> SegmentResult:
    return SegmentResult(
        start_day=start_day,
        end_day=end_day,
        time=np.arange(4, dtype=float) * 3600.0,
        signals={"pv_power": np.array([0.0, 1.0, 2.0, np.nan])},
        metrics=SegmentMetrics(pv_energy_kwh=pv_energy),
        verdict=StabilityVerdict(nan_signals=("pv_power",)),
    )


def _state(completed_days: int, horizon_days: int = 10) -> SimulationState:
    state = SimulationState(horizon_days=horizon_days)
    if completed_days:
        state.commit(completed_days)
    return state


@pytest.mark.parametrize("compress", [True, False])
def test_saved_checkpoint_loads_back(tmp_path, compress: bool) -> None:
    store = CheckpointStore(tmp_path, compress=compress)
    config = RunConfig(horizon_days=10, segment_days=1, data_compression=compress)
    results = [_result(1, 1, 10.0), _result(2, 2, 20.0), _result(3, 3, 30.0)]
    attempt = RecoveryAttempt(
        day=2, error_signature="RuntimeError: solver", strategy="simulator_reset",
        success=True, ts="2024-01-01T00:00:00+00:00",
    )

    path = store.save(config, _state(3), results, [attempt])

    assert path.name == ("checkpoint_day_003.json.gz" if compress else "checkpoint_day_003.json")

    checkpoint = CheckpointStore.load(path)
    assert checkpoint.config == config
    assert checkpoint.state.completed_days == 3
    assert checkpoint.state.current_day == 4
    assert len(checkpoint.results) == checkpoint.state.completed_days
    assert [r.metrics.pv_energy_kwh for r in checkpoint.results] == [10.0, 20.0, 30.0]
    assert checkpoint.results[0].verdict.nan_signals == ("pv_power",)
    assert np.isnan(checkpoint.results[0].signals["pv_power"][3])
    assert checkpoint.recovery_log == [attempt]


def test_mismatched_count_fails_on_load(tmp_path) -> None:
    store = CheckpointStore(tmp_path, compress=False)
    path = store.save(RunConfig(horizon_days=10, segment_days=1), _state(2), [_result(1, 1), _result(2, 2)])

    payload = json.loads(path.read_text(encoding="utf-8"))
    payload["results"] = payload["results"][:1]
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(CheckpointCorruptError):
        CheckpointStore.load(path)


def test_tampered_header_fails_on_load(tmp_path) -> None:
    store = CheckpointStore(tmp_path, compress=True)
    path = store.save(RunConfig(horizon_days=10, segment_days=1), _state(1), [_result(1, 1)])

    payload = json.loads(gzip.decompress(path.read_bytes()))
    payload["completed_days"] = 7
    path.write_bytes(gzip.compress(json.dumps(payload).encode("utf-8")))

    with pytest.raises(CheckpointCorruptError):
        CheckpointStore.load(path)


def test_inconsistent_state_is_never_saved(tmp_path) -> None:
    store = CheckpointStore(tmp_path)

    with pytest.raises(CheckpointCorruptError):
        store.save(RunConfig(horizon_days=10, segment_days=1), _state(3), [_result(1, 1)])

    assert list(tmp_path.iterdir()) == []


def test_multi_day_segments_cover_completed_days(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    results = [_result(1, 5), _result(6, 10)]

    checkpoint = CheckpointStore.load(store.save(RunConfig(horizon_days=14), _state(10, 14), results))

    assert sum(r.days for r in checkpoint.results) == checkpoint.state.completed_days

    with pytest.raises(CheckpointCorruptError):
        store.save(RunConfig(horizon_days=14), _state(10, 14), [_result(1, 5), _result(7, 10)])


def test_same_day_overwrites_and_leaves_no_temp_files(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    config = RunConfig(horizon_days=10, segment_days=1)

    store.save(config, _state(1), [_result(1, 1, 1.0)])
    path = store.save(config, _state(1), [_result(1, 1, 2.0)])

    assert sorted(p.name for p in tmp_path.iterdir()) == ["checkpoint_day_001.json.gz"]
    assert CheckpointStore.load(path).results[0].metrics.pv_energy_kwh == 2.0


def test_latest_picks_highest_day(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    config = RunConfig(horizon_days=10, segment_days=1)

    assert store.latest() is None

    store.save(config, _state(1), [_result(1, 1)])
    store.save(config, _state(2), [_result(1, 1), _result(2, 2)])

    assert store.latest() == store.path_for_day(2)


def test_garbage_file_is_corrupt(tmp_path) -> None:
    path = tmp_path / "checkpoint_day_004.json.gz"
    path.write_bytes(b"not gzip at all")

    with pytest.raises(CheckpointCorruptError):
        CheckpointStore.load(path)

    with pytest.raises(CheckpointCorruptError):
        CheckpointStore.load(tmp_path / "missing.json")


def test_solver_settings_are_stored_with_the_checkpoint(tmp_path) -> None:
    store = CheckpointStore(tmp_path)
    config = RunConfig(horizon_days=10, segment_days=1)
    relaxed = SolverConfig().relaxed()

    with_solver = store.save(config, _state(1), [_result(1, 1)], solver_config=relaxed)
    assert CheckpointStore.load(with_solver).solver_config == relaxed

    without = store.save(config, _state(2), [_result(1, 1), _result(2, 2)])
    assert CheckpointStore.load(without).solver_config is None
