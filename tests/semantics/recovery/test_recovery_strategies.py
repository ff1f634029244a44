"""
Semantic test: recovery strategies.

Invariant:
Exactly one strategy is applied per attempt: memory cleanup collects and
pauses, tolerance relaxation loosens tolerances and shrinks the max step
(always starting from the baseline, so repeated relaxations do not compound),
unmatched failures are not retried, and with auto_recovery off the first
failure is fatal.
"""

from __future__ import annotations

import pytest
from conftest import FakePlantSimulator

from plant_longrun.core.config.solver_config import SolverConfig
from plant_longrun.core.domain.errors import FatalSimulationError, SimulatorError
from plant_longrun.core.domain.recovery_rules import (
    STRATEGY_MEMORY_CLEANUP,
    STRATEGY_NONE,
    STRATEGY_TOLERANCE_RELAXATION,
)
from plant_longrun.core.domain.state import SimulationState
from plant_longrun.core.events.sinks.null_event_bus import NullEventBus
from plant_longrun.simulation.engine.recovery import RecoveryController


def _controller(simulator, **kwargs) -> RecoveryController:
    return RecoveryController(simulator=simulator, event_bus=NullEventBus(), **kwargs)


def test_memory_cleanup_collects_and_pauses() -> None:
    pauses: list[float] = []
    cleanups: list[int] = []

    def cleanup() -> int:
        cleanups.append(1)
        return 42

    simulator = FakePlantSimulator()
    controller = _controller(
        simulator,
        pause_seconds=2.0,
        cleanup=cleanup,
        sleep=pauses.append,
    )

    decision = controller.recover(
        SimulatorError(MemoryError("workspace full")),
        SimulationState(horizon_days=5),
        day=1,
    )

    assert decision.retry is True
    assert decision.strategy == STRATEGY_MEMORY_CLEANUP
    assert cleanups == [1]
    assert pauses == [2.0]
    assert simulator.reset_count == 0
    assert simulator.configured == []


def test_tolerance_relaxation_loosens_solver() -> None:
    simulator = FakePlantSimulator()
    baseline = simulator.solver_config
    controller = _controller(simulator)

    decision = controller.recover(
        SimulatorError(RuntimeError("Minimum step size violated")),
        SimulationState(horizon_days=5),
        day=2,
    )

    assert decision.strategy == STRATEGY_TOLERANCE_RELAXATION
    relaxed = simulator.solver_config
    assert relaxed.rel_tol == pytest.approx(baseline.rel_tol * 10)
    assert relaxed.abs_tol == pytest.approx(baseline.abs_tol * 10)
    assert relaxed.max_step == pytest.approx(baseline.max_step / 2)
    assert simulator.reset_count == 0


def test_repeated_relaxation_does_not_compound() -> None:
    simulator = FakePlantSimulator()
    expected = simulator.baseline_config.relaxed()
    state = SimulationState(horizon_days=14)
    controller = _controller(simulator)

    for day in (1, 6, 11):
        decision = controller.recover(
            SimulatorError(RuntimeError("Minimum step size violated")), state, day=day
        )
        assert decision.retry is True
        assert simulator.solver_config == expected

    assert simulator.configured == [expected, expected, expected]
    assert state.recovery_count == 3


def test_relaxations_across_a_run_stay_at_one_level(make_config, make_orchestrator) -> None:
    tolerance_failure = RuntimeError("integration tolerance not met")
    simulator = FakePlantSimulator(
        failures={day: [tolerance_failure] for day in (1, 6, 11)}
    )

    make_orchestrator(simulator).run(make_config())

    relaxed = simulator.solver_config
    assert relaxed == simulator.baseline_config.relaxed()
    assert relaxed.rel_tol == pytest.approx(1e-3)
    assert relaxed.max_step == pytest.approx(1800.0)


def test_relaxed_config_keeps_initial_step_below_max_step() -> None:
    config = SolverConfig(max_step=4.0, initial_step=3.0)

    relaxed = config.relaxed()

    assert relaxed.max_step == 2.0
    assert relaxed.initial_step == 2.0
    assert config.rel_tol == 1e-4


def test_unmatched_failure_is_not_retried() -> None:
    simulator = FakePlantSimulator()
    state = SimulationState(horizon_days=5)
    controller = _controller(simulator)

    decision = controller.recover(SimulatorError(KeyError("P_batt")), state, day=1)

    assert decision.retry is False
    assert decision.strategy == STRATEGY_NONE
    assert state.recovery_count == 0
    assert len(controller.log) == 1


def test_failing_strategy_reports_failure() -> None:
    class BrokenReset(FakePlantSimulator):
        def reset(self) -> None:
            raise RuntimeError("model file missing")

    controller = _controller(BrokenReset())

    decision = controller.recover(
        SimulatorError(RuntimeError("solver crashed")),
        SimulationState(horizon_days=5),
        day=1,
    )

    assert decision.retry is False
    assert controller.log[-1].success is False


def test_auto_recovery_off_fails_on_first_error(make_config, make_orchestrator) -> None:
    simulator = FakePlantSimulator(failures={1: [RuntimeError("solver failed")]})
    orchestrator = make_orchestrator(simulator)

    with pytest.raises(FatalSimulationError) as excinfo:
        orchestrator.run(make_config(auto_recovery=False))

    assert simulator.calls == [(1, 5)]
    assert simulator.reset_count == 0
    assert orchestrator.recovery_log == []
    assert excinfo.value.day == 1
    # Nothing completed yet, the final checkpoint is an empty day-0 snapshot.
    assert excinfo.value.checkpoint.name.startswith("checkpoint_day_000")
