"""
Long-horizon run orchestration.

The orchestrator drives a run one segment at a time on the calling thread:
plan, slice inputs, run, recover, commit, checkpoint, report. The only
concurrent activity is the resource monitor thread.
"""

from __future__ import annotations

import logging
import threading
import time
import warnings
from pathlib import Path
from typing import TYPE_CHECKING, Callable, NoReturn, Protocol

from plant_longrun.core.domain.errors import (
    ConfigError,
    CriticalStabilityError,
    FatalSimulationError,
    RunInterruptedError,
    StabilityWarning,
)
from plant_longrun.core.domain.state import SimulationState
from plant_longrun.core.events.events import (
    CheckpointSavedEvent,
    CriticalStabilityEvent,
    FatalErrorEvent,
    ProgressEvent,
    SegmentCompletedEvent,
    StabilityIssueEvent,
)
from plant_longrun.simulation.data.profiles import build_segment_spec, extend_profile
from plant_longrun.simulation.engine.recovery import RecoveryController
from plant_longrun.simulation.engine.segment_runner import SegmentOutcome, SegmentRunner
from plant_longrun.simulation.io.checkpoint_store import Checkpoint, CheckpointStore
from plant_longrun.simulation.io.result_store import SegmentTraceWriter
from plant_longrun.simulation.orchestrator.planner import plan_run
from plant_longrun.simulation.orchestrator.summary import aggregate
from plant_longrun.simulation.runtime.context import RunContext, build_event_bus
from plant_longrun.simulation.runtime.finalize import RunFinalizer
from plant_longrun.simulation.runtime.resource_monitor import (
    ResourceMonitor,
    process_rss_mb,
)

if TYPE_CHECKING:
    from plant_longrun.core.config.run_config import RunConfig
    from plant_longrun.core.domain.types import (
        AggregateReport,
        RecoveryAttempt,
        SegmentResult,
        SegmentSpec,
    )
    from plant_longrun.core.events.event_bus import EventBus
    from plant_longrun.core.ports.plant_simulator import PlantSimulator
    from plant_longrun.simulation.data.profiles import ExogenousProfile
    from plant_longrun.simulation.orchestrator.planner_models import SegmentPlan

LOGGER = logging.getLogger(__name__)


class Monitor(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


MonitorFactory = Callable[["RunConfig", "EventBus", Callable[[], int]], Monitor]


def default_monitor_factory(
    config: RunConfig,
    event_bus: EventBus,
    day_probe: Callable[[], int],
) -> Monitor:
    return ResourceMonitor(
        threshold_gb=config.memory_threshold,
        period_seconds=config.monitor_period_seconds,
        event_bus=event_bus,
        day_probe=day_probe,
    )


class SimulationOrchestrator:
    """Drives a run from day 1 (or a resumed day) to the horizon.

    This layer is allowed to:
    - plan segments and slice exogenous inputs for them
    - decide retry vs. fatal based on the recovery controller
    - persist checkpoints and emit progress / stability events

    It must NOT run segments concurrently: the simulator owns mutable state
    and SimulationState advances strictly by day.
    """

    def __init__(
        self,
        *,
        simulator: PlantSimulator,
        profile: ExogenousProfile,
        output_dir: str | Path,
        event_bus: EventBus | None = None,
        monitor_factory: MonitorFactory = default_monitor_factory,
        finalizer: RunFinalizer | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rss_probe: Callable[[], float] = process_rss_mb,
    ) -> None:
        self._simulator = simulator
        self._profile = profile
        self._ctx = RunContext(output_dir=Path(output_dir))
        self._external_bus = event_bus
        self._monitor_factory = monitor_factory
        self._finalizer = finalizer or RunFinalizer()
        self._sleep = sleep
        self._clock = clock
        self._rss_probe = rss_probe

        self._stop_requested = threading.Event()

        self._state: SimulationState | None = None
        self._results: list[SegmentResult] = []
        self._recovery_log: list[RecoveryAttempt] = []

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def context(self) -> RunContext:
        return self._ctx

    @property
    def state(self) -> SimulationState | None:
        return self._state

    @property
    def results(self) -> list[SegmentResult]:
        return list(self._results)

    @property
    def recovery_log(self) -> list[RecoveryAttempt]:
        return list(self._recovery_log)

    def request_stop(self) -> None:
        """Stop after the running segment; a checkpoint is saved first."""
        self._stop_requested.set()

    def run(self, config: RunConfig) -> AggregateReport:
        """Run ``config`` from day 1, or from ``config.resume_from`` when set."""
        plan_run(config)

        if config.resume_from is not None:
            checkpoint = CheckpointStore.load(config.resume_from)
            if checkpoint.state.horizon_days != config.horizon_days:
                raise ConfigError(
                    f"checkpoint horizon {checkpoint.state.horizon_days} days "
                    f"does not match configured {config.horizon_days} days"
                )
            return self._execute(config, checkpoint)

        return self._execute(config, None)

    def resume(self, checkpoint: str | Path | Checkpoint) -> AggregateReport:
        """Continue the run stored in ``checkpoint`` from ``completed_days + 1``."""
        if not isinstance(checkpoint, Checkpoint):
            checkpoint = CheckpointStore.load(checkpoint)

        LOGGER.info(
            "Resuming from checkpoint",
            extra={
                "path": str(checkpoint.path),
                "completed_days": checkpoint.state.completed_days,
            },
        )

        return self._execute(checkpoint.config, checkpoint)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _execute(
        self,
        config: RunConfig,
        checkpoint: Checkpoint | None,
    ) -> AggregateReport:
        if checkpoint is not None:
            state = checkpoint.state
            results = list(checkpoint.results)
            recovery_log = list(checkpoint.recovery_log)
            if checkpoint.solver_config is not None:
                # Continue with the settings the interrupted run had in effect.
                self._simulator.configure(checkpoint.solver_config)
        else:
            state = SimulationState(horizon_days=config.horizon_days)
            results = []
            recovery_log = []

        plan = plan_run(config, start_day=state.current_day)
        profile = extend_profile(
            self._profile,
            config.horizon_days,
            seed=config.seed,
            jitter=config.jitter,
        )

        self._state = state
        self._results = results

        self._ctx.create_directories()
        event_bus = self._external_bus or build_event_bus(self._ctx)

        store = CheckpointStore(self._ctx.checkpoints_dir, compress=config.data_compression)
        trace_writer = (
            SegmentTraceWriter(self._ctx.daily_results_dir)
            if config.data_compression
            else None
        )
        runner = SegmentRunner(simulator=self._simulator)
        recovery = RecoveryController(
            simulator=self._simulator,
            event_bus=event_bus,
            pause_seconds=config.recovery_pause_seconds,
            sleep=self._sleep,
        )
        recovery.log.extend(recovery_log)
        self._recovery_log = recovery.log

        LOGGER.info(
            "Starting run",
            extra={
                "horizon_days": config.horizon_days,
                "segment_days": config.segment_days,
                "start_day": state.current_day,
                "segments": len(plan.segments),
            },
        )

        last_checkpoint_day = state.completed_days
        session_started = self._clock()
        session_start_days = state.completed_days

        monitor: Monitor | None = None
        try:
            monitor = self._monitor_factory(config, event_bus, lambda: state.current_day)
            monitor.start()

            for segment in plan.segments:
                spec = build_segment_spec(profile, segment.start_day, segment.end_day)
                outcome = self._run_with_recovery(
                    config, state, spec, runner, recovery, store, event_bus
                )

                result = outcome.result
                if trace_writer is not None:
                    result = trace_writer.write(result)

                previous_days = state.completed_days
                results.append(result)
                state.commit(segment.end_day)
                state.stability.record_range(
                    segment.start_day, segment.end_day, result.is_stable
                )
                state.memory_usage_mb.append((segment.end_day, float(self._rss_probe())))

                event_bus.emit(
                    SegmentCompletedEvent(
                        day=segment.end_day,
                        start_day=segment.start_day,
                        end_day=segment.end_day,
                        duration_seconds=outcome.duration_seconds,
                        is_stable=result.is_stable,
                    )
                )

                if config.stability_monitoring:
                    self._monitor_stability(config, state, segment, result, event_bus)

                if (
                    state.completed_days - last_checkpoint_day >= config.checkpoint_interval
                    or state.is_complete
                ):
                    self._save_checkpoint(config, state, store, event_bus)
                    last_checkpoint_day = state.completed_days

                self._report_progress(
                    config,
                    state,
                    previous_days,
                    elapsed=self._clock() - session_started,
                    days_done=state.completed_days - session_start_days,
                    event_bus=event_bus,
                )

                # Stops are honoured between segments only.
                if self._stop_requested.is_set() and not state.is_complete:
                    self._interrupt(config, state, store, event_bus)

        finally:
            self._stop_requested.clear()
            if monitor is not None:
                monitor.stop()
            if self._external_bus is None:
                event_bus.close()

        report = aggregate(results)

        self._finalizer.finalize(
            ctx=self._ctx,
            config=config,
            state=state,
            report=report,
            results=results,
            recovery_log=recovery.log,
        )

        LOGGER.info(
            "Run completed",
            extra={
                "completed_days": state.completed_days,
                "stability_ratio": report.stability_ratio,
                "assessment": report.stability_assessment,
            },
        )

        return report

    def _run_with_recovery(
        self,
        config: RunConfig,
        state: SimulationState,
        spec: SegmentSpec,
        runner: SegmentRunner,
        recovery: RecoveryController,
        store: CheckpointStore,
        event_bus: EventBus,
    ) -> SegmentOutcome:
        """Run one segment; retry once per day if recovery allows it."""
        while True:
            outcome = runner.run_segment(spec)
            if outcome.ok:
                return outcome

            state.error_count += 1
            error = outcome.error

            if config.auto_recovery:
                decision = recovery.recover(error, state, spec.start_day)
                if decision.retry:
                    continue

            self._fail(config, state, store, event_bus, day=spec.start_day, error=error)

    # ------------------------------------------------------------------
    # Checkpoints and termination
    # ------------------------------------------------------------------

    def _save_checkpoint(
        self,
        config: RunConfig,
        state: SimulationState,
        store: CheckpointStore,
        event_bus: EventBus,
    ) -> Path:
        path = store.save(
            config,
            state,
            self._results,
            self._recovery_log,
            solver_config=self._simulator.solver_config,
        )
        event_bus.emit(
            CheckpointSavedEvent(
                day=state.completed_days,
                path=str(path),
                completed_results=len(self._results),
            )
        )
        return path

    def _fail(
        self,
        config: RunConfig,
        state: SimulationState,
        store: CheckpointStore,
        event_bus: EventBus,
        *,
        day: int,
        error: Exception,
    ) -> NoReturn:
        checkpoint: Path | None = None
        try:
            checkpoint = self._save_checkpoint(config, state, store, event_bus)
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Final checkpoint before fatal error failed")

        event_bus.emit(
            FatalErrorEvent(
                day=day,
                error=str(error),
                error_count=state.error_count,
                checkpoint=str(checkpoint) if checkpoint is not None else None,
            )
        )

        LOGGER.error(
            "Simulation failed on day %d: %s",
            day,
            error,
            extra={"checkpoint": str(checkpoint) if checkpoint else None},
        )

        raise FatalSimulationError(
            f"simulation failed on day {day}: {error}",
            day=day,
            checkpoint=checkpoint,
        ) from error

    def _interrupt(
        self,
        config: RunConfig,
        state: SimulationState,
        store: CheckpointStore,
        event_bus: EventBus,
    ) -> NoReturn:
        checkpoint = self._save_checkpoint(config, state, store, event_bus)

        LOGGER.warning(
            "Run stopped on request after day %d",
            state.completed_days,
            extra={"checkpoint": str(checkpoint)},
        )

        raise RunInterruptedError(state.completed_days, checkpoint)

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    @staticmethod
    def _monitor_stability(
        config: RunConfig,
        state: SimulationState,
        segment: SegmentPlan,
        result: SegmentResult,
        event_bus: EventBus,
    ) -> None:
        if not result.is_stable:
            issues = result.verdict.describe()
            event_bus.emit(
                StabilityIssueEvent(
                    day=segment.end_day,
                    start_day=segment.start_day,
                    end_day=segment.end_day,
                    issues=issues,
                )
            )
            warnings.warn(
                f"days {segment.start_day}-{segment.end_day}: {'; '.join(issues)}",
                StabilityWarning,
                stacklevel=2,
            )

        window = state.stability.window(segment.end_day, config.critical_window_days)
        if len(window) < config.critical_window_days:
            return

        unstable_ratio = sum(1 for stable in window if not stable) / len(window)
        if unstable_ratio <= config.critical_unstable_ratio:
            return

        critical = CriticalStabilityError(segment.end_day, unstable_ratio, window)
        LOGGER.error("%s", critical)
        event_bus.emit(
            CriticalStabilityEvent(
                day=segment.end_day,
                unstable_ratio=unstable_ratio,
                recent_stability=window,
                message=str(critical),
            )
        )

    @staticmethod
    def _report_progress(
        config: RunConfig,
        state: SimulationState,
        previous_days: int,
        *,
        elapsed: float,
        days_done: int,
        event_bus: EventBus,
    ) -> None:
        interval = config.progress_interval_days
        crossed = state.completed_days // interval > previous_days // interval
        if not (crossed or state.is_complete):
            return

        remaining = state.horizon_days - state.completed_days
        eta = elapsed / days_done * remaining if days_done > 0 else None
        progress_pct = state.completed_days / state.horizon_days * 100.0

        LOGGER.info(
            "Progress: %d/%d days (%.1f%%)",
            state.completed_days,
            state.horizon_days,
            progress_pct,
            extra={"elapsed_seconds": elapsed, "eta_seconds": eta},
        )

        event_bus.emit(
            ProgressEvent(
                day=state.completed_days,
                horizon_days=state.horizon_days,
                progress_pct=progress_pct,
                elapsed_seconds=elapsed,
                eta_seconds=eta,
            )
        )
