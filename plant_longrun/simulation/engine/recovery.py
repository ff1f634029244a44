"""Automated recovery from simulator failures."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from plant_longrun.core.domain.recovery_rules import (
    STRATEGY_MEMORY_CLEANUP,
    STRATEGY_NONE,
    STRATEGY_SIMULATOR_RESET,
    STRATEGY_TOLERANCE_RELAXATION,
    classify_failure,
)
from plant_longrun.core.domain.types import RecoveryAttempt
from plant_longrun.core.events.events import RecoveryAttemptEvent, utc_now_iso
from plant_longrun.simulation.runtime.resource_monitor import release_memory

if TYPE_CHECKING:
    from plant_longrun.core.domain.errors import SimulatorError
    from plant_longrun.core.domain.state import SimulationState
    from plant_longrun.core.events.event_bus import EventBus
    from plant_longrun.core.ports.plant_simulator import PlantSimulator

LOGGER = logging.getLogger(__name__)

STRATEGY_EXHAUSTED: str = "exhausted"

# At most one recovery attempt per failing day.
MAX_ATTEMPTS_PER_DAY: int = 1


@dataclass(frozen=True, slots=True)
class RecoveryDecision:
    retry: bool
    strategy: str
    attempt: RecoveryAttempt


class RecoveryController:
    """Recovery layer between a failed segment and the orchestrator.

    This layer is allowed to:
    - classify a failure and apply exactly one corrective strategy
    - tell the caller whether to retry the same day

    It must NOT run segments itself. The per-day attempt counter is the
    only guard against retry loops.
    """

    def __init__(
        self,
        *,
        simulator: PlantSimulator,
        event_bus: EventBus,
        pause_seconds: float = 2.0,
        cleanup: Callable[[], int] = release_memory,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._simulator = simulator
        self._event_bus = event_bus
        self._pause_seconds = pause_seconds
        self._cleanup = cleanup
        self._sleep = sleep

        self._attempts_by_day: dict[int, int] = {}
        self.log: list[RecoveryAttempt] = []

    def attempts_for(self, day: int) -> int:
        return self._attempts_by_day.get(day, 0)

    def recover(
        self,
        error: SimulatorError,
        state: SimulationState,
        day: int,
    ) -> RecoveryDecision:
        """Select and apply one strategy for ``error`` on ``day``."""
        signature = error.signature

        if self.attempts_for(day) >= MAX_ATTEMPTS_PER_DAY:
            LOGGER.error(
                "Recovery exhausted for day %d: %s",
                day,
                signature,
            )
            return self._decide(day, signature, STRATEGY_EXHAUSTED, False, state)

        strategy = classify_failure(signature)
        if strategy == STRATEGY_NONE:
            LOGGER.error("No recovery strategy applies: %s", signature)
            return self._decide(day, signature, STRATEGY_NONE, False, state)

        self._attempts_by_day[day] = self.attempts_for(day) + 1
        state.recovery_count += 1

        LOGGER.warning(
            "Attempting recovery (%s) from error: %s",
            strategy,
            signature,
            extra={"day": day, "strategy": strategy},
        )

        try:
            self._apply(strategy)
        except Exception:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Recovery strategy %s failed", strategy)
            return self._decide(day, signature, strategy, False, state)

        return self._decide(day, signature, strategy, True, state)

    def _apply(self, strategy: str) -> None:
        if strategy == STRATEGY_MEMORY_CLEANUP:
            collected = self._cleanup()
            LOGGER.info("Memory cleanup collected %d objects", collected)
            if self._pause_seconds > 0:
                self._sleep(self._pause_seconds)
            return

        if strategy == STRATEGY_SIMULATOR_RESET:
            self._simulator.reset()
            return

        if strategy == STRATEGY_TOLERANCE_RELAXATION:
            # Relaxing from the baseline keeps repeated relaxations at one fixed level.
            relaxed = self._simulator.baseline_config.relaxed()
            self._simulator.configure(relaxed)
            LOGGER.info(
                "Solver relaxed",
                extra={
                    "rel_tol": relaxed.rel_tol,
                    "abs_tol": relaxed.abs_tol,
                    "max_step": relaxed.max_step,
                },
            )
            return

        raise ValueError(f"Unknown recovery strategy: {strategy}")

    def _decide(
        self,
        day: int,
        signature: str,
        strategy: str,
        success: bool,
        state: SimulationState,
    ) -> RecoveryDecision:
        attempt = RecoveryAttempt(
            day=day,
            error_signature=signature,
            strategy=strategy,
            success=success,
            ts=utc_now_iso(),
        )
        self.log.append(attempt)

        self._event_bus.emit(
            RecoveryAttemptEvent(
                day=day,
                error=signature,
                strategy=strategy,
                success=success,
                recovery_count=state.recovery_count,
                ts=attempt.ts,
            )
        )

        return RecoveryDecision(retry=success, strategy=strategy, attempt=attempt)
