"""Plant simulator protocol.

This module defines the boundary between the orchestration core and the
external physical plant model. Exactly one concrete adapter implements it in
production; tests substitute an in-memory double.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from plant_longrun.core.config.solver_config import SolverConfig
    from plant_longrun.core.domain.types import SimulatorInput, SimulatorOutput


class PlantSimulator(Protocol):
    """Black-box plant stepper.

    The core never inspects the simulator's internal algorithm, only the
    shape and numerical content of what ``run`` returns.
    """

    @property
    def solver_config(self) -> SolverConfig:
        """Solver settings currently in effect."""

    @property
    def baseline_config(self) -> SolverConfig:
        """Settings restored by ``reset`` and relaxed by recovery."""

    def configure(self, options: SolverConfig) -> None:
        """Apply solver settings for subsequent runs."""

    def run(self, window_seconds: float, inputs: SimulatorInput) -> SimulatorOutput:
        """Simulate ``window_seconds`` of plant time driven by ``inputs``."""

    def reset(self) -> None:
        """Tear down and reload the model session, reapplying baseline settings."""
