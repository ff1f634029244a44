"""Public API for the plant_longrun package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from plant_longrun.core.config.run_config import RunConfig, load_run_config
from plant_longrun.core.config.solver_config import SolverConfig

# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------
from plant_longrun.core.domain.errors import (
    CheckpointCorruptError,
    ConfigError,
    CriticalStabilityError,
    ExtractionError,
    FatalSimulationError,
    RunInterruptedError,
    SimulationError,
    SimulatorError,
    StabilityWarning,
)

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from plant_longrun.core.domain.state import SimulationState, StabilityHistory
from plant_longrun.core.domain.types import (
    AggregateReport,
    RecoveryAttempt,
    SegmentMetrics,
    SegmentResult,
    SegmentSpec,
    SimulatorInput,
    SimulatorOutput,
    StabilityVerdict,
)
from plant_longrun.core.ports.plant_simulator import PlantSimulator

# ----------------------------------------------------------------------
# Simulation API
# ----------------------------------------------------------------------
from plant_longrun.simulation.adapters.step_function import StepFunctionSimulator
from plant_longrun.simulation.data.profiles import (
    ExogenousProfile,
    extend_profile,
    load_profile,
)
from plant_longrun.simulation.engine.stability import classify
from plant_longrun.simulation.io.checkpoint_store import Checkpoint, CheckpointStore
from plant_longrun.simulation.io.result_store import load_segment_traces
from plant_longrun.simulation.orchestrator.scheduler import SimulationOrchestrator
from plant_longrun.simulation.orchestrator.summary import (
    aggregate,
    assess_stability,
    format_report,
)

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Orchestration
    "SimulationOrchestrator",
    "StepFunctionSimulator",
    "PlantSimulator",

    # Config
    "RunConfig",
    "SolverConfig",
    "load_run_config",

    # Inputs
    "ExogenousProfile",
    "load_profile",
    "extend_profile",

    # Results
    "AggregateReport",
    "SegmentResult",
    "SegmentMetrics",
    "SegmentSpec",
    "SimulatorInput",
    "SimulatorOutput",
    "StabilityVerdict",
    "RecoveryAttempt",
    "SimulationState",
    "StabilityHistory",
    "classify",
    "aggregate",
    "assess_stability",
    "format_report",

    # Persistence
    "Checkpoint",
    "CheckpointStore",
    "load_segment_traces",

    # Errors
    "SimulationError",
    "ConfigError",
    "SimulatorError",
    "ExtractionError",
    "CheckpointCorruptError",
    "FatalSimulationError",
    "CriticalStabilityError",
    "RunInterruptedError",
    "StabilityWarning",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("plant-longrun")
except PackageNotFoundError:
    __version__ = "0.0.0"
