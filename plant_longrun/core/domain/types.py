"""Core runtime value objects.

These models describe one unit of segment work, what the plant simulator
returns for it, and the derived per-segment and run-level results. They are
plain dataclasses: numpy arrays flow through them, and JSON conversion is
explicit (``to_dict`` / ``from_dict``) so checkpoints stay loadable from a
separate process.
"""

# pylint: disable=too-many-instance-attributes
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping

import numpy as np

SECONDS_PER_DAY: int = 24 * 3600


def _nan_or_float(value: Any) -> float:
    if value is None:
        return math.nan
    return float(value)


# ---------------------------------------------------------------------------
# Simulator boundary records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SimulatorInput:
    """Explicit input record handed to the plant simulator for one window."""

    start_day: int
    end_day: int
    time: np.ndarray
    signals: Mapping[str, np.ndarray]


@dataclass(frozen=True, slots=True)
class SimulatorOutput:
    """Raw trace returned by the plant simulator."""

    time: np.ndarray
    signals: Mapping[str, np.ndarray]
    diagnostics: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Segment work
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SegmentSpec:
    """One contiguous block of simulated days.

    ``time`` is zero-based local seconds; ``inputs`` holds the exogenous
    signals sliced for ``[start_day, end_day]``.
    """

    start_day: int
    end_day: int
    inputs: Mapping[str, np.ndarray]
    time: np.ndarray

    @property
    def days(self) -> int:
        return self.end_day - self.start_day + 1

    @property
    def window_seconds(self) -> float:
        return float(self.days * SECONDS_PER_DAY)

    def to_simulator_input(self) -> SimulatorInput:
        return SimulatorInput(
            start_day=self.start_day,
            end_day=self.end_day,
            time=self.time,
            signals=dict(self.inputs),
        )


@dataclass(frozen=True, slots=True)
class StabilityVerdict:
    """Per-segment numerical sanity flags with offending signal names."""

    nan_signals: tuple[str, ...] = ()
    inf_signals: tuple[str, ...] = ()
    large_signals: tuple[str, ...] = ()
    rapid_signals: tuple[str, ...] = ()

    @property
    def has_nan(self) -> bool:
        return bool(self.nan_signals)

    @property
    def has_inf(self) -> bool:
        return bool(self.inf_signals)

    @property
    def has_large_magnitude(self) -> bool:
        return bool(self.large_signals)

    @property
    def has_rapid_change(self) -> bool:
        return bool(self.rapid_signals)

    @property
    def is_stable(self) -> bool:
        return not (
            self.has_nan
            or self.has_inf
            or self.has_large_magnitude
            or self.has_rapid_change
        )

    def describe(self) -> list[str]:
        lines: list[str] = []
        if self.has_nan:
            lines.append(f"NaN values in signals: {', '.join(self.nan_signals)}")
        if self.has_inf:
            lines.append(f"Infinite values in signals: {', '.join(self.inf_signals)}")
        if self.has_large_magnitude:
            lines.append(f"Large values in signals: {', '.join(self.large_signals)}")
        if self.has_rapid_change:
            lines.append(f"Rapid changes in signals: {', '.join(self.rapid_signals)}")
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "nan_signals": list(self.nan_signals),
            "inf_signals": list(self.inf_signals),
            "large_signals": list(self.large_signals),
            "rapid_signals": list(self.rapid_signals),
            "is_stable": self.is_stable,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StabilityVerdict:
        return cls(
            nan_signals=tuple(data.get("nan_signals", ())),
            inf_signals=tuple(data.get("inf_signals", ())),
            large_signals=tuple(data.get("large_signals", ())),
            rapid_signals=tuple(data.get("rapid_signals", ())),
        )


@dataclass(frozen=True, slots=True)
class SegmentMetrics:
    """Derived per-segment metrics. Undefined values are NaN."""

    duration_hours: float = math.nan

    # Energy integrals (kWh)
    pv_energy_kwh: float = math.nan
    load_energy_kwh: float = math.nan
    battery_charge_kwh: float = math.nan
    battery_discharge_kwh: float = math.nan
    grid_import_kwh: float = math.nan
    grid_export_kwh: float = math.nan
    net_grid_kwh: float = math.nan

    # State of charge (%)
    soc_min: float = math.nan
    soc_max: float = math.nan
    soc_avg: float = math.nan
    soc_final: float = math.nan

    # State of health (fraction)
    soh_initial: float = math.nan
    soh_final: float = math.nan
    soh_degradation_pct: float = math.nan

    # Economics
    electricity_cost: float = math.nan
    avg_price: float = math.nan

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SegmentMetrics:
        known = {f.name for f in fields(cls)}
        return cls(**{k: _nan_or_float(v) for k, v in data.items() if k in known})


@dataclass(frozen=True, slots=True)
class SegmentResult:
    """Output of one segment run.

    ``signals`` and ``time`` are emptied once the traces were streamed to
    disk (``traces_file`` then points at them).
    """

    start_day: int
    end_day: int
    time: np.ndarray
    signals: Mapping[str, np.ndarray]
    metrics: SegmentMetrics
    verdict: StabilityVerdict
    missing_signals: tuple[str, ...] = ()
    traces_file: str | None = None

    @property
    def days(self) -> int:
        return self.end_day - self.start_day + 1

    @property
    def is_stable(self) -> bool:
        return self.verdict.is_stable

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_day": self.start_day,
            "end_day": self.end_day,
            "time": np.asarray(self.time, dtype=float).tolist(),
            "signals": {
                name: np.asarray(values, dtype=float).tolist()
                for name, values in self.signals.items()
            },
            "metrics": self.metrics.to_dict(),
            "verdict": self.verdict.to_dict(),
            "missing_signals": list(self.missing_signals),
            "traces_file": self.traces_file,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SegmentResult:
        return cls(
            start_day=int(data["start_day"]),
            end_day=int(data["end_day"]),
            time=np.asarray(data.get("time", []), dtype=float),
            signals={
                name: np.asarray(values, dtype=float)
                for name, values in data.get("signals", {}).items()
            },
            metrics=SegmentMetrics.from_dict(data.get("metrics", {})),
            verdict=StabilityVerdict.from_dict(data.get("verdict", {})),
            missing_signals=tuple(data.get("missing_signals", ())),
            traces_file=data.get("traces_file"),
        )


@dataclass(frozen=True, slots=True)
class RecoveryAttempt:
    """Audit record of one recovery attempt."""

    day: int
    error_signature: str
    strategy: str
    success: bool
    ts: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RecoveryAttempt:
        return cls(
            day=int(data["day"]),
            error_signature=str(data["error_signature"]),
            strategy=str(data["strategy"]),
            success=bool(data["success"]),
            ts=str(data["ts"]),
        )


@dataclass(frozen=True, slots=True)
class AggregateReport:
    """Final roll-up over all completed segments."""

    segment_count: int
    completed_days: int

    total_pv_energy_kwh: float
    total_load_energy_kwh: float
    total_battery_charge_kwh: float
    total_battery_discharge_kwh: float
    total_grid_import_kwh: float
    total_grid_export_kwh: float
    net_grid_energy_kwh: float
    total_electricity_cost: float
    avg_price: float

    soc_min: float
    soc_max: float
    soc_mean: float
    soc_final: float

    soh_initial: float
    soh_final: float
    total_soh_degradation_pct: float

    pv_utilization_pct: float
    self_sufficiency_pct: float
    battery_efficiency_pct: float

    stability_ratio: float
    stability_assessment: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
