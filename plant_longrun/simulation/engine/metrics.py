"""Per-segment metric computation."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

import numpy as np

from plant_longrun.core.domain.types import SegmentMetrics
from plant_longrun.simulation.engine.signals import (
    BATTERY_POWER,
    GRID_POWER,
    LOAD_POWER,
    PRICE,
    PV_POWER,
    SOC,
    SOH,
)

LOGGER = logging.getLogger(__name__)

W_PER_KW: float = 1000.0
SECONDS_PER_HOUR: float = 3600.0


def _aligned(
    signals: Mapping[str, np.ndarray],
    name: str,
    n_samples: int,
) -> np.ndarray | None:
    data = signals.get(name)
    if data is None or data.size == 0:
        return None
    if data.size != n_samples:
        LOGGER.warning(
            "Signal length does not match time vector; metric left undefined",
            extra={"signal": name, "samples": int(data.size), "expected": n_samples},
        )
        return None
    return data


def _integral(
    time_hours: np.ndarray,
    power_kw: np.ndarray,
    transform: Callable[[np.ndarray], np.ndarray] | None = None,
) -> float:
    values = transform(power_kw) if transform is not None else power_kw
    return float(np.trapezoid(values, time_hours))


def compute_segment_metrics(
    signals: Mapping[str, np.ndarray],
    time_seconds: np.ndarray,
) -> SegmentMetrics:
    """
    Compute energy, SOC/SOH and cost metrics for one segment.

    Power traces are in W and integrated over time in hours (trapezoidal
    rule) to kWh. Battery power is positive when discharging; grid power is
    positive when importing. Any metric whose source signal is missing stays
    NaN.
    """

    time_seconds = np.asarray(time_seconds, dtype=float).ravel()
    if time_seconds.size < 2:
        return SegmentMetrics()

    n = int(time_seconds.size)
    time_hours = time_seconds / SECONDS_PER_HOUR
    values: dict[str, float] = {
        "duration_hours": float(time_hours[-1] - time_hours[0]),
    }

    pv = _aligned(signals, PV_POWER, n)
    if pv is not None:
        values["pv_energy_kwh"] = _integral(time_hours, pv / W_PER_KW)

    load = _aligned(signals, LOAD_POWER, n)
    if load is not None:
        values["load_energy_kwh"] = _integral(time_hours, load / W_PER_KW)

    battery = _aligned(signals, BATTERY_POWER, n)
    if battery is not None:
        battery_kw = battery / W_PER_KW
        values["battery_charge_kwh"] = _integral(
            time_hours, battery_kw, lambda p: np.maximum(-p, 0.0)
        )
        values["battery_discharge_kwh"] = _integral(
            time_hours, battery_kw, lambda p: np.maximum(p, 0.0)
        )

    grid = _aligned(signals, GRID_POWER, n)
    if grid is not None:
        grid_kw = grid / W_PER_KW
        values["grid_import_kwh"] = _integral(
            time_hours, grid_kw, lambda p: np.maximum(p, 0.0)
        )
        values["grid_export_kwh"] = _integral(
            time_hours, grid_kw, lambda p: np.abs(np.minimum(p, 0.0))
        )
        values["net_grid_kwh"] = _integral(time_hours, grid_kw)

    soc = signals.get(SOC)
    if soc is not None and soc.size:
        values["soc_min"] = float(np.min(soc))
        values["soc_max"] = float(np.max(soc))
        values["soc_avg"] = float(np.mean(soc))
        values["soc_final"] = float(soc[-1])

    soh = signals.get(SOH)
    if soh is not None and soh.size:
        values["soh_initial"] = float(soh[0])
        values["soh_final"] = float(soh[-1])
        values["soh_degradation_pct"] = (float(soh[0]) - float(soh[-1])) * 100.0

    price = signals.get(PRICE)
    if price is not None and price.size:
        values["avg_price"] = float(np.mean(price))
        if grid is not None and price.size == n:
            values["electricity_cost"] = _integral(time_hours, grid / W_PER_KW * price)

    return SegmentMetrics(**values)
