from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Sequence

from plant_longrun.core.domain.types import AggregateReport

if TYPE_CHECKING:
    from plant_longrun.core.config.run_config import RunConfig
    from plant_longrun.core.domain.types import SegmentResult


# ---------------------------------------------------------------------------
# Stability assessment
# ---------------------------------------------------------------------------

# (lower bound, tier), checked in order.
STABILITY_TIERS: tuple[tuple[float, str], ...] = (
    (0.95, "Excellent"),
    (0.90, "Good"),
    (0.80, "Fair"),
    (0.70, "Poor"),
)

CRITICAL_TIER = "Critical"


def assess_stability(stability_ratio: float) -> str:
    for lower_bound, tier in STABILITY_TIERS:
        if stability_ratio >= lower_bound:
            return tier
    return CRITICAL_TIER


# ---------------------------------------------------------------------------
# Reductions over possibly-undefined (NaN) values
# ---------------------------------------------------------------------------

def _defined(values: Iterable[float]) -> list[float]:
    return [v for v in values if not math.isnan(v)]


def _total(values: Iterable[float]) -> float:
    defined = _defined(values)
    return math.fsum(defined) if defined else math.nan


def _first(values: Iterable[float]) -> float:
    defined = _defined(values)
    return defined[0] if defined else math.nan


def _last(values: Iterable[float]) -> float:
    defined = _defined(values)
    return defined[-1] if defined else math.nan


def _weighted_mean(pairs: Iterable[tuple[float, int]]) -> float:
    defined = [(v, w) for v, w in pairs if not math.isnan(v)]
    weight = sum(w for _, w in defined)
    if weight == 0:
        return math.nan
    return math.fsum(v * w for v, w in defined) / weight


def _pct(numerator: float, denominator: float) -> float:
    if math.isnan(numerator) or math.isnan(denominator) or denominator <= 0:
        return math.nan
    return numerator / denominator * 100.0


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate(results: Sequence[SegmentResult]) -> AggregateReport:
    """
    Roll per-segment metrics up into a run-level report.

    Energies are summed, SOC is reduced to min/max/day-weighted mean and
    SOH takes first/last. An empty result list yields a report with
    undefined metrics and a zero stability ratio.
    """

    metrics = [r.metrics for r in results]

    total_pv = _total(m.pv_energy_kwh for m in metrics)
    total_load = _total(m.load_energy_kwh for m in metrics)
    total_charge = _total(m.battery_charge_kwh for m in metrics)
    total_discharge = _total(m.battery_discharge_kwh for m in metrics)

    net_grid = _total(m.net_grid_kwh for m in metrics)
    if math.isnan(net_grid) and not (math.isnan(total_load) or math.isnan(total_pv)):
        # No grid trace: approximate the exchange by the energy balance.
        net_grid = total_load - total_pv

    soh_initial = _first(m.soh_initial for m in metrics)
    soh_final = _last(m.soh_final for m in metrics)

    pv_utilization = math.nan
    if not math.isnan(net_grid):
        pv_utilization = _pct(total_pv - max(0.0, -net_grid), total_pv)

    self_sufficiency = math.nan
    if not math.isnan(net_grid):
        self_sufficiency = _pct(total_load - max(0.0, net_grid), total_load)

    stable_count = sum(1 for r in results if r.is_stable)
    stability_ratio = stable_count / len(results) if results else 0.0

    return AggregateReport(
        segment_count=len(results),
        completed_days=sum(r.days for r in results),
        total_pv_energy_kwh=total_pv,
        total_load_energy_kwh=total_load,
        total_battery_charge_kwh=total_charge,
        total_battery_discharge_kwh=total_discharge,
        total_grid_import_kwh=_total(m.grid_import_kwh for m in metrics),
        total_grid_export_kwh=_total(m.grid_export_kwh for m in metrics),
        net_grid_energy_kwh=net_grid,
        total_electricity_cost=_total(m.electricity_cost for m in metrics),
        avg_price=_weighted_mean((r.metrics.avg_price, r.days) for r in results),
        soc_min=min(_defined(m.soc_min for m in metrics), default=math.nan),
        soc_max=max(_defined(m.soc_max for m in metrics), default=math.nan),
        soc_mean=_weighted_mean((r.metrics.soc_avg, r.days) for r in results),
        soc_final=_last(m.soc_final for m in metrics),
        soh_initial=soh_initial,
        soh_final=soh_final,
        total_soh_degradation_pct=(soh_initial - soh_final) * 100.0,
        pv_utilization_pct=pv_utilization,
        self_sufficiency_pct=self_sufficiency,
        battery_efficiency_pct=_pct(total_discharge, total_charge),
        stability_ratio=stability_ratio,
        stability_assessment=assess_stability(stability_ratio),
    )


# ---------------------------------------------------------------------------
# Text report
# ---------------------------------------------------------------------------

def _line(label: str, value: float, fmt: str) -> str:
    if math.isnan(value):
        return f"  {label}: n/a"
    return f"  {label}: {value:{fmt}}"


def format_report(report: AggregateReport, config: RunConfig | None = None) -> str:
    lines: list[str] = [
        "LONG-HORIZON PLANT SIMULATION SUMMARY",
        "=====================================",
        "",
    ]

    if config is not None:
        lines += [
            "Configuration:",
            f"  Horizon: {config.horizon_days} days",
            f"  Segment length: {config.segment_days} days",
            f"  Checkpoint interval: {config.checkpoint_interval} days",
            "",
        ]

    lines += [
        "Progress:",
        f"  Completed days: {report.completed_days}",
        f"  Segments: {report.segment_count}",
        "",
        "Energy Performance:",
        _line("Total PV generation (kWh)", report.total_pv_energy_kwh, ".2f"),
        _line("Total load consumption (kWh)", report.total_load_energy_kwh, ".2f"),
        _line("Grid import (kWh)", report.total_grid_import_kwh, ".2f"),
        _line("Grid export (kWh)", report.total_grid_export_kwh, ".2f"),
        _line("Net grid exchange (kWh)", report.net_grid_energy_kwh, ".2f"),
        _line("Electricity cost", report.total_electricity_cost, ".2f"),
        _line("PV utilization (%)", report.pv_utilization_pct, ".1f"),
        _line("Self-sufficiency (%)", report.self_sufficiency_pct, ".1f"),
        "",
        "Battery Performance:",
        _line("Charged (kWh)", report.total_battery_charge_kwh, ".2f"),
        _line("Discharged (kWh)", report.total_battery_discharge_kwh, ".2f"),
        _line("Round-trip efficiency (%)", report.battery_efficiency_pct, ".1f"),
        _line("SOC min (%)", report.soc_min, ".1f"),
        _line("SOC max (%)", report.soc_max, ".1f"),
        _line("Final SOC (%)", report.soc_final, ".1f"),
        _line("Total SOH degradation (%)", report.total_soh_degradation_pct, ".4f"),
        "",
        "Stability Assessment:",
        f"  Stability ratio: {report.stability_ratio * 100:.1f}%",
        f"  Assessment: {report.stability_assessment}",
    ]

    return "\n".join(lines) + "\n"
