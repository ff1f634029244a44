"""
Semantic test: aggregation.

Invariant:
aggregate() sums energies, takes first/last SOH, reduces SOC to
min/max/mean, computes stability_ratio = stable / segments and maps it to
the documented tier thresholds. Undefined (NaN) inputs stay out of the sums.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from plant_longrun.core.domain.types import SegmentMetrics, SegmentResult, StabilityVerdict
from plant_longrun.simulation.orchestrator.summary import (
    aggregate,
    assess_stability,
    format_report,
)


def _result(day: int, stable: bool = True, **metrics: float) -> SegmentResult:
    return SegmentResult(
        start_day=day,
        end_day=day,
        time=np.empty(0),
        signals={},
        metrics=SegmentMetrics(**metrics),
        verdict=StabilityVerdict() if stable else StabilityVerdict(nan_signals=("soc",)),
    )


def test_energy_sums_and_poor_tier() -> None:
    results = [
        _result(1, True, pv_energy_kwh=10.0),
        _result(2, True, pv_energy_kwh=20.0),
        _result(3, False, pv_energy_kwh=30.0),
    ]

    report = aggregate(results)

    assert report.total_pv_energy_kwh == 60.0
    assert report.stability_ratio == pytest.approx(2 / 3)
    # 0.667 is below the 0.70 "Poor" boundary.
    assert report.stability_assessment == "Critical"
    assert report.segment_count == 3
    assert report.completed_days == 3


@pytest.mark.parametrize(
    ("ratio", "tier"),
    [
        (1.0, "Excellent"),
        (0.95, "Excellent"),
        (0.9499, "Good"),
        (0.90, "Good"),
        (0.80, "Fair"),
        (0.70, "Poor"),
        (0.6999, "Critical"),
        (0.0, "Critical"),
    ],
)
def test_tier_thresholds(ratio: float, tier: str) -> None:
    assert assess_stability(ratio) == tier


def test_soc_and_soh_reductions() -> None:
    results = [
        _result(1, soc_min=40.0, soc_max=60.0, soc_avg=50.0, soc_final=55.0,
                soh_initial=1.0, soh_final=0.999),
        _result(2, soc_min=30.0, soc_max=70.0, soc_avg=60.0, soc_final=45.0,
                soh_initial=0.999, soh_final=0.997),
    ]

    report = aggregate(results)

    assert report.soc_min == 30.0
    assert report.soc_max == 70.0
    assert report.soc_mean == pytest.approx(55.0)
    assert report.soc_final == 45.0
    assert report.soh_initial == 1.0
    assert report.soh_final == 0.997
    assert report.total_soh_degradation_pct == pytest.approx(0.3)


def test_undefined_metrics_do_not_poison_sums() -> None:
    results = [
        _result(1, load_energy_kwh=5.0),
        _result(2),
        _result(3, load_energy_kwh=7.0),
    ]

    report = aggregate(results)

    assert report.total_load_energy_kwh == 12.0
    assert math.isnan(report.total_pv_energy_kwh)
    assert math.isnan(report.soc_min)
    assert math.isnan(report.battery_efficiency_pct)


def test_efficiency_extras() -> None:
    results = [
        _result(1, pv_energy_kwh=100.0, load_energy_kwh=80.0, net_grid_kwh=-20.0,
                battery_charge_kwh=10.0, battery_discharge_kwh=9.0),
    ]

    report = aggregate(results)

    assert report.net_grid_energy_kwh == -20.0
    assert report.pv_utilization_pct == pytest.approx(80.0)
    assert report.self_sufficiency_pct == pytest.approx(100.0)
    assert report.battery_efficiency_pct == pytest.approx(90.0)


def test_missing_grid_trace_falls_back_to_energy_balance() -> None:
    report = aggregate([_result(1, pv_energy_kwh=30.0, load_energy_kwh=50.0)])

    assert report.net_grid_energy_kwh == 20.0
    assert report.self_sufficiency_pct == pytest.approx(60.0)


def test_empty_results() -> None:
    report = aggregate([])

    assert report.segment_count == 0
    assert report.stability_ratio == 0.0
    assert report.stability_assessment == "Critical"
    assert "n/a" in format_report(report)


def test_text_report_mentions_assessment() -> None:
    text = format_report(aggregate([_result(1, pv_energy_kwh=12.5)]))

    assert "Total PV generation (kWh): 12.50" in text
    assert "Assessment: Excellent" in text
