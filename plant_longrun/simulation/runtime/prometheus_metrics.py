from __future__ import annotations

import json
import logging
import math
import os
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Gauge, push_to_gateway

if TYPE_CHECKING:
    from plant_longrun.core.domain.types import AggregateReport

LOGGER = logging.getLogger(__name__)

GAUGE_PREFIX = "plant_run_"

# AggregateReport fields exported as gauges.
REPORT_GAUGES: tuple[str, ...] = (
    "completed_days",
    "total_pv_energy_kwh",
    "total_load_energy_kwh",
    "net_grid_energy_kwh",
    "total_soh_degradation_pct",
    "stability_ratio",
)


class PrometheusMetricsClient:
    """End-of-run gauges for one simulation run, pushed to a Pushgateway.

    Enabled by PROMETHEUS_PUSHGATEWAY_URL. Every push is grouped by the run
    name, so runs sharing a job do not overwrite each other; extra grouping
    labels can be given as a JSON object in
    PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON (string values only).

    Undefined (NaN) report values are not exported.
    """

    def __init__(self) -> None:
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._extra_grouping = self._grouping_from_env()
        self._registry = CollectorRegistry()
        self._gauges: dict[str, Gauge] = {}

    def is_enabled(self) -> bool:
        return self._pushgateway_url is not None

    @staticmethod
    def _grouping_from_env() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            return {}

        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def set_gauge(self, name: str, value: float, labels: dict[str, str]) -> None:
        if not self.is_enabled() or math.isnan(value):
            return

        gauge = self._gauges.get(name)
        if gauge is None:
            gauge = Gauge(
                GAUGE_PREFIX + name,
                documentation=f"Simulation run {name.replace('_', ' ')}",
                labelnames=sorted(labels),
                registry=self._registry,
            )
            self._gauges[name] = gauge

        gauge.labels(**labels).set(value)

    def record_report(
        self,
        report: AggregateReport,
        *,
        status: str,
        duration_seconds: float,
        recovery_count: int,
    ) -> None:
        labels = {"status": status, "assessment": report.stability_assessment}

        for field_name in REPORT_GAUGES:
            self.set_gauge(field_name, float(getattr(report, field_name)), labels)

        self.set_gauge("duration_seconds", duration_seconds, labels)
        self.set_gauge("recovery_count", float(recovery_count), labels)

    def push(self, *, job: str, run: str) -> None:
        if not self.is_enabled():
            return

        grouping_key = {**self._extra_grouping, "run": run}
        push_to_gateway(
            gateway=self._pushgateway_url,
            job=job,
            registry=self._registry,
            grouping_key=grouping_key,
        )

        LOGGER.info(
            "Run metrics pushed",
            extra={"job": job, "grouping_key": grouping_key, "gauges": len(self._gauges)},
        )
