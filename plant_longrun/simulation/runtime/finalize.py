from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from plant_longrun.simulation.orchestrator.summary import format_report
from plant_longrun.simulation.runtime.mlflow_run_logger import MlflowRunLogger
from plant_longrun.simulation.runtime.prometheus_metrics import PrometheusMetricsClient

if TYPE_CHECKING:
    from plant_longrun.core.config.run_config import RunConfig
    from plant_longrun.core.domain.state import SimulationState
    from plant_longrun.core.domain.types import (
        AggregateReport,
        RecoveryAttempt,
        SegmentResult,
    )
    from plant_longrun.simulation.runtime.context import RunContext

LOGGER = logging.getLogger(__name__)


class RunFinalizer:
    """
    Finalizes a run after its last segment.

    Responsibilities:
    - write final_results.json, run_metadata.json, simulation_summary.txt
    - write _DONE marker
    - best-effort MLflow / Prometheus side channels
    """

    def finalize(
        self,
        *,
        ctx: RunContext,
        config: RunConfig,
        state: SimulationState,
        report: AggregateReport,
        results: Sequence[SegmentResult],
        recovery_log: Sequence[RecoveryAttempt] = (),
        status: str = "success",
    ) -> None:
        finished_at = datetime.now(timezone.utc)
        duration_seconds = (finished_at - state.started_at).total_seconds()

        metadata = {
            "schema_version": "1.0",
            "config": config.model_dump(mode="json"),
            "lifecycle": {
                "status": status,
                "started_at": state.started_at.isoformat(),
                "finished_at": finished_at.isoformat(),
                "duration_seconds": duration_seconds,
            },
            "progress": {
                "horizon_days": state.horizon_days,
                "completed_days": state.completed_days,
                "segments": len(results),
                "error_count": state.error_count,
                "recovery_count": state.recovery_count,
            },
            "memory_usage_mb": [list(item) for item in state.memory_usage_mb],
            "recovery_log": [attempt.to_dict() for attempt in recovery_log],
        }

        final_results = {
            "report": report.to_dict(),
            "segments": [
                {
                    "start_day": r.start_day,
                    "end_day": r.end_day,
                    "metrics": r.metrics.to_dict(),
                    "verdict": r.verdict.to_dict(),
                    "missing_signals": list(r.missing_signals),
                    "traces_file": r.traces_file,
                }
                for r in results
            ],
        }

        output_dir = ctx.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        (output_dir / "run_metadata.json").write_text(
            json.dumps(metadata, indent=2),
            encoding="utf-8",
        )

        (output_dir / "final_results.json").write_text(
            json.dumps(final_results, indent=2),
            encoding="utf-8",
        )

        (output_dir / "simulation_summary.txt").write_text(
            format_report(report, config),
            encoding="utf-8",
        )

        (output_dir / "_DONE").write_text(
            finished_at.isoformat(),
            encoding="utf-8",
        )

        LOGGER.info(
            "Run finalized",
            extra={"output_dir": str(output_dir), "status": status},
        )

        # --- MLflow logging (side-effect only) ---
        mlflow_logger = MlflowRunLogger()

        if mlflow_logger.is_enabled():
            try:
                mlflow_logger.log(
                    run_name=output_dir.name,
                    config=config,
                    report=report,
                    status=status,
                    duration_seconds=duration_seconds,
                )
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("MLflow logging failed")

        # --- Prometheus metrics (side-effect only) ---
        metrics = PrometheusMetricsClient()

        if metrics.is_enabled():
            try:
                metrics.record_report(
                    report,
                    status=status,
                    duration_seconds=duration_seconds,
                    recovery_count=state.recovery_count,
                )
                metrics.push(job="plant_longrun", run=output_dir.name)
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Prometheus push failed")
