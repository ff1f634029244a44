from __future__ import annotations

import logging
import math
import os
from typing import TYPE_CHECKING

import mlflow

if TYPE_CHECKING:
    from plant_longrun.core.config.run_config import RunConfig
    from plant_longrun.core.domain.types import AggregateReport

LOGGER = logging.getLogger(__name__)

DEFAULT_EXPERIMENT = "plant-longrun"


class MlflowRunLogger:
    """Logs run configuration and aggregate results to MLflow.

    Tracking is configured via environment variables:
    - MLFLOW_TRACKING_URI: HTTP(S) address of the MLflow tracking server.
    - MLFLOW_EXPERIMENT_NAME: optional, defaults to "plant-longrun".

    This logger is best-effort. Callers should catch exceptions and continue.
    """

    def __init__(self) -> None:
        self._tracking_uri = os.environ.get("MLFLOW_TRACKING_URI")
        if self._tracking_uri:
            mlflow.set_tracking_uri(self._tracking_uri)
        self._experiment = os.environ.get("MLFLOW_EXPERIMENT_NAME", DEFAULT_EXPERIMENT)

    def is_enabled(self) -> bool:
        return bool(self._tracking_uri)

    def log(
        self,
        *,
        run_name: str,
        config: RunConfig,
        report: AggregateReport,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Log run parameters, aggregate metrics and status tags."""

        mlflow.set_experiment(self._experiment)

        with mlflow.start_run(run_name=run_name):
            # Parameters (stable, comparable)
            mlflow.log_params(
                {
                    "horizon_days": config.horizon_days,
                    "segment_days": config.segment_days,
                    "checkpoint_interval": config.checkpoint_interval,
                    "auto_recovery": config.auto_recovery,
                    "seed": config.seed,
                    "jitter": config.jitter,
                }
            )

            # Metrics (NaN means "undefined", MLflow would reject or plot it)
            metrics = {
                key: float(value)
                for key, value in report.to_dict().items()
                if isinstance(value, (int, float)) and not math.isnan(value)
            }
            metrics["duration_seconds"] = duration_seconds
            mlflow.log_metrics(metrics)

            # Tags (UI / filtering)
            mlflow.set_tag("status", status)
            mlflow.set_tag("stability_assessment", report.stability_assessment)

        LOGGER.info(
            "MLflow run log submitted",
            extra={"run_name": run_name, "status": status},
        )
