"""Run configuration model for long-horizon segmented simulations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from plant_longrun.core.domain.errors import ConfigError


class RunConfig(BaseModel):
    """Immutable run parameters.

    Unknown options and invalid values raise ``ConfigError``, whether the
    model is built directly, through ``from_options`` or ``from_json_obj``.
    """

    horizon_days: int = Field(30, gt=0)
    segment_days: int = Field(5, gt=0)
    checkpoint_interval: int = Field(7, gt=0)

    # Available host memory (GB) below which the resource monitor cleans up.
    memory_threshold: float = Field(6.0, gt=0)

    stability_monitoring: bool = True
    auto_recovery: bool = True
    data_compression: bool = True

    resume_from: str | None = None

    # Exogenous profile extension
    seed: int = 0
    jitter: float = Field(0.10, ge=0.0, le=0.5)

    # Cadences and thresholds
    progress_interval_days: int = Field(5, gt=0)
    monitor_period_seconds: float = Field(60.0, gt=0)
    recovery_pause_seconds: float = Field(2.0, ge=0)
    critical_window_days: int = Field(7, gt=0)
    critical_unstable_ratio: float = Field(0.5, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigError(f"invalid run configuration: {exc}") from exc

    @model_validator(mode="after")
    def validate_consistency(self) -> RunConfig:
        """Validate internal consistency of the run configuration."""
        if self.resume_from is not None and not self.resume_from.strip():
            raise ValueError("resume_from must be non-empty when set")
        return self

    @classmethod
    def from_options(cls, **options: Any) -> RunConfig:
        """Create a RunConfig from named options."""
        return cls.from_json_obj(options)

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> RunConfig:
        """Create a RunConfig from a JSON-compatible object."""
        try:
            return cls.model_validate(obj)
        except ValidationError as exc:
            raise ConfigError(f"invalid run configuration: {exc}") from exc

    def segment_count(self) -> int:
        return -(-self.horizon_days // self.segment_days)


def load_run_config(path: str | Path) -> RunConfig:
    """Load a RunConfig from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file is not valid JSON: {config_path}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("config root must be a JSON object")

    return RunConfig.from_json_obj(raw)
