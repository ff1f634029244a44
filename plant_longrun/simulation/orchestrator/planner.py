from __future__ import annotations

from typing import TYPE_CHECKING

from plant_longrun.core.domain.errors import ConfigError
from plant_longrun.simulation.orchestrator.planner_models import RunPlan, SegmentPlan
from plant_longrun.simulation.orchestrator.segmenter import segment_days_range

if TYPE_CHECKING:
    from plant_longrun.core.config.run_config import RunConfig


def plan_run(config: RunConfig, *, start_day: int = 1) -> RunPlan:
    """
    Build a deterministic segment plan for a run.

    This function performs *planning only*. It does not touch the
    simulator, the profile or the filesystem.

    Parameters
    ----------
    config:
        Run parameters. ``horizon_days`` and ``segment_days`` are checked
        again here so a config built without validation still fails with
        ConfigError.

    start_day:
        First day to plan (``completed_days + 1`` when resuming).

    Returns
    -------
    RunPlan
        Segments partitioning ``[start_day, horizon_days]``. Empty when the
        run is already complete.
    """

    if config.horizon_days <= 0:
        raise ConfigError("horizon_days must be > 0")

    if config.segment_days <= 0:
        raise ConfigError("segment_days must be > 0")

    if start_day < 1:
        raise ConfigError("start_day must be >= 1")

    if start_day > config.horizon_days:
        bounds: list[tuple[int, int]] = []
    else:
        bounds = segment_days_range(
            start_day,
            config.horizon_days,
            config.segment_days,
        )

    segments = tuple(
        SegmentPlan(index=index, start_day=start, end_day=end)
        for index, (start, end) in enumerate(bounds)
    )

    return RunPlan(
        horizon_days=config.horizon_days,
        segment_days=config.segment_days,
        start_day=start_day,
        segments=segments,
    )
