"""
Day segmentation logic.

This module contains utilities for splitting a day range into ordered,
size-constrained segments.
"""

from __future__ import annotations

from plant_longrun.core.domain.errors import ConfigError


def segment_bounds(current_day: int, segment_days: int, horizon_days: int) -> tuple[int, int]:
    """Inclusive bounds of the segment starting at ``current_day``."""
    if segment_days <= 0:
        raise ConfigError("segment_days must be > 0")
    if not 1 <= current_day <= horizon_days:
        raise ConfigError(
            f"current_day {current_day} outside [1, {horizon_days}]"
        )
    return current_day, min(current_day + segment_days - 1, horizon_days)


def segment_days_range(
    start_day: int,
    horizon_days: int,
    segment_days: int,
) -> list[tuple[int, int]]:
    """
    Split ``[start_day, horizon_days]`` into contiguous segments of at most
    ``segment_days`` days. Only the last segment may be shorter.
    """

    if horizon_days <= 0:
        raise ConfigError("horizon_days must be > 0")
    if segment_days <= 0:
        raise ConfigError("segment_days must be > 0")

    bounds: list[tuple[int, int]] = []
    day = start_day

    while day <= horizon_days:
        start, end = segment_bounds(day, segment_days, horizon_days)
        bounds.append((start, end))
        day = end + 1

    return bounds
