"""
Planning model definitions.

This module contains immutable planning structures used to describe
a run and its day segments.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SegmentPlan:
    """
    Day range for a single segment (inclusive on both ends).
    """

    index: int
    start_day: int
    end_day: int

    @property
    def days(self) -> int:
        return self.end_day - self.start_day + 1

    @property
    def segment_id(self) -> str:
        return f"segment_{self.start_day:03d}_{self.end_day:03d}"


@dataclass(frozen=True, slots=True)
class RunPlan:
    """
    Ordered segments covering ``[start_day, horizon_days]``.
    """

    horizon_days: int
    segment_days: int
    start_day: int
    segments: tuple[SegmentPlan, ...]

    @property
    def remaining_days(self) -> int:
        return sum(segment.days for segment in self.segments)
