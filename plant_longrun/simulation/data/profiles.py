"""
Exogenous input profiles.

A profile holds day-aligned input series (PV power, load power, price) at a
fixed number of samples per day. When a run is longer than the base data,
the base days are reused cyclically and modulated by a seasonal factor, a
weekly factor and per-day random jitter. Base days themselves are never
modified, so a run that fits the base data sees it unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

import numpy as np

from plant_longrun.core.domain.errors import ConfigError
from plant_longrun.core.domain.types import SECONDS_PER_DAY, SegmentSpec
from plant_longrun.simulation.engine.signals import (
    LOAD_POWER,
    PRICE,
    PV_POWER,
    SIGNAL_ALIASES,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLES_PER_DAY: int = 24
INPUT_SIGNALS: tuple[str, ...] = (PV_POWER, LOAD_POWER, PRICE)

# Power-like inputs get modulated and clamped at zero; price is reused as is.
POWER_SIGNALS: tuple[str, ...] = (PV_POWER, LOAD_POWER)

DAYS_PER_YEAR: float = 365.0
DAYS_PER_WEEK: float = 7.0


@dataclass(frozen=True, slots=True)
class ExogenousProfile:
    """Day-aligned input series, ``days * samples_per_day`` samples each."""

    signals: Mapping[str, np.ndarray]
    samples_per_day: int = DEFAULT_SAMPLES_PER_DAY

    def __post_init__(self) -> None:
        if self.samples_per_day <= 0:
            raise ConfigError("samples_per_day must be > 0")
        if not self.signals:
            raise ConfigError("profile has no signals")

        lengths = {name: len(values) for name, values in self.signals.items()}
        if len(set(lengths.values())) != 1:
            raise ConfigError(f"profile signals differ in length: {lengths}")

        length = next(iter(lengths.values()))
        if length == 0 or length % self.samples_per_day:
            raise ConfigError(
                f"profile length {length} is not a positive multiple of "
                f"{self.samples_per_day} samples per day"
            )

    @property
    def days(self) -> int:
        return len(next(iter(self.signals.values()))) // self.samples_per_day

    @property
    def sample_seconds(self) -> float:
        return SECONDS_PER_DAY / self.samples_per_day

    def day_slice(self, start_day: int, end_day: int) -> slice:
        return slice((start_day - 1) * self.samples_per_day, end_day * self.samples_per_day)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_profile(path: str | Path) -> ExogenousProfile:
    """
    Load a base profile from a ``.npz`` archive.

    Arrays are matched to input signals through the trace alias table, so
    ``pv_power_profile`` and ``pv_power`` are both accepted. An optional
    scalar ``samples_per_day`` array overrides the hourly default.
    """

    profile_path = Path(path)
    if not profile_path.exists():
        raise ConfigError(f"profile file not found: {profile_path}")

    with np.load(profile_path) as archive:
        available = set(archive.files)
        samples_per_day = DEFAULT_SAMPLES_PER_DAY
        if "samples_per_day" in available:
            samples_per_day = int(archive["samples_per_day"])

        signals: dict[str, np.ndarray] = {}
        for name in INPUT_SIGNALS:
            for candidate in SIGNAL_ALIASES[name]:
                if candidate in available:
                    signals[name] = np.asarray(archive[candidate], dtype=float).ravel()
                    break
            else:
                raise ConfigError(
                    f"profile {profile_path} has no {name!r} series; "
                    f"found: {', '.join(sorted(available))}"
                )

    profile = ExogenousProfile(signals=signals, samples_per_day=samples_per_day)

    LOGGER.info(
        "Loaded exogenous profile",
        extra={"path": str(profile_path), "days": profile.days},
    )

    return profile


# ---------------------------------------------------------------------------
# Extension
# ---------------------------------------------------------------------------

def seasonal_factor(day: np.ndarray) -> np.ndarray:
    """PV seasonal factor, peaking a quarter-year after day 0."""
    return 0.8 + 0.4 * np.sin(2 * np.pi * day / DAYS_PER_YEAR + np.pi / 2)


def weekly_factor(day: np.ndarray) -> np.ndarray:
    return 0.95 + 0.1 * np.sin(2 * np.pi * day / DAYS_PER_WEEK)


# Heating and cooling seasons cancel out; load keeps a flat seasonal level.
LOAD_SEASONAL_LEVEL: float = 0.9


def extend_profile(
    profile: ExogenousProfile,
    horizon_days: int,
    *,
    seed: int = 0,
    jitter: float = 0.10,
) -> ExogenousProfile:
    """
    Extend ``profile`` to ``horizon_days`` days.

    Day ``d`` beyond the base data reuses base day ``(d - 1) % base_days + 1``
    scaled by seasonal, weekly and uniform ``[1 - jitter, 1 + jitter]``
    factors. The jitter stream depends only on ``seed``, so the same call
    always yields the same series. Power signals are clamped at zero.
    """

    if horizon_days <= 0:
        raise ConfigError("horizon_days must be > 0")
    if not 0.0 <= jitter < 1.0:
        raise ConfigError("jitter must be in [0, 1)")

    base_days = profile.days
    if horizon_days <= base_days:
        return profile

    spd = profile.samples_per_day
    rng = np.random.default_rng(seed)

    day_numbers = np.arange(1, horizon_days + 1, dtype=float)
    base_index = (np.arange(horizon_days) % base_days).astype(int)
    synthesized = day_numbers > base_days

    weekly = weekly_factor(day_numbers)
    day_factors: dict[str, np.ndarray] = {
        PV_POWER: seasonal_factor(day_numbers) * weekly,
        LOAD_POWER: LOAD_SEASONAL_LEVEL * weekly,
    }

    extended: dict[str, np.ndarray] = {}
    for name, values in profile.signals.items():
        per_day = np.asarray(values, dtype=float).reshape(base_days, spd)[base_index]

        if name in POWER_SIGNALS:
            factors = day_factors.get(name, weekly).copy()
            factors *= rng.uniform(1.0 - jitter, 1.0 + jitter, size=horizon_days)
            factors[~synthesized] = 1.0
            per_day = np.maximum(per_day * factors[:, None], 0.0)

        extended[name] = per_day.reshape(-1)

    LOGGER.info(
        "Extended exogenous profile",
        extra={
            "base_days": base_days,
            "horizon_days": horizon_days,
            "seed": seed,
            "jitter": jitter,
        },
    )

    return ExogenousProfile(signals=extended, samples_per_day=spd)


# ---------------------------------------------------------------------------
# Slicing
# ---------------------------------------------------------------------------

def build_segment_spec(
    profile: ExogenousProfile,
    start_day: int,
    end_day: int,
) -> SegmentSpec:
    """Slice ``[start_day, end_day]`` out of ``profile`` with a zero-based time axis."""
    if not 1 <= start_day <= end_day <= profile.days:
        raise ConfigError(
            f"segment [{start_day}, {end_day}] outside profile of {profile.days} days"
        )

    window = profile.day_slice(start_day, end_day)
    inputs = {name: np.array(values[window], dtype=float) for name, values in profile.signals.items()}
    n_samples = (end_day - start_day + 1) * profile.samples_per_day

    return SegmentSpec(
        start_day=start_day,
        end_day=end_day,
        inputs=inputs,
        time=np.arange(n_samples, dtype=float) * profile.sample_seconds,
    )
