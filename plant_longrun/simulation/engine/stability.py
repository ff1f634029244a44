"""Numerical stability classification of segment output traces."""

from __future__ import annotations

from typing import Mapping

import numpy as np

from plant_longrun.core.domain.types import StabilityVerdict

# Native-unit ceilings: any |value| above MAGNITUDE_THRESHOLD, or any
# sample-to-sample jump above RATE_THRESHOLD, is treated as divergence.
MAGNITUDE_THRESHOLD: float = 1e6
RATE_THRESHOLD: float = 1e5


def classify(
    signals: Mapping[str, np.ndarray],
    *,
    magnitude_threshold: float = MAGNITUDE_THRESHOLD,
    rate_threshold: float = RATE_THRESHOLD,
) -> StabilityVerdict:
    """
    Classify a segment's signals.

    Rules are evaluated independently per signal:
    - NaN: any value is NaN
    - Inf: any value is +/- infinite
    - magnitude: any |value| exceeds ``magnitude_threshold``
    - rate: any |first difference| exceeds ``rate_threshold``

    Empty signals are skipped. Signal names are reported in sorted order so
    the verdict is independent of mapping order.
    """

    nan_signals: list[str] = []
    inf_signals: list[str] = []
    large_signals: list[str] = []
    rapid_signals: list[str] = []

    for name in sorted(signals):
        data = np.asarray(signals[name], dtype=float).ravel()
        if data.size == 0:
            continue

        if np.isnan(data).any():
            nan_signals.append(name)

        if np.isinf(data).any():
            inf_signals.append(name)

        # NaN compares False; +/-inf counts as both large and rapid.
        with np.errstate(invalid="ignore"):
            if (np.abs(data) > magnitude_threshold).any():
                large_signals.append(name)

            if data.size > 1 and (np.abs(np.diff(data)) > rate_threshold).any():
                rapid_signals.append(name)

    return StabilityVerdict(
        nan_signals=tuple(nan_signals),
        inf_signals=tuple(inf_signals),
        large_signals=tuple(large_signals),
        rapid_signals=tuple(rapid_signals),
    )
