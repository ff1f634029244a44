"""
Output signal extraction.

Simulator traces name the same physical quantity differently across model
revisions. Each logical signal is looked up through an ordered alias list;
the first alias present in the trace wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

import numpy as np

from plant_longrun.core.domain.errors import ExtractionError

LOGGER = logging.getLogger(__name__)


PV_POWER = "pv_power"
LOAD_POWER = "load_power"
BATTERY_POWER = "battery_power"
GRID_POWER = "grid_power"
SOC = "soc"
SOH = "soh"
PRICE = "price"


# Logical name -> candidate trace names, in lookup order.
SIGNAL_ALIASES: dict[str, tuple[str, ...]] = {
    PV_POWER: (PV_POWER, "P_pv", "pv_power_profile"),
    LOAD_POWER: (LOAD_POWER, "P_load", "load_power_profile"),
    # The agent's action is the battery power command.
    BATTERY_POWER: (BATTERY_POWER, "P_batt", "action"),
    GRID_POWER: (GRID_POWER, "P_grid", "P_net_load"),
    SOC: (SOC, "SOC", "Battery_SOC"),
    SOH: (SOH, "SOH", "Battery_SOH"),
    PRICE: (PRICE, "price_profile"),
}


@dataclass(frozen=True, slots=True)
class ExtractedSignals:
    signals: dict[str, np.ndarray]
    missing: tuple[str, ...]


def extract_signal(
    trace: Mapping[str, np.ndarray],
    logical_name: str,
    aliases: Mapping[str, tuple[str, ...]] = SIGNAL_ALIASES,
) -> np.ndarray:
    """Return the first non-empty alias of ``logical_name`` in ``trace``."""
    for candidate in aliases.get(logical_name, (logical_name,)):
        if candidate not in trace:
            continue
        data = np.asarray(trace[candidate], dtype=float).ravel()
        if data.size:
            return data

    raise ExtractionError(logical_name, sorted(trace))


def extract_signals(
    trace: Mapping[str, np.ndarray],
    aliases: Mapping[str, tuple[str, ...]] = SIGNAL_ALIASES,
) -> ExtractedSignals:
    """
    Extract every logical signal from a raw trace.

    Missing signals are logged and reported, never raised: downstream metrics
    for them stay undefined.
    """
    found: dict[str, np.ndarray] = {}
    missing: list[str] = []

    for logical_name in aliases:
        try:
            found[logical_name] = extract_signal(trace, logical_name, aliases)
        except ExtractionError as exc:
            LOGGER.warning(
                "Signal extraction failed: %s",
                exc,
                extra={"signal": logical_name},
            )
            missing.append(logical_name)

    return ExtractedSignals(signals=found, missing=tuple(missing))
