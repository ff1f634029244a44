"""
Recovery strategy classification table.

This module maps a simulator failure signature to exactly one corrective
strategy. It is passive and side-effect free: applying a strategy is the job
of the recovery controller.
"""

from __future__ import annotations

STRATEGY_MEMORY_CLEANUP: str = "memory_cleanup"
STRATEGY_SIMULATOR_RESET: str = "simulator_reset"
STRATEGY_TOLERANCE_RELAXATION: str = "tolerance_relaxation"
STRATEGY_NONE: str = "none"


# Ordered trigger table.
#
# Key   : strategy name
# Value : lower-case keywords matched against the failure signature
#
# Notes:
# - Evaluation is in table order; the first matching row wins.
# - Strategies are never combined within one attempt.
RECOVERY_TRIGGERS: tuple[tuple[str, frozenset[str]], ...] = (
    (
        STRATEGY_MEMORY_CLEANUP,
        frozenset(
            {
                "memory",
                "out of memory",
            }
        ),
    ),
    (
        STRATEGY_SIMULATOR_RESET,
        frozenset(
            {
                "solver",
                "numerical",
            }
        ),
    ),
    (
        STRATEGY_TOLERANCE_RELAXATION,
        frozenset(
            {
                "step size",
                "tolerance",
            }
        ),
    ),
)


def classify_failure(signature: str) -> str:
    """Return the strategy name for a failure signature."""
    text = signature.lower()
    for strategy, keywords in RECOVERY_TRIGGERS:
        if any(keyword in text for keyword in keywords):
            return strategy
    return STRATEGY_NONE


def is_recoverable(signature: str) -> bool:
    """Return True if some strategy applies to the signature."""
    return classify_failure(signature) != STRATEGY_NONE
