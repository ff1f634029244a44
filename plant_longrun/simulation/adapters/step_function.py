"""
Plant simulator adapter around a Python stepping function.

The model is given as a session factory, either a callable or an import
path ``"package.module:attr"``. Calling the factory opens a model session;
a session is a callable ``session(window_seconds, inputs, options)`` that
returns a SimulatorOutput or a mapping with a ``"time"`` entry plus named
output series. Reset closes the session (when it has ``close()``) and opens
a fresh one with baseline solver settings.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Mapping

import numpy as np

from plant_longrun.core.config.solver_config import SolverConfig
from plant_longrun.core.domain.errors import ConfigError
from plant_longrun.core.domain.types import SimulatorInput, SimulatorOutput

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[], Callable[..., Any]]


def resolve_callable(target: str) -> Callable[..., Any]:
    """Resolve ``"module:attr"`` (attr may be dotted) to a callable."""
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"expected 'module:attr', got {target!r}")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"cannot import simulator module {module_name!r}") from exc

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ConfigError(f"{module_name!r} has no attribute {attr_path!r}") from exc

    if not callable(obj):
        raise ConfigError(f"{target!r} is not callable")

    return obj


def _as_output(raw: Any) -> SimulatorOutput:
    if isinstance(raw, SimulatorOutput):
        return raw

    if not isinstance(raw, Mapping) or "time" not in raw:
        raise TypeError(
            f"simulator session returned {type(raw).__name__}; "
            "expected SimulatorOutput or a mapping with a 'time' entry"
        )

    return SimulatorOutput(
        time=np.asarray(raw["time"], dtype=float),
        signals={
            name: np.asarray(values, dtype=float)
            for name, values in raw.items()
            if name != "time"
        },
    )


class StepFunctionSimulator:
    """The single concrete PlantSimulator."""

    def __init__(
        self,
        model: str | SessionFactory,
        *,
        baseline: SolverConfig | None = None,
    ) -> None:
        self._factory: SessionFactory = (
            resolve_callable(model) if isinstance(model, str) else model
        )
        self._baseline = baseline or SolverConfig()
        self._config = self._baseline
        self._session = self._open_session()

    @property
    def solver_config(self) -> SolverConfig:
        return self._config

    @property
    def baseline_config(self) -> SolverConfig:
        return self._baseline

    def _open_session(self) -> Callable[..., Any]:
        session = self._factory()
        if not callable(session):
            raise ConfigError("simulator factory did not return a callable session")
        return session

    def configure(self, options: SolverConfig) -> None:
        self._config = options
        LOGGER.info("Solver configured", extra={"solver": options.to_options()})

    def run(self, window_seconds: float, inputs: SimulatorInput) -> SimulatorOutput:
        raw = self._session(window_seconds, inputs, self._config.to_options())
        return _as_output(raw)

    def reset(self) -> None:
        close = getattr(self._session, "close", None)
        if callable(close):
            try:
                close()
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Closing simulator session failed")

        self._session = self._open_session()
        self._config = self._baseline

        LOGGER.info("Simulator session reset to baseline configuration")
