"""
Shared fixtures: a deterministic in-memory plant simulator, a small hourly
base profile and helpers to build orchestrators that never touch the host
(no sleeping, no monitor thread, no tracking servers).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest

from plant_longrun.core.config.run_config import RunConfig
from plant_longrun.core.config.solver_config import SolverConfig
from plant_longrun.core.domain.types import SECONDS_PER_DAY, SimulatorInput, SimulatorOutput
from plant_longrun.simulation.data.profiles import ExogenousProfile
from plant_longrun.simulation.orchestrator.scheduler import SimulationOrchestrator


# ---------------------------------------------------------------------------
# Fake simulator
# ---------------------------------------------------------------------------

class FakePlantSimulator:
    """
    Deterministic plant double.

    Outputs depend only on the inputs and the segment's start day, so a
    segment produces the same trace whether it runs in one pass or after a
    resume. Failures are injected per start day.
    """

    def __init__(
        self,
        *,
        failures: dict[int, list[Exception]] | None = None,
        always_fail: dict[int, Exception] | None = None,
        nan_days: set[int] | None = None,
        on_run: Callable[[SimulatorInput], None] | None = None,
    ) -> None:
        self._failures = {day: list(errs) for day, errs in (failures or {}).items()}
        self._always_fail = dict(always_fail or {})
        self._nan_days = set(nan_days or ())
        self._on_run = on_run

        self._baseline = SolverConfig()
        self._config = self._baseline

        self.calls: list[tuple[int, int]] = []
        self.windows: list[float] = []
        self.reset_count = 0
        self.configured: list[SolverConfig] = []

    @property
    def solver_config(self) -> SolverConfig:
        return self._config

    @property
    def baseline_config(self) -> SolverConfig:
        return self._baseline

    def configure(self, options: SolverConfig) -> None:
        self._config = options
        self.configured.append(options)

    def reset(self) -> None:
        self.reset_count += 1
        self._config = self._baseline

    def run(self, window_seconds: float, inputs: SimulatorInput) -> SimulatorOutput:
        self.calls.append((inputs.start_day, inputs.end_day))
        self.windows.append(window_seconds)

        if self._on_run is not None:
            self._on_run(inputs)

        if inputs.start_day in self._always_fail:
            raise self._always_fail[inputs.start_day]

        pending = self._failures.get(inputs.start_day)
        if pending:
            raise pending.pop(0)

        time = np.asarray(inputs.time, dtype=float)
        pv = np.asarray(inputs.signals["pv_power"], dtype=float)
        load = np.asarray(inputs.signals["load_power"], dtype=float)
        price = np.asarray(inputs.signals["price"], dtype=float)

        battery = np.clip(load - pv, -2000.0, 2000.0)
        grid = load - pv - battery

        days_elapsed = (inputs.start_day - 1) + time / SECONDS_PER_DAY
        soc = 50.0 + 20.0 * np.sin(2 * np.pi * days_elapsed)
        soh = 1.0 - 1e-4 * days_elapsed

        if inputs.start_day in self._nan_days:
            pv = pv.copy()
            pv[3] = np.nan

        return SimulatorOutput(
            time=time,
            signals={
                "P_pv": pv,
                "P_load": load,
                "P_batt": battery,
                "P_grid": grid,
                "SOC": soc,
                "SOH": soh,
                "price_profile": price,
            },
        )


# ---------------------------------------------------------------------------
# Monitor and event doubles
# ---------------------------------------------------------------------------

class StubMonitor:
    def __init__(self, day_probe: Callable[[], int]) -> None:
        self.day_probe = day_probe
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


class MonitorRecorder:
    """Monitor factory that hands out StubMonitors and keeps them."""

    def __init__(self) -> None:
        self.monitors: list[StubMonitor] = []

    def __call__(self, config: RunConfig, event_bus: Any, day_probe: Callable[[], int]) -> StubMonitor:
        monitor = StubMonitor(day_probe)
        self.monitors.append(monitor)
        return monitor


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


def read_jsonl(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _no_tracking_servers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MLFLOW_TRACKING_URI", raising=False)
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_URL", raising=False)
    monkeypatch.delenv("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON", raising=False)


@pytest.fixture
def base_profile() -> ExogenousProfile:
    """Seven hourly days of PV, load and price."""
    days = 7
    hours = np.arange(days * 24) % 24

    pv = np.maximum(0.0, 5000.0 * np.sin(np.pi * (hours - 6) / 12))
    load = 3000.0 + 500.0 * np.cos(2 * np.pi * (hours - 19) / 24)
    price = 0.10 + 0.05 * (hours >= 17) * (hours < 22)

    return ExogenousProfile(
        signals={"pv_power": pv, "load_power": load, "price": price},
        samples_per_day=24,
    )


@pytest.fixture
def monitor_recorder() -> MonitorRecorder:
    return MonitorRecorder()


@pytest.fixture
def make_config() -> Callable[..., RunConfig]:
    def _make(**overrides: Any) -> RunConfig:
        options: dict[str, Any] = {
            "horizon_days": 14,
            "segment_days": 5,
            "checkpoint_interval": 5,
            "recovery_pause_seconds": 0.0,
        }
        options.update(overrides)
        return RunConfig.from_options(**options)

    return _make


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
    base_profile: ExogenousProfile,
    monitor_recorder: MonitorRecorder,
) -> Callable[..., SimulationOrchestrator]:
    def _make(
        simulator: Any,
        *,
        output_dir: Path | None = None,
        event_bus: Any = None,
    ) -> SimulationOrchestrator:
        return SimulationOrchestrator(
            simulator=simulator,
            profile=base_profile,
            output_dir=output_dir or tmp_path / "run",
            event_bus=event_bus,
            monitor_factory=monitor_recorder,
            sleep=lambda _seconds: None,
            rss_probe=lambda: 128.0,
        )

    return _make
