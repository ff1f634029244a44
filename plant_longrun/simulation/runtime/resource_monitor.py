"""Background host-memory monitor."""

from __future__ import annotations

import gc
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

import psutil

from plant_longrun.core.events.events import MemoryCleanupEvent

if TYPE_CHECKING:
    from plant_longrun.core.events.event_bus import EventBus

LOGGER = logging.getLogger(__name__)

BYTES_PER_GB: float = 1e9


def available_memory_gb() -> float:
    """Available physical memory on the host, in GB."""
    return psutil.virtual_memory().available / BYTES_PER_GB


def process_rss_mb() -> float:
    """Resident set size of this process, in MB."""
    return psutil.Process().memory_info().rss / (1024 * 1024)


def release_memory() -> int:
    """Run a full garbage collection; return the number of objects collected."""
    return gc.collect()


@dataclass(frozen=True, slots=True)
class MemorySample:
    available_gb: float
    below_threshold: bool


class ResourceMonitor:
    """
    Polls available memory on a fixed period from a daemon thread.

    When available memory drops below the threshold the monitor runs a
    lightweight cleanup and emits a MemoryCleanupEvent. It shares nothing
    mutable with the main loop apart from the day probe it reads.

    Lifecycle: start() once, stop() always (idempotent, joins the thread).
    """

    def __init__(
        self,
        *,
        threshold_gb: float,
        period_seconds: float = 60.0,
        event_bus: EventBus | None = None,
        sampler: Callable[[], float] = available_memory_gb,
        cleanup: Callable[[], int] = release_memory,
        day_probe: Callable[[], int] | None = None,
    ) -> None:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")

        self._threshold_gb = threshold_gb
        self._period_seconds = period_seconds
        self._event_bus = event_bus
        self._sampler = sampler
        self._cleanup = cleanup
        self._day_probe = day_probe

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.cleanup_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("ResourceMonitor already started")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._monitor_loop,
            name="resource-monitor",
            daemon=True,
        )
        self._thread.start()

        LOGGER.info(
            "Started resource monitoring",
            extra={
                "period_seconds": self._period_seconds,
                "threshold_gb": self._threshold_gb,
            },
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()

        thread = self._thread
        if thread is None:
            return

        thread.join(timeout=timeout)
        if thread.is_alive():
            LOGGER.warning("Resource monitor thread did not stop within %.1fs", timeout)
        self._thread = None

        LOGGER.info("Stopped resource monitoring")

    def __enter__(self) -> ResourceMonitor:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def check_once(self) -> MemorySample:
        """Take one sample and clean up if below threshold."""
        available_gb = float(self._sampler())
        below = available_gb < self._threshold_gb

        if below:
            collected = self._cleanup()
            self.cleanup_count += 1

            LOGGER.warning(
                "Memory threshold reached (%.1f GB available), cleanup triggered",
                available_gb,
            )

            if self._event_bus is not None:
                day = self._day_probe() if self._day_probe is not None else 0
                self._event_bus.emit(
                    MemoryCleanupEvent(
                        day=day,
                        available_gb=available_gb,
                        threshold_gb=self._threshold_gb,
                        collected_objects=int(collected),
                    )
                )

        return MemorySample(available_gb=available_gb, below_threshold=below)

    def _monitor_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.check_once()
            except Exception:  # pylint: disable=broad-exception-caught
                LOGGER.exception("Memory monitoring failed")

            if self._stop_event.wait(self._period_seconds):
                break
