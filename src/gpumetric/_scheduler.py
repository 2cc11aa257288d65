"""Scrape scheduler — periodic device polling on a daemon thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING

from gpumetric._catalog import CATALOG
from gpumetric._errors import DeviceQueryError, SchedulerStateError
from gpumetric._types import SchedulerState

if TYPE_CHECKING:
    from gpumetric._registry import DeviceRegistry
    from gpumetric._sink import MetricSink
    from gpumetric._store import ObservedValueStore
    from gpumetric._types import Device, DeviceStatus, MetricDescriptor

logger = logging.getLogger("gpumetric.scheduler")


class ScrapeScheduler:
    """Polls every registered device once per tick and feeds a MetricSink.

    Lifecycle is ``IDLE -> RUNNING -> STOPPING -> STOPPED``. ``stop()`` is
    single-use: it stops the timer, waits for an in-flight tick to finish,
    shuts the driver down and only then signals completion.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        sink: MetricSink,
        *,
        store: ObservedValueStore | None = None,
        descriptors: Sequence[MetricDescriptor] = CATALOG,
        scrape_interval_ms: int = 20_000,
    ) -> None:
        self._registry = registry
        self._sink = sink
        self._store = store
        self._descriptors = tuple(descriptors)
        self._interval_s = scrape_interval_ms / 1000.0

        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._done = threading.Event()
        self._thread: threading.Thread | None = None
        self._tick_count = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def start(self) -> None:
        """Register metrics, prepare value cells and start ticking."""
        with self._state_lock:
            if self._state is not SchedulerState.IDLE:
                raise SchedulerStateError(f"cannot start scheduler in state {self._state.value}")
            devices = self._registry.devices
            self._sink.register(self._descriptors)
            if self._store is not None:
                self._store.prepare(
                    (d.uuid for d in devices), (m.name for m in self._descriptors)
                )
            self._state = SchedulerState.RUNNING
            self._thread = threading.Thread(
                target=self._run, name="gpumetric-scrape", daemon=True
            )
            self._thread.start()
        logger.info(
            "scraping %d devices every %.1fs (%s sink)",
            len(devices), self._interval_s, self._sink.kind.value,
        )

    def stop(self) -> None:
        """Stop ticking, finish the in-flight tick, then shut the driver down.

        Raises SchedulerStateError when called more than once. Driver
        shutdown errors propagate and leave the scheduler in STOPPING.
        """
        with self._state_lock:
            if self._state not in (SchedulerState.IDLE, SchedulerState.RUNNING):
                raise SchedulerStateError(f"cannot stop scheduler in state {self._state.value}")
            self._state = SchedulerState.STOPPING

        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

        self._registry.shutdown()
        self._state = SchedulerState.STOPPED
        self._done.set()
        logger.info("scheduler stopped after %d ticks", self._tick_count)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scheduler has fully stopped."""
        return self._done.wait(timeout)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_s):
            self.tick()

    def tick(self) -> int:
        """Scrape every device once. Returns the number of values recorded."""
        recorded = 0
        for device in self._registry.devices:
            try:
                status = self._registry.snapshot(device.uuid)
            except DeviceQueryError as exc:
                logger.warning("error on getting device status: %s", exc)
                # no stale values for a device that missed this tick
                self._sink.discard(device.uuid)
                continue
            try:
                recorded += self._record(device, status)
            except Exception:  # noqa: BLE001
                logger.exception("failed to record metrics for %s", device.uuid)
        self._tick_count += 1
        logger.debug("tick %d recorded %d values", self._tick_count, recorded)
        return recorded

    def _record(self, device: Device, status: DeviceStatus) -> int:
        recorded = 0
        for descriptor in self._descriptors:
            value = getattr(status, descriptor.field)
            if value is None:
                logger.debug("%s: %s unavailable", device.uuid, descriptor.name)
                continue
            self._sink.record(device.uuid, descriptor, int(value))
            recorded += 1
        return recorded
