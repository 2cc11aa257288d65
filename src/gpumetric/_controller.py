"""Export controller — flush loop that collects and ships data points."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from gpumetric._buffer import PointBuffer
from gpumetric._types import DataPoint

logger = logging.getLogger("gpumetric.controller")

ExportHandler = Callable[[list[DataPoint]], None]
ObserverCallback = Callable[[], list[DataPoint]]


def _noop_handler(points: list[DataPoint]) -> None:
    """Default handler that discards data points."""


class ExportController:
    """Daemon thread that periodically collects observers and drains the buffer.

    Runs on its own cadence, independent of the scrape interval. Observer
    callbacks are invoked once per flush; points enqueued by direct
    recording are drained in batches of ``batch_size``.
    """

    def __init__(
        self,
        buffer: PointBuffer,
        *,
        batch_size: int = 512,
        flush_interval_ms: int = 2000,
        handler: ExportHandler = _noop_handler,
    ) -> None:
        self._buffer = buffer
        self._batch_size = batch_size
        self._flush_interval_s = flush_interval_ms / 1000.0
        self._handler = handler
        self._callbacks: list[ObserverCallback] = []
        self._flush_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def register_callback(self, callback: ObserverCallback) -> None:
        """Register an observer invoked at every flush."""
        self._callbacks.append(callback)

    def enqueue(self, point: DataPoint) -> None:
        evicted = self._buffer.enqueue(point)
        if evicted is not None:
            logger.debug("buffer full, evicted %s for %s", evicted.name, evicted.device_id)

    def start(self) -> None:
        """Start the background flush loop."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="gpumetric-export", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal stop and perform a final flush."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        self.flush()
        for metric, count in sorted(self._buffer.dropped().items()):
            logger.warning("%d %s data points dropped on buffer overflow", count, metric)

    def _run(self) -> None:
        while not self._stop_event.wait(timeout=self._flush_interval_s):
            self.flush()

    def flush(self) -> None:
        """Collect observer callbacks, then ship everything buffered."""
        with self._flush_lock:
            observed = self._collect()
            if observed:
                for i in range(0, len(observed), self._batch_size):
                    self._ship(observed[i : i + self._batch_size])
            for batch in self._buffer.batches(self._batch_size):
                self._ship(batch)

    def _collect(self) -> list[DataPoint]:
        points: list[DataPoint] = []
        for callback in self._callbacks:
            try:
                points.extend(callback())
            except Exception:  # noqa: BLE001
                logger.warning("Observer callback failed", exc_info=True)
        return points

    def _ship(self, points: list[DataPoint]) -> None:
        try:
            self._handler(points)
        except Exception:  # noqa: BLE001
            logger.warning("Export handler failed for %d points", len(points), exc_info=True)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
