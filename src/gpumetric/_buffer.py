"""Bounded queue of directly recorded data points awaiting export."""

from __future__ import annotations

import threading
from collections import Counter, deque

from gpumetric._types import DataPoint


class PointBuffer:
    """FIFO of data points shared by the scrape thread and the flush thread.

    When full, the oldest point is evicted and counted against its metric
    name, so overflow can be reported per metric at shutdown.
    """

    def __init__(self, maxsize: int) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._points: deque[DataPoint] = deque()
        self._maxsize = maxsize
        self._dropped: Counter[str] = Counter()
        self._lock = threading.Lock()

    def enqueue(self, point: DataPoint) -> DataPoint | None:
        """Append ``point``; return the evicted point when the buffer was full."""
        evicted = None
        with self._lock:
            if len(self._points) >= self._maxsize:
                evicted = self._points.popleft()
                self._dropped[evicted.name] += 1
            self._points.append(point)
        return evicted

    def batches(self, batch_size: int) -> list[list[DataPoint]]:
        """Drain everything currently queued, split into ``batch_size`` chunks.

        Points enqueued while the batches are being shipped wait for the
        next flush.
        """
        with self._lock:
            points = list(self._points)
            self._points.clear()
        return [points[i : i + batch_size] for i in range(0, len(points), batch_size)]

    @property
    def drop_count(self) -> int:
        with self._lock:
            return sum(self._dropped.values())

    def dropped(self) -> dict[str, int]:
        """Evicted point counts keyed by metric name."""
        with self._lock:
            return dict(self._dropped)

    def __len__(self) -> int:
        return len(self._points)
