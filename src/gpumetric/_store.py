"""Observed value store — latest sampled value per (device, metric)."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager


class _RWLock:
    """Readers/writer lock: many readers or one writer, writers preferred."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ObservedValue:
    """One mutable cell, written by the scraper and read by the exporter."""

    __slots__ = ("_lock", "_value")

    def __init__(self, value: int | None = None) -> None:
        self._lock = _RWLock()
        self._value = value

    def set(self, value: int) -> None:
        with self._lock.write():
            self._value = value

    def get(self) -> int | None:
        with self._lock.read():
            return self._value

    def clear(self) -> None:
        with self._lock.write():
            self._value = None


class ObservedValueStore:
    """Mapping of (device id, metric name) to an ObservedValue cell.

    Each cell carries its own lock, so updates to different devices or
    metrics never contend. The store-wide lock is only taken to create a
    cell that ``prepare`` did not create up front.
    """

    def __init__(self) -> None:
        self._cells: dict[tuple[str, str], ObservedValue] = {}
        self._lock = threading.Lock()

    def prepare(self, device_ids: Iterable[str], metrics: Iterable[str]) -> None:
        """Create empty cells for every (device, metric) pair."""
        metric_names = list(metrics)
        with self._lock:
            for device_id in device_ids:
                for metric in metric_names:
                    self._cells.setdefault((device_id, metric), ObservedValue())

    def set(self, device_id: str, metric: str, value: int) -> None:
        self._cell(device_id, metric).set(value)

    def get(self, device_id: str, metric: str) -> int | None:
        """Latest committed value, or None if the cell is empty."""
        cell = self._cells.get((device_id, metric))
        if cell is None:
            return None
        return cell.get()

    def clear_device(self, device_id: str) -> None:
        """Empty every cell of ``device_id`` so observers skip it until rewritten."""
        with self._lock:
            cells = [cell for key, cell in self._cells.items() if key[0] == device_id]
        for cell in cells:
            cell.clear()

    def items(self, metric: str) -> list[tuple[str, int]]:
        """(device id, value) for every device with a committed value."""
        with self._lock:
            keys = [key for key in self._cells if key[1] == metric]
        result: list[tuple[str, int]] = []
        for device_id, name in keys:
            value = self.get(device_id, name)
            if value is not None:
                result.append((device_id, value))
        return result

    def _cell(self, device_id: str, metric: str) -> ObservedValue:
        key = (device_id, metric)
        cell = self._cells.get(key)
        if cell is None:
            with self._lock:
                cell = self._cells.setdefault(key, ObservedValue())
        return cell

    def __len__(self) -> int:
        return len(self._cells)
