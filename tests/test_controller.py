"""Tests for _controller module."""

import logging
import time

import pytest

from gpumetric._buffer import PointBuffer
from gpumetric._controller import ExportController
from gpumetric._types import DataPoint


def _make_point(device_id: str = "GPU-0000", value: int = 65) -> DataPoint:
    return DataPoint(
        name="gpu/temperature",
        unit="C",
        description="GPU temperature",
        device_id=device_id,
        value=value,
        time_ns=0,
    )


def test_start_and_stop() -> None:
    ctrl = ExportController(PointBuffer(maxsize=100), flush_interval_ms=50)
    ctrl.start()
    assert ctrl.is_running
    ctrl.stop()
    assert not ctrl.is_running


def test_handler_called_on_flush() -> None:
    buf = PointBuffer(maxsize=100)
    received: list[DataPoint] = []
    ctrl = ExportController(buf, flush_interval_ms=50, handler=received.extend)

    buf.enqueue(_make_point(value=1))
    buf.enqueue(_make_point(value=2))

    ctrl.start()
    time.sleep(0.2)
    ctrl.stop()

    assert [p.value for p in received] == [1, 2]


def test_final_flush_on_stop() -> None:
    received: list[DataPoint] = []
    ctrl = ExportController(
        PointBuffer(maxsize=100), flush_interval_ms=10000, handler=received.extend
    )
    ctrl.start()
    ctrl.enqueue(_make_point(value=7))
    ctrl.stop()

    assert [p.value for p in received] == [7]


def test_callbacks_invoked_each_flush() -> None:
    received: list[DataPoint] = []
    calls = []

    def observer() -> list[DataPoint]:
        calls.append(1)
        return [_make_point("A", 65), _make_point("B", 70)]

    ctrl = ExportController(PointBuffer(maxsize=10), handler=received.extend)
    ctrl.register_callback(observer)
    ctrl.flush()
    ctrl.flush()

    assert len(calls) == 2
    assert [(p.device_id, p.value) for p in received] == [
        ("A", 65), ("B", 70), ("A", 65), ("B", 70),
    ]


def test_batches_respect_batch_size() -> None:
    batches: list[list[DataPoint]] = []
    ctrl = ExportController(PointBuffer(maxsize=100), batch_size=3, handler=batches.append)
    for i in range(7):
        ctrl.enqueue(_make_point(value=i))
    ctrl.flush()

    assert [len(b) for b in batches] == [3, 3, 1]


def test_empty_flush_does_not_call_handler() -> None:
    batches: list[list[DataPoint]] = []
    ctrl = ExportController(PointBuffer(maxsize=10), handler=batches.append)
    ctrl.flush()
    assert batches == []


def test_handler_exception_does_not_crash() -> None:
    def bad_handler(points: list[DataPoint]) -> None:
        raise RuntimeError("handler exploded")

    ctrl = ExportController(PointBuffer(maxsize=100), flush_interval_ms=50, handler=bad_handler)
    ctrl.enqueue(_make_point())
    ctrl.start()
    time.sleep(0.15)
    ctrl.stop()
    # Should not raise


def test_callback_exception_does_not_block_others() -> None:
    received: list[DataPoint] = []

    def broken() -> list[DataPoint]:
        raise RuntimeError("observer exploded")

    ctrl = ExportController(PointBuffer(maxsize=10), handler=received.extend)
    ctrl.register_callback(broken)
    ctrl.register_callback(lambda: [_make_point()])
    ctrl.flush()

    assert len(received) == 1


def test_thread_is_daemon() -> None:
    ctrl = ExportController(PointBuffer(maxsize=100), flush_interval_ms=50)
    ctrl.start()
    assert ctrl._thread is not None
    assert ctrl._thread.daemon is True
    ctrl.stop()


def test_double_start_is_idempotent() -> None:
    ctrl = ExportController(PointBuffer(maxsize=100), flush_interval_ms=50)
    ctrl.start()
    thread1 = ctrl._thread
    ctrl.start()  # Should not create a second thread
    assert ctrl._thread is thread1
    ctrl.stop()


def test_stop_reports_overflow_per_metric(caplog: pytest.LogCaptureFixture) -> None:
    ctrl = ExportController(PointBuffer(maxsize=1))
    ctrl.enqueue(_make_point(value=1))
    ctrl.enqueue(_make_point(value=2))

    with caplog.at_level(logging.WARNING, logger="gpumetric.controller"):
        ctrl.stop()

    assert "1 gpu/temperature data points dropped" in caplog.text
