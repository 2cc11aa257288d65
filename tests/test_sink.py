"""Tests for the observer and direct-record metric sinks."""

from __future__ import annotations

import pytest

from gpumetric._buffer import PointBuffer
from gpumetric._catalog import CATALOG, select
from gpumetric._controller import ExportController
from gpumetric._sink import DirectRecordSink, MetricSink, ObserverSink, create_sink
from gpumetric._store import ObservedValueStore
from gpumetric._types import DataPoint, SinkKind

TEMPERATURE, POWER = select(["gpu/temperature", "gpu/power_usage"])


def _controller(received: list[DataPoint]) -> ExportController:
    return ExportController(PointBuffer(maxsize=100), handler=received.extend)


class TestCreateSink:
    def test_observer(self) -> None:
        sink = create_sink(SinkKind.OBSERVER, ObservedValueStore(), _controller([]))
        assert isinstance(sink, ObserverSink)
        assert isinstance(sink, MetricSink)

    def test_direct(self) -> None:
        sink = create_sink(SinkKind.DIRECT, ObservedValueStore(), _controller([]))
        assert isinstance(sink, DirectRecordSink)
        assert isinstance(sink, MetricSink)


class TestObserverSink:
    def test_record_writes_store_without_emitting(self) -> None:
        received: list[DataPoint] = []
        store = ObservedValueStore()
        sink = ObserverSink(store, _controller(received))
        sink.register([TEMPERATURE])

        sink.record("A", TEMPERATURE, 65)

        assert store.get("A", "gpu/temperature") == 65
        assert received == []

    def test_flush_emits_one_point_per_device(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = ObserverSink(ObservedValueStore(), ctrl)
        sink.register([TEMPERATURE, POWER])

        sink.record("A", TEMPERATURE, 65)
        sink.record("B", TEMPERATURE, 70)
        sink.record("A", POWER, 250_000)
        ctrl.flush()

        got = {(p.name, p.device_id, p.value, p.unit) for p in received}
        assert got == {
            ("gpu/temperature", "A", 65, "C"),
            ("gpu/temperature", "B", 70, "C"),
            ("gpu/power_usage", "A", 250_000, "mW"),
        }

    def test_flush_reports_latest_value_not_aggregate(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = ObserverSink(ObservedValueStore(), ctrl)
        sink.register([TEMPERATURE])
        for v in (60, 61, 62):
            sink.record("A", TEMPERATURE, v)
        ctrl.flush()

        assert [p.value for p in received] == [62]

    def test_nothing_recorded_emits_nothing(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        store = ObservedValueStore()
        store.prepare(["A", "B"], ["gpu/temperature"])
        ObserverSink(store, ctrl).register([TEMPERATURE])
        ctrl.flush()
        assert received == []

    def test_register_is_idempotent(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = ObserverSink(ObservedValueStore(), ctrl)
        sink.register([TEMPERATURE])
        sink.register([TEMPERATURE])
        sink.record("A", TEMPERATURE, 65)
        ctrl.flush()
        assert len(received) == 1
        assert sink.descriptors == [TEMPERATURE]

    def test_discard_drops_device_from_next_flush(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = ObserverSink(ObservedValueStore(), ctrl)
        sink.register([TEMPERATURE])
        sink.record("A", TEMPERATURE, 65)
        sink.record("B", TEMPERATURE, 66)

        sink.discard("B")
        ctrl.flush()

        assert [(p.device_id, p.value) for p in received] == [("A", 65)]

    def test_unregistered_metric_rejected(self) -> None:
        sink = ObserverSink(ObservedValueStore(), _controller([]))
        sink.register([TEMPERATURE])
        with pytest.raises(ValueError):
            sink.record("A", POWER, 1)


class TestDirectRecordSink:
    def test_record_enqueues_point(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = DirectRecordSink(ctrl)
        sink.register(CATALOG)

        sink.record("A", TEMPERATURE, 65)
        assert received == []
        ctrl.flush()

        assert len(received) == 1
        dp = received[0]
        assert (dp.name, dp.unit, dp.device_id, dp.value) == ("gpu/temperature", "C", "A", 65)
        assert dp.description == "GPU temperature"
        assert dp.time_ns > 0

    def test_every_record_is_emitted(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = DirectRecordSink(ctrl)
        sink.register([TEMPERATURE])
        for v in (60, 61, 62):
            sink.record("A", TEMPERATURE, v)
        ctrl.flush()
        assert [p.value for p in received] == [60, 61, 62]

    def test_unregistered_metric_rejected(self) -> None:
        sink = DirectRecordSink(_controller([]))
        with pytest.raises(ValueError):
            sink.record("A", TEMPERATURE, 65)

    def test_discard_keeps_queued_points(self) -> None:
        received: list[DataPoint] = []
        ctrl = _controller(received)
        sink = DirectRecordSink(ctrl)
        sink.register([TEMPERATURE])
        sink.record("B", TEMPERATURE, 66)

        sink.discard("B")
        ctrl.flush()

        assert [p.device_id for p in received] == ["B"]
