"""Metric sinks — the two emission models behind one protocol.

``ObserverSink`` stores sampled values and lets the export controller pull
them at flush time. ``DirectRecordSink`` pushes a data point to the
controller for every sampled value at scrape time. Neither converts units
or aggregates: values pass through as the driver reported them.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gpumetric._types import DataPoint, MetricDescriptor, SinkKind

if TYPE_CHECKING:
    from gpumetric._controller import ExportController
    from gpumetric._store import ObservedValueStore


@runtime_checkable
class MetricSink(Protocol):
    """Receives sampled values from the scrape scheduler."""

    kind: SinkKind

    def register(self, descriptors: Sequence[MetricDescriptor]) -> None: ...

    def record(self, device_id: str, descriptor: MetricDescriptor, value: int) -> None: ...

    def discard(self, device_id: str) -> None: ...


class _BaseSink:
    kind: SinkKind

    def __init__(self) -> None:
        self._descriptors: dict[str, MetricDescriptor] = {}

    @property
    def descriptors(self) -> list[MetricDescriptor]:
        return list(self._descriptors.values())

    def discard(self, device_id: str) -> None:
        """Forget what was recorded for a device whose query failed."""

    def _check_registered(self, descriptor: MetricDescriptor) -> None:
        if self._descriptors.get(descriptor.name) != descriptor:
            raise ValueError(f"metric {descriptor.name!r} is not registered")


class ObserverSink(_BaseSink):
    """Pull model: values land in the store, observers read them at flush."""

    kind = SinkKind.OBSERVER

    def __init__(self, store: ObservedValueStore, controller: ExportController) -> None:
        super().__init__()
        self._store = store
        self._controller = controller

    def register(self, descriptors: Sequence[MetricDescriptor]) -> None:
        for descriptor in descriptors:
            if descriptor.name in self._descriptors:
                continue
            self._descriptors[descriptor.name] = descriptor
            self._controller.register_callback(self._observer(descriptor))

    def record(self, device_id: str, descriptor: MetricDescriptor, value: int) -> None:
        self._check_registered(descriptor)
        self._store.set(device_id, descriptor.name, value)

    def discard(self, device_id: str) -> None:
        self._store.clear_device(device_id)

    def observe(self, descriptor: MetricDescriptor) -> list[DataPoint]:
        """One data point per device holding a value for ``descriptor``."""
        now = time.time_ns()
        return [
            DataPoint(
                name=descriptor.name,
                unit=descriptor.unit,
                description=descriptor.description,
                device_id=device_id,
                value=value,
                time_ns=now,
            )
            for device_id, value in self._store.items(descriptor.name)
        ]

    def _observer(self, descriptor: MetricDescriptor) -> Callable[[], list[DataPoint]]:
        def callback() -> list[DataPoint]:
            return self.observe(descriptor)

        return callback


class DirectRecordSink(_BaseSink):
    """Push model: every sampled value is handed to the controller at once."""

    kind = SinkKind.DIRECT

    def __init__(self, controller: ExportController) -> None:
        super().__init__()
        self._controller = controller

    def register(self, descriptors: Sequence[MetricDescriptor]) -> None:
        for descriptor in descriptors:
            self._descriptors.setdefault(descriptor.name, descriptor)

    def record(self, device_id: str, descriptor: MetricDescriptor, value: int) -> None:
        self._check_registered(descriptor)
        self._controller.enqueue(DataPoint(
            name=descriptor.name,
            unit=descriptor.unit,
            description=descriptor.description,
            device_id=device_id,
            value=value,
            time_ns=time.time_ns(),
        ))


def create_sink(
    kind: SinkKind,
    store: ObservedValueStore,
    controller: ExportController,
) -> ObserverSink | DirectRecordSink:
    """Factory: build the sink for the configured emission model."""
    if kind is SinkKind.OBSERVER:
        return ObserverSink(store, controller)
    return DirectRecordSink(controller)
