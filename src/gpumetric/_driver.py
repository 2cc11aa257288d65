"""Device driver protocol and an in-process mock driver."""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol, runtime_checkable

from gpumetric._types import Device, DeviceStatus


@runtime_checkable
class DeviceDriver(Protocol):
    """Structural protocol for accelerator driver bindings.

    Implementations raise whatever their native binding raises; the
    registry translates failures into the gpumetric error taxonomy.
    """

    vendor: str

    def init(self) -> None: ...

    def count(self) -> int: ...

    def open_device(self, index: int) -> Device: ...

    def status(self, device: Device) -> DeviceStatus: ...

    def shutdown(self) -> None: ...


def _default_status(i: int) -> DeviceStatus:
    return DeviceStatus(
        temperature=65 + i,
        power_usage=250_000 + i * 10_000,
        memory_used=40_960 + i * 1024,
        memory_free=40_960 - i * 1024,
        gpu_utilization=85 + i,
        memory_utilization=40 + i,
        decoder_utilization=0,
        encoder_utilization=0,
        pcie_rx=1_048_576 * (i + 1),
        pcie_tx=524_288 * (i + 1),
        bar1_used=2 + i,
    )


class MockDriver:
    """Driver that simulates devices without hardware.

    Statuses are fixed until changed with ``set_status``; ``fail`` makes a
    device raise on every status query until ``recover`` is called.
    """

    vendor = "Mock"

    def __init__(
        self,
        *,
        num_devices: int = 2,
        uuids: list[str] | None = None,
        fail_init: bool = False,
        fail_count: bool = False,
        fail_shutdown: bool = False,
    ) -> None:
        self.uuids = uuids if uuids is not None else [f"GPU-{i:04d}" for i in range(num_devices)]
        self._statuses: dict[str, DeviceStatus] = {
            uuid: _default_status(i) for i, uuid in enumerate(self.uuids)
        }
        self._failing: set[str] = set()
        self._fail_init = fail_init
        self._fail_count = fail_count
        self._fail_shutdown = fail_shutdown

        self.initialized = False
        self.shutdown_calls = 0
        self.status_calls: list[str] = []

    def init(self) -> None:
        if self._fail_init:
            raise RuntimeError("mock driver unavailable")
        self.initialized = True

    def count(self) -> int:
        self._check_initialized()
        if self._fail_count:
            raise RuntimeError("mock device count failed")
        return len(self.uuids)

    def open_device(self, index: int) -> Device:
        self._check_initialized()
        uuid = self.uuids[index]
        return Device(uuid=uuid, index=index, name="Mock GPU 80GB", handle=index)

    def status(self, device: Device) -> DeviceStatus:
        self._check_initialized()
        self.status_calls.append(device.uuid)
        if device.uuid in self._failing:
            raise RuntimeError(f"device {device.uuid} is lost")
        return self._statuses[device.uuid]

    def shutdown(self) -> None:
        self.shutdown_calls += 1
        if self._fail_shutdown:
            raise RuntimeError("mock driver shutdown failed")
        self.initialized = False

    def set_status(self, uuid: str, status: DeviceStatus | None = None, **fields: int | None) -> None:
        """Replace a device status, or update individual fields of it."""
        base = status if status is not None else self._statuses[uuid]
        self._statuses[uuid] = replace(base, **fields)

    def fail(self, uuid: str) -> None:
        self._failing.add(uuid)

    def recover(self, uuid: str) -> None:
        self._failing.discard(uuid)

    def _check_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("mock driver is not initialized")
