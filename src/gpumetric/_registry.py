"""Device registry — owns the driver and the handles of enumerated devices."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from gpumetric._errors import (
    DeviceQueryError,
    DriverInitError,
    DriverShutdownError,
    EnumerationError,
)

if TYPE_CHECKING:
    from gpumetric._driver import DeviceDriver
    from gpumetric._types import Device, DeviceStatus

logger = logging.getLogger("gpumetric.registry")


class DeviceRegistry:
    """Enumerates devices once and serves status snapshots by device UUID.

    Driver failures are translated into the gpumetric error taxonomy:
    init, enumeration and shutdown failures are fatal, per-device query
    failures are recoverable.
    """

    def __init__(self, driver: DeviceDriver) -> None:
        self._driver = driver
        self._devices: dict[str, Device] = {}
        self._initialized = False
        self._closed = False

    @property
    def vendor(self) -> str:
        return self._driver.vendor

    @property
    def devices(self) -> list[Device]:
        """Enumerated devices, in enumeration order."""
        return list(self._devices.values())

    def init(self) -> None:
        try:
            self._driver.init()
        except Exception as exc:
            raise DriverInitError(f"failed to initialize {self.vendor} driver: {exc}") from exc
        self._initialized = True

    def enumerate(self) -> list[Device]:
        if not self._initialized:
            raise EnumerationError("driver is not initialized")
        try:
            count = self._driver.count()
        except Exception as exc:
            raise EnumerationError(f"failed to count devices: {exc}") from exc
        logger.info("found %d %s devices", count, self.vendor)

        devices: dict[str, Device] = {}
        for i in range(count):
            try:
                device = self._driver.open_device(i)
            except Exception as exc:
                raise EnumerationError(f"failed to open device {i}: {exc}") from exc
            devices[device.uuid] = device
            logger.debug("device %d: %s (%s)", i, device.uuid, device.name)
        self._devices = devices
        return self.devices

    def snapshot(self, device_id: str) -> DeviceStatus:
        if self._closed:
            raise DeviceQueryError(device_id, "driver has been shut down")
        device = self._devices.get(device_id)
        if device is None:
            raise DeviceQueryError(device_id, "unknown device")
        try:
            return self._driver.status(device)
        except Exception as exc:
            raise DeviceQueryError(device_id, f"status query failed: {exc}") from exc

    def shutdown(self) -> None:
        self._closed = True
        try:
            self._driver.shutdown()
        except Exception as exc:
            raise DriverShutdownError(f"failed to shut down {self.vendor} driver: {exc}") from exc
        logger.info("%s driver shut down", self.vendor)
