"""Exception hierarchy for driver and scheduler failures."""

from __future__ import annotations


class GPUMetricError(Exception):
    """Base class for all gpumetric errors."""


class DriverInitError(GPUMetricError):
    """The device driver could not be initialized. Fatal."""


class EnumerationError(GPUMetricError):
    """Devices could not be counted or opened. Fatal at startup."""


class DeviceQueryError(GPUMetricError):
    """A single device could not be queried. Recoverable for the next tick."""

    def __init__(self, device_id: str, message: str) -> None:
        super().__init__(f"{device_id}: {message}")
        self.device_id = device_id


class DriverShutdownError(GPUMetricError):
    """The driver failed to release its resources. Fatal."""


class SchedulerStateError(GPUMetricError):
    """An illegal scheduler lifecycle transition was requested."""
