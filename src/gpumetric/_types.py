"""Core types: enums, device status snapshots and emitted data points."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class SinkKind(enum.Enum):
    """Metric emission model, selected once at construction."""

    OBSERVER = "observer"
    DIRECT = "direct"


class SchedulerState(enum.Enum):
    """Lifecycle of the scrape scheduler."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class Device:
    """An accelerator device opened by the driver at enumeration time."""

    uuid: str
    index: int
    name: str
    handle: Any              # driver-specific device handle


@dataclass(frozen=True)
class DeviceStatus:
    """Immutable point-in-time status of one device.

    Every field is optional: drivers leave a field as ``None`` when the
    device or driver version cannot report it.
    """

    temperature: int | None = None          # C
    power_usage: int | None = None          # mW
    memory_used: int | None = None          # MiB
    memory_free: int | None = None          # MiB
    gpu_utilization: int | None = None      # %
    memory_utilization: int | None = None   # %
    decoder_utilization: int | None = None  # NVML utilization percent, exported as "ms"
    encoder_utilization: int | None = None  # NVML utilization percent, exported as "ms"
    pcie_rx: int | None = None              # bytes
    pcie_tx: int | None = None              # bytes
    bar1_used: int | None = None            # NVML bar1Used bytes, exported as "count"


@dataclass(frozen=True)
class MetricDescriptor:
    """Static description of one exported metric."""

    name: str
    unit: str
    description: str
    field: str  # DeviceStatus attribute this metric is read from


@dataclass(frozen=True)
class DataPoint:
    """One emitted (metric, device, value, timestamp) unit."""

    name: str
    unit: str
    description: str
    device_id: str
    value: int
    time_ns: int
