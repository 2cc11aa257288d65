"""gpumetric: GPU hardware telemetry scraper with OTLP metrics export."""

from __future__ import annotations

from gpumetric._agent import GPUMetricAgent, create_driver, init, shutdown
from gpumetric._catalog import CATALOG
from gpumetric._config import GPUMetricConfig
from gpumetric._controller import ExportController
from gpumetric._driver import DeviceDriver, MockDriver
from gpumetric._errors import (
    DeviceQueryError,
    DriverInitError,
    DriverShutdownError,
    EnumerationError,
    GPUMetricError,
    SchedulerStateError,
)
from gpumetric._registry import DeviceRegistry
from gpumetric._scheduler import ScrapeScheduler
from gpumetric._sink import DirectRecordSink, MetricSink, ObserverSink, create_sink
from gpumetric._store import ObservedValueStore
from gpumetric._types import (
    DataPoint,
    Device,
    DeviceStatus,
    MetricDescriptor,
    SchedulerState,
    SinkKind,
)

__version__ = "0.1.0"

__all__ = [
    "CATALOG",
    "DataPoint",
    "Device",
    "DeviceDriver",
    "DeviceQueryError",
    "DeviceRegistry",
    "DeviceStatus",
    "DirectRecordSink",
    "DriverInitError",
    "DriverShutdownError",
    "EnumerationError",
    "ExportController",
    "GPUMetricAgent",
    "GPUMetricConfig",
    "GPUMetricError",
    "MetricDescriptor",
    "MetricSink",
    "MockDriver",
    "ObservedValueStore",
    "ObserverSink",
    "SchedulerState",
    "SchedulerStateError",
    "ScrapeScheduler",
    "SinkKind",
    "__version__",
    "create_driver",
    "create_sink",
    "init",
    "shutdown",
]
