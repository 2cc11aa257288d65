"""Metric catalog: every metric the scraper can export."""

from __future__ import annotations

from collections.abc import Iterable

from gpumetric._types import MetricDescriptor

CATALOG: tuple[MetricDescriptor, ...] = (
    MetricDescriptor("gpu/temperature", "C", "GPU temperature", "temperature"),
    MetricDescriptor("gpu/power_usage", "mW", "GPU power usage", "power_usage"),
    MetricDescriptor("gpu/memory_used", "MiB", "GPU memory used", "memory_used"),
    MetricDescriptor("gpu/memory_free", "MiB", "GPU memory free", "memory_free"),
    MetricDescriptor("gpu/utilization", "%", "GPU utilization", "gpu_utilization"),
    MetricDescriptor(
        "gpu/memory_utilization", "%", "GPU memory utilization", "memory_utilization"
    ),
    MetricDescriptor(
        "gpu/decoder_utilization", "ms", "GPU decoder utilization", "decoder_utilization"
    ),
    MetricDescriptor(
        "gpu/encoder_utilization", "ms", "GPU encoder utilization", "encoder_utilization"
    ),
    MetricDescriptor("gpu/pcie_throughput_rx", "bytes", "PCIe throughput RX", "pcie_rx"),
    MetricDescriptor("gpu/pcie_throughput_tx", "bytes", "PCIe throughput TX", "pcie_tx"),
    MetricDescriptor("gpu/pcie_bar1_used", "count", "PCIe BAR1 used", "bar1_used"),
)

_BY_NAME: dict[str, MetricDescriptor] = {d.name: d for d in CATALOG}


def metric_names() -> list[str]:
    return [d.name for d in CATALOG]


def select(names: Iterable[str] | None = None) -> tuple[MetricDescriptor, ...]:
    """Return catalog descriptors for ``names``, or the full catalog for None.

    Raises ValueError on an unknown metric name.
    """
    if names is None:
        return CATALOG
    selected: list[MetricDescriptor] = []
    for name in names:
        descriptor = _BY_NAME.get(name)
        if descriptor is None:
            raise ValueError(f"unknown metric: {name!r}")
        if descriptor not in selected:
            selected.append(descriptor)
    return tuple(selected)
