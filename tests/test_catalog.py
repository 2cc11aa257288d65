"""Tests for the metric catalog."""

import dataclasses

import pytest

from gpumetric._catalog import CATALOG, metric_names, select
from gpumetric._types import DeviceStatus


def test_catalog_units() -> None:
    units = {d.name: d.unit for d in CATALOG}
    assert units == {
        "gpu/temperature": "C",
        "gpu/power_usage": "mW",
        "gpu/memory_used": "MiB",
        "gpu/memory_free": "MiB",
        "gpu/utilization": "%",
        "gpu/memory_utilization": "%",
        "gpu/decoder_utilization": "ms",
        "gpu/encoder_utilization": "ms",
        "gpu/pcie_throughput_rx": "bytes",
        "gpu/pcie_throughput_tx": "bytes",
        "gpu/pcie_bar1_used": "count",
    }


def test_every_status_field_has_a_metric() -> None:
    status_fields = {f.name for f in dataclasses.fields(DeviceStatus)}
    assert {d.field for d in CATALOG} == status_fields


def test_select_none_returns_full_catalog() -> None:
    assert select(None) == CATALOG


def test_select_subset_keeps_order_and_dedupes() -> None:
    selected = select(["gpu/power_usage", "gpu/temperature", "gpu/power_usage"])
    assert [d.name for d in selected] == ["gpu/power_usage", "gpu/temperature"]


def test_select_unknown_name() -> None:
    with pytest.raises(ValueError):
        select(["gpu/nope"])


def test_metric_names() -> None:
    assert metric_names()[0] == "gpu/temperature"
    assert len(metric_names()) == 11
