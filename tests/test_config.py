"""Tests for _config module."""

import pytest

from gpumetric._config import GPUMetricConfig
from gpumetric._types import SinkKind


def test_config_defaults() -> None:
    cfg = GPUMetricConfig()
    assert cfg.endpoint == "localhost:4317"
    assert cfg.service_name == "gpumetric"
    assert cfg.environment == "development"
    assert cfg.insecure is True
    assert cfg.api_key is None
    assert cfg.sink is SinkKind.OBSERVER
    assert cfg.scrape_interval_ms == 20_000
    assert cfg.flush_interval_ms == 2000
    assert cfg.batch_size == 512
    assert cfg.buffer_size == 8192
    assert cfg.metrics is None


def test_config_custom_values() -> None:
    cfg = GPUMetricConfig(
        endpoint="collector:4317",
        insecure=False,
        sink=SinkKind.DIRECT,
        scrape_interval_ms=5000,
        flush_interval_ms=60_000,
        metrics=("gpu/temperature", "gpu/power_usage"),
    )
    assert cfg.insecure is False
    assert cfg.sink is SinkKind.DIRECT
    assert cfg.scrape_interval_ms == 5000
    assert cfg.metrics == ("gpu/temperature", "gpu/power_usage")


def test_config_is_frozen() -> None:
    cfg = GPUMetricConfig()
    with pytest.raises(AttributeError):
        cfg.endpoint = "changed"  # type: ignore[misc]


@pytest.mark.parametrize(
    "field", ["scrape_interval_ms", "flush_interval_ms", "batch_size", "buffer_size"]
)
def test_non_positive_values_rejected(field: str) -> None:
    with pytest.raises(ValueError, match=field):
        GPUMetricConfig(**{field: 0})  # type: ignore[arg-type]


def test_unknown_metric_rejected() -> None:
    with pytest.raises(ValueError, match="gpu/fan_speed"):
        GPUMetricConfig(metrics=("gpu/fan_speed",))
