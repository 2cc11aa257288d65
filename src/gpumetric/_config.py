"""Agent configuration."""

from __future__ import annotations

from dataclasses import dataclass

from gpumetric._catalog import select
from gpumetric._types import SinkKind


@dataclass(frozen=True)
class GPUMetricConfig:
    """Immutable agent configuration."""

    endpoint: str = "localhost:4317"
    service_name: str = "gpumetric"
    environment: str = "development"
    insecure: bool = True
    api_key: str | None = None
    sink: SinkKind = SinkKind.OBSERVER
    scrape_interval_ms: int = 20_000
    flush_interval_ms: int = 2000
    batch_size: int = 512
    buffer_size: int = 8192
    export_timeout_s: float = 10.0
    metrics: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        for name in ("scrape_interval_ms", "flush_interval_ms", "batch_size", "buffer_size"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.export_timeout_s <= 0:
            raise ValueError("export_timeout_s must be positive")
        # Fail fast on unknown metric names.
        select(self.metrics)
