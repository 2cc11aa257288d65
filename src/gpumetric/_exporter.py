"""OTLP gRPC exporter — converts DataPoint batches to protobuf and ships them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import grpc
from opentelemetry.proto.collector.metrics.v1.metrics_service_pb2 import (
    ExportMetricsServiceRequest,
)
from opentelemetry.proto.collector.metrics.v1.metrics_service_pb2_grpc import (
    MetricsServiceStub,
)
from opentelemetry.proto.common.v1.common_pb2 import (
    AnyValue,
    InstrumentationScope,
    KeyValue,
)
from opentelemetry.proto.metrics.v1.metrics_pb2 import (
    Gauge,
    Metric,
    NumberDataPoint,
    ResourceMetrics,
    ScopeMetrics,
)
from opentelemetry.proto.resource.v1.resource_pb2 import Resource

if TYPE_CHECKING:
    from gpumetric._types import DataPoint

logger = logging.getLogger("gpumetric.exporter")

DEVICE_ATTRIBUTE = "device"
SCOPE_NAME = "gpumetric/basic"
SDK_VERSION = "0.1.0"


def _make_attribute(key: str, value: str | int | float | bool) -> KeyValue:
    """Convert a Python key-value pair to an OTLP KeyValue protobuf."""
    if isinstance(value, bool):
        av = AnyValue(bool_value=value)
    elif isinstance(value, int):
        av = AnyValue(int_value=value)
    elif isinstance(value, float):
        av = AnyValue(double_value=value)
    else:
        av = AnyValue(string_value=str(value))
    return KeyValue(key=key, value=av)


def _data_point_to_otlp(dp: DataPoint) -> NumberDataPoint:
    """Convert a single DataPoint to an integer OTLP NumberDataPoint."""
    return NumberDataPoint(
        attributes=[_make_attribute(DEVICE_ATTRIBUTE, dp.device_id)],
        time_unix_nano=dp.time_ns,
        as_int=dp.value,
    )


def _group_metrics(points: list[DataPoint]) -> list[Metric]:
    """One gauge Metric per metric name, in first-seen order."""
    metrics: dict[str, Metric] = {}
    for dp in points:
        metric = metrics.get(dp.name)
        if metric is None:
            metric = Metric(
                name=dp.name,
                description=dp.description,
                unit=dp.unit,
                gauge=Gauge(),
            )
            metrics[dp.name] = metric
        metric.gauge.data_points.append(_data_point_to_otlp(dp))
    return list(metrics.values())


def _build_export_request(
    points: list[DataPoint],
    service_name: str,
    environment: str,
) -> ExportMetricsServiceRequest:
    """Build an ExportMetricsServiceRequest from a batch of DataPoints."""
    resource_attrs = [
        _make_attribute("service.name", service_name),
        _make_attribute("deployment.environment", environment),
        _make_attribute("telemetry.sdk.name", "gpumetric"),
        _make_attribute("telemetry.sdk.version", SDK_VERSION),
    ]

    resource = Resource(attributes=resource_attrs)
    scope = InstrumentationScope(name=SCOPE_NAME, version=SDK_VERSION)

    scope_metrics = ScopeMetrics(scope=scope, metrics=_group_metrics(points))
    resource_metrics = ResourceMetrics(resource=resource, scope_metrics=[scope_metrics])

    return ExportMetricsServiceRequest(resource_metrics=[resource_metrics])


class OTLPMetricExporter:
    """Exports DataPoint batches over gRPC using the OTLP metrics protocol.

    Designed as the handler of an ExportController. Transport failures are
    logged but never raised; retrying is left to the next flush.
    """

    def __init__(
        self,
        endpoint: str,
        service_name: str,
        environment: str,
        *,
        insecure: bool = True,
        timeout_s: float = 10.0,
        api_key: str | None = None,
    ) -> None:
        self._service_name = service_name
        self._environment = environment
        self._timeout_s = timeout_s
        self._metadata: list[tuple[str, str]] | None = None
        if api_key is not None:
            self._metadata = [("authorization", f"Bearer {api_key}")]

        if insecure:
            self._channel = grpc.insecure_channel(endpoint)
        else:
            self._channel = grpc.secure_channel(endpoint, grpc.ssl_channel_credentials())

        self._stub = MetricsServiceStub(self._channel)  # type: ignore[no-untyped-call]

    def export(self, points: list[DataPoint]) -> None:
        """Export a batch of data points. Logs and swallows all errors."""
        if not points:
            return
        try:
            request = _build_export_request(
                points, self._service_name, self._environment
            )
            self._stub.Export(request, timeout=self._timeout_s, metadata=self._metadata)
        except Exception:  # noqa: BLE001
            logger.debug("Failed to export %d data points", len(points), exc_info=True)

    def shutdown(self) -> None:
        """Close the gRPC channel."""
        try:
            self._channel.close()
        except Exception:  # noqa: BLE001
            logger.debug("Failed to close exporter channel", exc_info=True)
