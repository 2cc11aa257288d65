"""
gpumetric command line.

Commands:
- run: scrape GPUs and export metrics until interrupted
- devices: list enumerated devices with a status snapshot
"""

from __future__ import annotations

import logging
import signal
import threading
from dataclasses import fields

import typer

from gpumetric._agent import GPUMetricAgent, create_driver
from gpumetric._catalog import metric_names
from gpumetric._config import GPUMetricConfig
from gpumetric._errors import DeviceQueryError, GPUMetricError
from gpumetric._registry import DeviceRegistry
from gpumetric._types import DeviceStatus, SinkKind

logger = logging.getLogger("gpumetric.cli")

app = typer.Typer(
    help="Scrape GPU hardware telemetry and export it as OTLP metrics.",
    no_args_is_help=True,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("run")
def run(
    endpoint: str = typer.Option(
        "localhost:4317",
        "--endpoint",
        "-e",
        envvar="GPUMETRIC_ENDPOINT",
        help="OTLP gRPC collector address",
    ),
    service_name: str = typer.Option(
        "gpumetric", "--service-name", envvar="GPUMETRIC_SERVICE_NAME"
    ),
    environment: str = typer.Option(
        "development", "--environment", envvar="GPUMETRIC_ENVIRONMENT"
    ),
    secure: bool = typer.Option(
        False, "--secure", help="Use TLS for the collector connection"
    ),
    api_key: str = typer.Option(None, "--api-key", envvar="GPUMETRIC_API_KEY"),
    sink: SinkKind = typer.Option(
        SinkKind.OBSERVER,
        "--sink",
        case_sensitive=False,
        help="Emission model: observer (read at export time) or direct (push at scrape time)",
    ),
    scrape_interval_ms: int = typer.Option(
        20_000, "--scrape-interval-ms", envvar="GPUMETRIC_SCRAPE_INTERVAL_MS"
    ),
    flush_interval_ms: int = typer.Option(
        2000, "--flush-interval-ms", envvar="GPUMETRIC_FLUSH_INTERVAL_MS"
    ),
    metric: list[str] = typer.Option(
        None,
        "--metric",
        "-m",
        help="Metric to export (repeatable, default: all)",
    ),
    driver: str = typer.Option("nvml", "--driver", help="Device driver: nvml or mock"),
    duration: float = typer.Option(
        0.0, "--duration", help="Stop after this many seconds (default: run until signalled)"
    ),
    log_level: str = typer.Option("info", "--log-level", envvar="GPUMETRIC_LOG_LEVEL"),
) -> None:
    """Scrape GPUs and export metrics until SIGINT or SIGTERM.

    Examples:
        gpumetric run                                   # Local collector, all metrics
        gpumetric run -e otel:4317 --secure             # TLS collector
        gpumetric run --sink direct -m gpu/temperature  # Push one metric per scrape
        gpumetric run --driver mock --duration 30       # Dry run without GPUs
    """
    _configure_logging(log_level)

    try:
        config = GPUMetricConfig(
            endpoint=endpoint,
            service_name=service_name,
            environment=environment,
            insecure=not secure,
            api_key=api_key,
            sink=sink,
            scrape_interval_ms=scrape_interval_ms,
            flush_interval_ms=flush_interval_ms,
            metrics=tuple(metric) if metric else None,
        )
        agent = GPUMetricAgent(config, driver=create_driver(driver))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except GPUMetricError as exc:
        logger.error("failed to create driver: %s", exc)
        raise typer.Exit(code=1) from exc

    logger.info("starting GPU metrics server")
    try:
        agent.start()
    except GPUMetricError as exc:
        logger.error("failed to start: %s", exc)
        raise typer.Exit(code=1) from exc

    stop = threading.Event()

    def _on_signal(signum: int, frame: object) -> None:
        logger.info("received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    previous: dict[int, object] = {}
    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, _on_signal)

    try:
        stop.wait(timeout=duration if duration > 0 else None)
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)  # type: ignore[arg-type]

    try:
        agent.shutdown()
    except GPUMetricError as exc:
        logger.error("failed to shut down: %s", exc)
        raise typer.Exit(code=1) from exc


@app.command("devices")
def devices(
    driver: str = typer.Option("nvml", "--driver", help="Device driver: nvml or mock"),
    log_level: str = typer.Option("warning", "--log-level"),
) -> None:
    """List devices and their current status."""
    _configure_logging(log_level)

    try:
        registry = DeviceRegistry(create_driver(driver))
        registry.init()
        found = registry.enumerate()
    except GPUMetricError as exc:
        logger.error("%s", exc)
        raise typer.Exit(code=1) from exc

    try:
        for device in found:
            typer.echo(f"[{device.index}] {device.uuid}  {device.name}")
            try:
                status = registry.snapshot(device.uuid)
            except DeviceQueryError as exc:
                typer.echo(f"    unavailable: {exc}")
                continue
            for f in fields(DeviceStatus):
                value = getattr(status, f.name)
                typer.echo(f"    {f.name:<20} {'n/a' if value is None else value}")
    finally:
        try:
            registry.shutdown()
        except GPUMetricError as exc:
            logger.error("%s", exc)
            raise typer.Exit(code=1) from exc


@app.command("metrics")
def metrics() -> None:
    """List exportable metric names."""
    for name in metric_names():
        typer.echo(name)


def main() -> None:
    app()
