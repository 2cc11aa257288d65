"""Agent singleton — orchestrates driver, export pipeline and scheduler lifecycle."""

from __future__ import annotations

import atexit
import logging

from gpumetric._buffer import PointBuffer
from gpumetric._catalog import select
from gpumetric._config import GPUMetricConfig
from gpumetric._controller import ExportController, ExportHandler
from gpumetric._driver import DeviceDriver, MockDriver
from gpumetric._errors import DriverInitError
from gpumetric._exporter import OTLPMetricExporter
from gpumetric._registry import DeviceRegistry
from gpumetric._scheduler import ScrapeScheduler
from gpumetric._sink import create_sink
from gpumetric._store import ObservedValueStore
from gpumetric._types import MetricDescriptor, SchedulerState, SinkKind

logger = logging.getLogger("gpumetric.agent")

_agent_instance: GPUMetricAgent | None = None
_atexit_registered = False


def create_driver(name: str = "nvml") -> DeviceDriver:
    """Factory: build a driver by name ("nvml" or "mock")."""
    if name == "mock":
        return MockDriver()
    if name != "nvml":
        raise ValueError(f"unknown driver: {name!r}")
    from gpumetric._driver_nvml import NvmlDriver

    try:
        return NvmlDriver()
    except RuntimeError as exc:
        raise DriverInitError(str(exc)) from exc


class GPUMetricAgent:
    """Wires the device registry, export pipeline and scrape scheduler.

    Startup order is driver, then export pipeline, then scheduler; any
    failure propagates to the caller. Shutdown runs in reverse.
    """

    def __init__(
        self,
        config: GPUMetricConfig,
        *,
        driver: DeviceDriver | None = None,
        handler: ExportHandler | None = None,
    ) -> None:
        self.config = config
        self._driver = driver
        self._handler = handler
        self.registry: DeviceRegistry | None = None
        self.store: ObservedValueStore | None = None
        self.controller: ExportController | None = None
        self.scheduler: ScrapeScheduler | None = None
        self._exporter: OTLPMetricExporter | None = None

    def start(self) -> None:
        """Bring up driver, export pipeline and scheduler, in that order.

        On failure, whatever was already started is shut down before the
        error propagates.
        """
        config = self.config
        descriptors = select(config.metrics)

        driver = self._driver if self._driver is not None else create_driver()
        registry = DeviceRegistry(driver)
        registry.init()
        self.registry = registry
        try:
            self._start_pipeline(descriptors)
        except Exception:
            try:
                self.shutdown()
            except Exception:  # noqa: BLE001
                logger.warning("cleanup after failed start also failed", exc_info=True)
            raise
        logger.info("exporting to %s as %s", config.endpoint, config.service_name)

    def _start_pipeline(self, descriptors: tuple[MetricDescriptor, ...]) -> None:
        config = self.config
        assert self.registry is not None
        self.registry.enumerate()

        handler = self._handler
        if handler is None:
            self._exporter = OTLPMetricExporter(
                endpoint=config.endpoint,
                service_name=config.service_name,
                environment=config.environment,
                insecure=config.insecure,
                timeout_s=config.export_timeout_s,
                api_key=config.api_key,
            )
            handler = self._exporter.export
        self.controller = ExportController(
            PointBuffer(config.buffer_size),
            batch_size=config.batch_size,
            flush_interval_ms=config.flush_interval_ms,
            handler=handler,
        )
        self.controller.start()

        self.store = ObservedValueStore()
        sink = create_sink(config.sink, self.store, self.controller)
        self.scheduler = ScrapeScheduler(
            self.registry,
            sink,
            store=self.store if config.sink is SinkKind.OBSERVER else None,
            descriptors=descriptors,
            scrape_interval_ms=config.scrape_interval_ms,
        )
        self.scheduler.start()

    def shutdown(self) -> None:
        """Stop the scheduler (and driver), then flush and close the pipeline."""
        try:
            if self.scheduler is not None:
                if self.scheduler.state in (SchedulerState.IDLE, SchedulerState.RUNNING):
                    self.scheduler.stop()
            elif self.registry is not None:
                self.registry.shutdown()
        finally:
            self.scheduler = None
            self.registry = None
            if self.controller is not None:
                self.controller.stop()
                self.controller = None
            if self._exporter is not None:
                self._exporter.shutdown()
                self._exporter = None


def init(
    *,
    endpoint: str = "localhost:4317",
    service_name: str = "gpumetric",
    environment: str = "development",
    sink: SinkKind = SinkKind.OBSERVER,
    scrape_interval_ms: int = 20_000,
    flush_interval_ms: int = 2000,
    insecure: bool = True,
    api_key: str | None = None,
    metrics: tuple[str, ...] | None = None,
    driver: DeviceDriver | None = None,
) -> GPUMetricAgent:
    """Start scraping and exporting GPU metrics in background threads.

    Calling init() again shuts the previous agent down first.
    """
    global _agent_instance, _atexit_registered  # noqa: PLW0603

    if _agent_instance is not None:
        _agent_instance.shutdown()
        _agent_instance = None

    config = GPUMetricConfig(
        endpoint=endpoint,
        service_name=service_name,
        environment=environment,
        sink=sink,
        scrape_interval_ms=scrape_interval_ms,
        flush_interval_ms=flush_interval_ms,
        insecure=insecure,
        api_key=api_key,
        metrics=metrics,
    )
    agent = GPUMetricAgent(config, driver=driver)
    agent.start()
    _agent_instance = agent
    if not _atexit_registered:
        atexit.register(shutdown)
        _atexit_registered = True
    return agent


def shutdown() -> None:
    """Shut down the agent, flushing any remaining data points."""
    global _agent_instance  # noqa: PLW0603
    if _agent_instance is not None:
        agent = _agent_instance
        _agent_instance = None
        agent.shutdown()
