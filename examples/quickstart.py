"""gpumetric Quick Start — export GPU telemetry to a local OTLP collector."""

import time

import gpumetric

# 1. Start scraping every 5s and exporting every 60s
gpumetric.init(
    endpoint="localhost:4317",
    service_name="gpu-node-exporter",
    scrape_interval_ms=5000,
    flush_interval_ms=60_000,
    metrics=("gpu/temperature", "gpu/power_usage", "gpu/utilization"),
)

# 2. Let it run
try:
    while True:
        time.sleep(1)
except KeyboardInterrupt:
    pass

# 3. Shutdown (stops scraping, releases the driver, flushes remaining points)
gpumetric.shutdown()
