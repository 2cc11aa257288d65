#!/usr/bin/env python3
"""Scrape and export hot-path benchmark.

Measures the cost of:
  1. ObservedValueStore.set / get (per-cell readers/writer lock)
  2. One scheduler tick over mock devices (observer sink)
  3. One observer flush over mock devices

Usage:
    python benchmarks/bench_overhead.py
"""

from __future__ import annotations

import time

from gpumetric._buffer import PointBuffer
from gpumetric._catalog import CATALOG
from gpumetric._controller import ExportController
from gpumetric._driver import MockDriver
from gpumetric._registry import DeviceRegistry
from gpumetric._scheduler import ScrapeScheduler
from gpumetric._sink import ObserverSink
from gpumetric._store import ObservedValueStore


def bench_store_set(iterations: int = 500_000) -> float:
    """Benchmark: one cell write under its exclusive lock."""
    store = ObservedValueStore()
    store.prepare(["GPU-0000"], ["gpu/temperature"])

    # Warmup
    for i in range(5000):
        store.set("GPU-0000", "gpu/temperature", i)

    start = time.perf_counter_ns()
    for i in range(iterations):
        store.set("GPU-0000", "gpu/temperature", i)
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def bench_store_get(iterations: int = 500_000) -> float:
    """Benchmark: one cell read under its shared lock."""
    store = ObservedValueStore()
    store.set("GPU-0000", "gpu/temperature", 65)

    for _ in range(5000):
        store.get("GPU-0000", "gpu/temperature")

    start = time.perf_counter_ns()
    for _ in range(iterations):
        store.get("GPU-0000", "gpu/temperature")
    elapsed = time.perf_counter_ns() - start

    return elapsed / iterations


def _observer_setup(num_devices: int) -> tuple[ScrapeScheduler, ExportController]:
    registry = DeviceRegistry(MockDriver(num_devices=num_devices))
    registry.init()
    registry.enumerate()
    store = ObservedValueStore()
    ctrl = ExportController(PointBuffer(maxsize=1024))
    scheduler = ScrapeScheduler(
        registry, ObserverSink(store, ctrl), store=store, scrape_interval_ms=3_600_000
    )
    scheduler.start()
    return scheduler, ctrl


def bench_tick(iterations: int = 10_000, num_devices: int = 8) -> float:
    """Benchmark: one full tick (all catalog metrics, mock driver)."""
    scheduler, _ = _observer_setup(num_devices)
    try:
        for _ in range(100):
            scheduler.tick()

        start = time.perf_counter_ns()
        for _ in range(iterations):
            scheduler.tick()
        elapsed = time.perf_counter_ns() - start
    finally:
        scheduler.stop()

    return elapsed / iterations


def bench_flush(iterations: int = 10_000, num_devices: int = 8) -> float:
    """Benchmark: one observer flush (collect every metric for every device)."""
    scheduler, ctrl = _observer_setup(num_devices)
    try:
        scheduler.tick()
        for _ in range(100):
            ctrl.flush()

        start = time.perf_counter_ns()
        for _ in range(iterations):
            ctrl.flush()
        elapsed = time.perf_counter_ns() - start
    finally:
        scheduler.stop()

    return elapsed / iterations


def main() -> None:
    print("=" * 60)
    print("gpumetric Scrape/Export Overhead Benchmark")
    print("=" * 60)

    results: list[tuple[str, float, str]] = []

    ns = bench_store_set()
    status = "PASS" if ns < 2000 else "WARN" if ns < 5000 else "FAIL"
    results.append(("Store set", ns, f"{status} (target < 2μs)"))

    ns = bench_store_get()
    status = "PASS" if ns < 2000 else "WARN" if ns < 5000 else "FAIL"
    results.append(("Store get", ns, f"{status} (target < 2μs)"))

    ns = bench_tick()
    status = "PASS" if ns < 500_000 else "WARN" if ns < 1_000_000 else "FAIL"
    results.append((f"Tick (8 devices x {len(CATALOG)} metrics)", ns, f"{status} (target < 500μs)"))

    ns = bench_flush()
    status = "PASS" if ns < 500_000 else "WARN" if ns < 1_000_000 else "FAIL"
    results.append(("Observer flush (8 devices)", ns, f"{status} (target < 500μs)"))

    print()
    for name, ns_val, note in results:
        if ns_val >= 1000:
            display = f"{ns_val / 1000:.2f}μs"
        else:
            display = f"{ns_val:.0f}ns"
        print(f"  {name:40s}  {display:>10s}   {note}")

    print()
    all_pass = all("PASS" in r[2] or "WARN" in r[2] for r in results)
    if all_pass:
        print("All benchmarks within acceptable range.")
    else:
        print("WARNING: Some benchmarks exceeded target. Review above.")


if __name__ == "__main__":
    main()
