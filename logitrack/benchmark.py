"""
Cold-cache vs warm-cache benchmark for a running LogiTrack API.

Usage:
    python -m logitrack.benchmark --base-url http://localhost:8000 --token <admin token>

Each endpoint is measured by clearing the cache, timing the first (cold)
request, then timing N further (warm) requests.  The profiler summary is
read back from the admin endpoints afterwards.  The concurrency benchmark
fires batches of parallel requests at one endpoint.
"""

from __future__ import annotations

import argparse
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import httpx

from logitrack.core.logging import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = (
    "/api/inventory",
    "/api/inventory/summary",
    "/api/order",
)

CLEAR_CACHE_PATH = "/api/inventory/clear-cache"
PROFILER_CLEAR_PATH = "/api/inventory/performance/clear"
PROFILER_SUMMARY_PATH = "/api/inventory/performance/summary"


@dataclass
class BenchmarkResult:
    endpoint: str
    cold_ms: float
    warm_times_ms: List[float] = field(default_factory=list)
    warm_cache_hits: int = 0

    @property
    def warm_average_ms(self) -> float:
        return sum(self.warm_times_ms) / len(self.warm_times_ms) if self.warm_times_ms else 0.0

    @property
    def improvement_pct(self) -> float:
        if self.cold_ms <= 0:
            return 0.0
        return (self.cold_ms - self.warm_average_ms) / self.cold_ms * 100

    @property
    def speedup(self) -> float:
        return self.cold_ms / self.warm_average_ms if self.warm_average_ms > 0 else 0.0

    def report(self) -> str:
        warm = self.warm_times_ms or [0.0]
        return "\n".join([
            "========== CACHE PERFORMANCE BENCHMARK ==========",
            f"Endpoint: {self.endpoint}",
            f"Cold Cache Response Time: {self.cold_ms:.2f}ms",
            f"Warm Cache Average Time: {self.warm_average_ms:.2f}ms",
            f"Warm Cache Min Time: {min(warm):.2f}ms",
            f"Warm Cache Max Time: {max(warm):.2f}ms",
            f"Warm Cache Hits: {self.warm_cache_hits}/{len(self.warm_times_ms)}",
            f"Performance Improvement: {self.improvement_pct:.2f}%",
            f"Speedup Factor: {self.speedup:.2f}x faster",
            "==================================================",
        ])


@dataclass
class ConcurrencyResult:
    endpoint: str
    times_ms: List[float]
    wall_ms: float
    failures: int = 0

    @property
    def total_requests(self) -> int:
        return len(self.times_ms)

    @property
    def average_ms(self) -> float:
        return sum(self.times_ms) / len(self.times_ms) if self.times_ms else 0.0

    @property
    def requests_per_second(self) -> float:
        return self.total_requests / (self.wall_ms / 1000) if self.wall_ms > 0 else 0.0

    def report(self) -> str:
        times = self.times_ms or [0.0]
        return "\n".join([
            "========== CONCURRENCY BENCHMARK RESULTS ==========",
            f"Endpoint: {self.endpoint}",
            f"Total Requests: {self.total_requests} ({self.failures} failed)",
            f"Average Response Time: {self.average_ms:.2f}ms",
            f"Min Response Time: {min(times):.2f}ms",
            f"Max Response Time: {max(times):.2f}ms",
            f"Wall Time: {self.wall_ms:.2f}ms",
            f"Requests Per Second: {self.requests_per_second:.2f}",
            "====================================================",
        ])


def _timed_get(client: httpx.Client, endpoint: str) -> tuple[float, httpx.Response]:
    started = time.perf_counter()
    resp = client.get(endpoint)
    elapsed = (time.perf_counter() - started) * 1000
    return elapsed, resp


def run_cache_benchmark(
    client: httpx.Client,
    endpoint: str,
    warm_requests: int = 10,
) -> BenchmarkResult:
    """Clear the cache, time one cold request, then ``warm_requests`` warm ones."""
    logger.info("Benchmarking %s (%d warm requests)", endpoint, warm_requests)
    client.post(CLEAR_CACHE_PATH).raise_for_status()

    cold_ms, resp = _timed_get(client, endpoint)
    resp.raise_for_status()
    result = BenchmarkResult(endpoint=endpoint, cold_ms=cold_ms)

    for _ in range(warm_requests):
        elapsed, resp = _timed_get(client, endpoint)
        resp.raise_for_status()
        result.warm_times_ms.append(elapsed)
        if resp.json().get("source") == "cache":
            result.warm_cache_hits += 1

    logger.info("Benchmark for %s: cold %.2fms, warm avg %.2fms", endpoint, cold_ms, result.warm_average_ms)
    return result


def run_concurrency_benchmark(
    client: httpx.Client,
    endpoint: str,
    concurrency: int = 10,
    iterations: int = 5,
) -> ConcurrencyResult:
    """Fire ``iterations`` batches of ``concurrency`` parallel GETs."""
    times: List[float] = []
    failures = 0
    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        for _ in range(iterations):
            batch = pool.map(lambda _i: _timed_get(client, endpoint), range(concurrency))
            for elapsed, resp in batch:
                times.append(elapsed)
                if resp.is_error:
                    failures += 1
    wall_ms = (time.perf_counter() - started) * 1000
    if failures:
        logger.warning("%d of %d requests to %s failed", failures, len(times), endpoint)
    return ConcurrencyResult(endpoint=endpoint, times_ms=times, wall_ms=wall_ms, failures=failures)


def run_suite(
    client: httpx.Client,
    endpoints: Sequence[str] = DEFAULT_ENDPOINTS,
    warm_requests: int = 10,
) -> Dict[str, object]:
    """Benchmark every endpoint and return the results with the profiler summary."""
    client.post(PROFILER_CLEAR_PATH).raise_for_status()
    results = [run_cache_benchmark(client, ep, warm_requests) for ep in endpoints]
    summary = client.get(PROFILER_SUMMARY_PATH)
    summary.raise_for_status()
    return {"results": results, "profiler": summary.json()}


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="LogiTrack cache benchmark")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API root")
    parser.add_argument("--token", default="", help="Admin bearer token")
    parser.add_argument("--requests", type=int, default=10, help="Warm requests per endpoint")
    parser.add_argument("--concurrency", type=int, default=0, help="Also run N parallel requests per batch")
    parser.add_argument("endpoints", nargs="*", default=list(DEFAULT_ENDPOINTS))
    args = parser.parse_args(argv)
    configure_logging()

    headers = {"Authorization": f"Bearer {args.token}"} if args.token else {}
    with httpx.Client(base_url=args.base_url, headers=headers, timeout=15.0) as client:
        suite = run_suite(client, args.endpoints, args.requests)
        for result in suite["results"]:
            print(result.report())
        print(f"Profiler: {suite['profiler']}")
        if args.concurrency > 0:
            for ep in args.endpoints:
                print(run_concurrency_benchmark(client, ep, concurrency=args.concurrency).report())


if __name__ == "__main__":
    main()
