"""
Per-operation performance profiling for cached reads.

Keeps a bounded in-process history of (operation, elapsed, cache hit)
samples and aggregates them on demand for the admin endpoints.
"""

from __future__ import annotations

import csv
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetric:
    operation: str
    elapsed_ms: float
    used_cache: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class PerformanceStats:
    operation: str
    total_requests: int
    cache_hits: int
    cache_misses: int
    average_response_ms: float
    min_response_ms: float
    max_response_ms: float

    @property
    def cache_hit_rate(self) -> float:
        if self.total_requests <= 0:
            return 0.0
        return round(self.cache_hits * 100.0 / self.total_requests, 2)

    def as_dict(self) -> dict:
        d = asdict(self)
        d["cache_hit_rate"] = self.cache_hit_rate
        return d


class Measurement:
    """Handle yielded by ``PerformanceProfiler.measure``."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self.used_cache = False
        self._started = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000.0


class PerformanceProfiler:
    def __init__(self, max_samples: int = 10_000) -> None:
        self._lock = threading.Lock()
        self._metrics: Deque[PerformanceMetric] = deque(maxlen=max(1, int(max_samples)))

    @contextmanager
    def measure(self, operation: str) -> Iterator[Measurement]:
        m = Measurement(operation)
        try:
            yield m
        finally:
            self.record(operation, m.elapsed_ms(), m.used_cache)

    def record(self, operation: str, elapsed_ms: float, used_cache: bool) -> None:
        metric = PerformanceMetric(operation=operation, elapsed_ms=elapsed_ms, used_cache=used_cache)
        with self._lock:
            self._metrics.append(metric)
        logger.info(
            "PERF: %s - %.2fms (%s)",
            operation, elapsed_ms, "Cache Hit" if used_cache else "DB Query",
        )

    def get_stats(self, operation: str) -> Optional[PerformanceStats]:
        with self._lock:
            samples = [m for m in self._metrics if m.operation == operation]
        return self._aggregate(operation, samples)

    def get_all_stats(self) -> Dict[str, PerformanceStats]:
        with self._lock:
            samples = list(self._metrics)
        grouped: Dict[str, List[PerformanceMetric]] = {}
        for m in samples:
            grouped.setdefault(m.operation, []).append(m)
        return {op: self._aggregate(op, ms) for op, ms in grouped.items()}

    def get_all_metrics(self) -> List[PerformanceMetric]:
        with self._lock:
            return list(self._metrics)

    def summary(self) -> Dict[str, float | int]:
        stats = self.get_all_stats().values()
        total = sum(s.total_requests for s in stats)
        hits = sum(s.cache_hits for s in stats)
        avg = (
            sum(s.average_response_ms for s in stats) / len(stats)
            if stats else 0.0
        )
        return {
            "total_requests": total,
            "total_cache_hits": hits,
            "cache_hit_rate": round(hits * 100.0 / total, 2) if total else 0.0,
            "average_response_ms": round(avg, 3),
        }

    def clear(self) -> None:
        with self._lock:
            self._metrics.clear()
        logger.info("Performance metrics cleared")

    def export_csv(self, path: str) -> str:
        samples = self.get_all_metrics()
        with open(path, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(["Timestamp", "Operation", "ElapsedMs", "UsedCache"])
            for m in samples:
                writer.writerow([
                    m.timestamp.isoformat(),
                    m.operation,
                    f"{m.elapsed_ms:.3f}",
                    m.used_cache,
                ])
        logger.info("Performance metrics exported to %s", path)
        return path

    @staticmethod
    def _aggregate(operation: str, samples: List[PerformanceMetric]) -> Optional[PerformanceStats]:
        if not samples:
            return None
        elapsed = [m.elapsed_ms for m in samples]
        hits = sum(1 for m in samples if m.used_cache)
        return PerformanceStats(
            operation=operation,
            total_requests=len(samples),
            cache_hits=hits,
            cache_misses=len(samples) - hits,
            average_response_ms=round(sum(elapsed) / len(elapsed), 3),
            min_response_ms=round(min(elapsed), 3),
            max_response_ms=round(max(elapsed), 3),
        )
