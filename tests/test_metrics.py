from __future__ import annotations

import csv

import pytest

from logitrack.metrics import PerformanceProfiler


def test_stats_aggregate_hits_misses_and_timings():
    profiler = PerformanceProfiler()
    profiler.record("GetInventoryItems", 10.0, used_cache=False)
    profiler.record("GetInventoryItems", 2.0, used_cache=True)
    profiler.record("GetInventoryItems", 3.0, used_cache=True)
    profiler.record("SearchItems", 8.0, used_cache=False)

    stats = profiler.get_stats("GetInventoryItems")
    assert stats.total_requests == 3
    assert (stats.cache_hits, stats.cache_misses) == (2, 1)
    assert stats.cache_hit_rate == 66.67
    assert stats.average_response_ms == 5.0
    assert (stats.min_response_ms, stats.max_response_ms) == (2.0, 10.0)

    assert set(profiler.get_all_stats()) == {"GetInventoryItems", "SearchItems"}
    assert profiler.get_stats("unknown") is None

    summary = profiler.summary()
    assert summary["total_requests"] == 4
    assert summary["total_cache_hits"] == 2
    assert summary["cache_hit_rate"] == 50.0


def test_measure_records_even_when_the_block_raises():
    profiler = PerformanceProfiler()
    with pytest.raises(KeyError):
        with profiler.measure("GetOrder") as m:
            m.used_cache = True
            raise KeyError("boom")

    stats = profiler.get_stats("GetOrder")
    assert stats.total_requests == 1
    assert stats.cache_hits == 1


def test_history_is_bounded():
    profiler = PerformanceProfiler(max_samples=3)
    for i in range(5):
        profiler.record("op", float(i), used_cache=False)
    assert [m.elapsed_ms for m in profiler.get_all_metrics()] == [2.0, 3.0, 4.0]


def test_export_csv_and_clear(tmp_path):
    profiler = PerformanceProfiler()
    profiler.record("GetInventoryItems", 1.5, used_cache=True)
    profiler.record("GetInventoryItems", 4.0, used_cache=False)

    path = profiler.export_csv(str(tmp_path / "metrics.csv"))
    with open(path, newline="", encoding="utf-8") as fh:
        rows = list(csv.reader(fh))

    assert rows[0] == ["Timestamp", "Operation", "ElapsedMs", "UsedCache"]
    assert [r[1:] for r in rows[1:]] == [
        ["GetInventoryItems", "1.500", "True"],
        ["GetInventoryItems", "4.000", "False"],
    ]

    profiler.clear()
    assert profiler.get_all_stats() == {}
    assert profiler.summary()["total_requests"] == 0
