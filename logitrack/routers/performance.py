"""
Cache and profiler administration (Admin only)

POST /api/inventory/clear-cache                    - drop every cached read
GET  /api/inventory/performance/stats              - per-operation stats
GET  /api/inventory/performance/stats/{operation}  - stats for one operation
GET  /api/inventory/performance/summary            - overall totals
POST /api/inventory/performance/export             - write samples to CSV
POST /api/inventory/performance/clear              - reset the profiler
"""

import asyncio
import logging
import os
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from logitrack import config
from logitrack.api.deps import get_cache, get_profiler
from logitrack.api.schemas import PerformanceStatsOut
from logitrack.auth import ROLE_ADMIN, require_roles
from logitrack.metrics import PerformanceProfiler
from logitrack.read_through import ReadThroughCache

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/inventory",
    tags=["admin"],
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)


@router.post("/clear-cache")
async def clear_cache(cache: ReadThroughCache = Depends(get_cache)):
    removed = cache.clear()
    logger.info("Cache cleared by admin (%d entries)", removed)
    return {"message": "Cache cleared successfully.", "removed": removed}


@router.get("/performance/stats")
async def get_performance_stats(profiler: PerformanceProfiler = Depends(get_profiler)):
    return {
        op: PerformanceStatsOut(**stats.as_dict())
        for op, stats in profiler.get_all_stats().items()
    }


@router.get("/performance/stats/{operation}", response_model=PerformanceStatsOut)
async def get_operation_stats(operation: str, profiler: PerformanceProfiler = Depends(get_profiler)):
    stats = profiler.get_stats(operation)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"No stats found for operation: {operation}")
    return PerformanceStatsOut(**stats.as_dict())


@router.get("/performance/summary")
async def get_performance_summary(profiler: PerformanceProfiler = Depends(get_profiler)):
    return profiler.summary()


@router.post("/performance/export")
async def export_performance_metrics(profiler: PerformanceProfiler = Depends(get_profiler)):
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join(config.METRICS_EXPORT_DIR, f"performance_metrics_{stamp}.csv")
    await asyncio.to_thread(profiler.export_csv, path)
    return {"message": "Metrics exported", "file_path": path}


@router.post("/performance/clear")
async def clear_performance_metrics(profiler: PerformanceProfiler = Depends(get_profiler)):
    profiler.clear()
    return {"message": "Performance metrics cleared."}
