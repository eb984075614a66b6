"""
FastAPI dependencies resolving per-application state.

The cache, profiler, rate limiter and session factory are created once in
the app lifespan and hung off ``app.state``; handlers reach them only
through these functions so tests can swap them with
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import Iterator

from fastapi import Request
from sqlalchemy.orm import Session

from logitrack.metrics import PerformanceProfiler
from logitrack.read_through import ReadThroughCache


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> ReadThroughCache:
    return request.app.state.cache


def get_profiler(request: Request) -> PerformanceProfiler:
    return request.app.state.profiler
