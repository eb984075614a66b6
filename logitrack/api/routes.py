"""
LogiTrack: centralised router registration.

This module is the single place where every APIRouter is mounted onto the
FastAPI application.  Call ``register_routes(app)`` once from
``logitrack.app``.
"""

from __future__ import annotations

from fastapi import FastAPI, Request

from logitrack import __version__
from logitrack.api.schemas import HealthResponse
from logitrack.auth import router as auth_router
from logitrack.routers.inventory import router as inventory_router
from logitrack.routers.orders import router as order_router
from logitrack.routers.performance import router as performance_router


async def health(request: Request) -> HealthResponse:
    state = request.app.state
    return HealthResponse(
        version=__version__,
        cache_backend=state.cache.backend.backend,
        rate_limited_clients=len(state.rate_limiter),
        profiler=state.profiler.summary(),
    )


def register_routes(app: FastAPI) -> None:
    app.include_router(auth_router)
    # Admin routes share the /api/inventory prefix; mount them first so the
    # fixed paths are matched before /{item_id}.
    app.include_router(performance_router)
    app.include_router(inventory_router)
    app.include_router(order_router)
    app.add_api_route("/api/health", health, methods=["GET"], response_model=HealthResponse, tags=["health"])
