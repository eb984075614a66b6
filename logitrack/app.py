"""
LogiTrack - FastAPI Application
Main entry point for the inventory and order tracking API.

Run with:
    uvicorn logitrack.app:app --reload --host 0.0.0.0 --port 8000
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from logitrack import __version__, config
from logitrack.api.routes import register_routes
from logitrack.cache_backend import CacheBackend, create_cache_backend
from logitrack.core.logging import configure_logging
from logitrack.database import init_db, make_engine, make_session_factory
from logitrack.metrics import PerformanceProfiler
from logitrack.rate_limiter import FixedWindowRateLimiter, rate_limit_middleware
from logitrack.read_through import ReadThroughCache

configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initialising database...")
    init_db(app.state.engine)
    logger.info(
        "Database ready. Cache backend=%s, invalidation=%s",
        app.state.cache.backend.backend, app.state.cache.mode,
    )

    yield

    app.state.cache.clear()
    app.state.rate_limiter.reset()
    app.state.engine.dispose()
    logger.info("Shutdown complete.")


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method, request.url.path, exc, traceback.format_exc(),
    )
    body = {
        "status": 500,
        "title": "An error occurred while processing your request",
        "type": "https://tools.ietf.org/html/rfc7231#section-6.6.1",
        "instance": request.url.path,
    }
    if config.ENVIRONMENT == "development":
        body["detail"] = str(exc)
        body["exception"] = type(exc).__name__
    else:
        body["detail"] = "An unexpected error occurred. Please try again later."
    return JSONResponse(status_code=500, content=body)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(
    database_url: Optional[str] = None,
    cache_backend: Optional[CacheBackend] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Build an application with its own cache, limiter, profiler and engine."""
    app = FastAPI(
        title="LogiTrack",
        version=__version__,
        description="Inventory and order tracking API",
        lifespan=lifespan,
    )

    engine = make_engine(database_url or config.DATABASE_URL)
    profiler = PerformanceProfiler(max_samples=config.PROFILER_MAX_SAMPLES)
    backend = cache_backend or create_cache_backend(config.REDIS_URL, clock=clock)

    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.profiler = profiler
    app.state.cache = ReadThroughCache(
        backend,
        profiler,
        ttl_seconds=config.CACHE_TTL_SECONDS,
        sliding_seconds=config.CACHE_SLIDING_SECONDS,
        count_ttl_seconds=config.CACHE_COUNT_TTL_SECONDS,
        invalidation_pages=config.CACHE_INVALIDATION_PAGES,
        page_size=config.DEFAULT_PAGE_SIZE,
        mode=config.CACHE_INVALIDATION_MODE,
    )
    app.state.rate_limiter = rate_limiter or FixedWindowRateLimiter(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        clock=clock,
        sweep_interval=config.RATE_LIMIT_SWEEP_SECONDS,
    )
    app.state.rate_limit_paths = tuple(config.RATE_LIMIT_PATHS)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Middleware added last runs first: the limiter wraps everything.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(rate_limit_middleware)

    register_routes(app)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# Development entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("logitrack.app:app", host="0.0.0.0", port=config.PORT, reload=True)
