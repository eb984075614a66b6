"""
Centralized configuration for LogiTrack.
All settings come from environment variables for 12-factor deployment.
"""

import os
import secrets
import tempfile


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list:
    return [
        s.strip()
        for s in os.environ.get(name, default).split(",")
        if s.strip()
    ]


BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(BASE_DIR, 'logitrack.db')}",
)
REDIS_URL = os.environ.get("REDIS_URL", "").strip()

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------
AUTH_SECRET = os.environ.get("AUTH_SECRET", "") or secrets.token_hex(32)
AUTH_TOKEN_TTL_SECONDS = int(os.environ.get("AUTH_TOKEN_TTL_SECONDS", "3600"))
AUTH_DISABLED = _env_bool("AUTH_DISABLED", False)
ADMIN_EMAILS = {e.lower() for e in _env_list("ADMIN_EMAILS")}
MANAGER_EMAILS = {e.lower() for e in _env_list("MANAGER_EMAILS")}

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
PORT = int(os.environ.get("PORT", "8000"))
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production").strip().lower()
CORS_ORIGINS = _env_list(
    "CORS_ORIGINS",
    "https://localhost:5173,https://localhost:3000,http://localhost:3000",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
# Optional extra sink for the logitrack.audit logger.
AUDIT_LOG_FILE = os.environ.get("AUDIT_LOG_FILE", "").strip()

# ---------------------------------------------------------------------------
# Read-through cache
# ---------------------------------------------------------------------------
# Absolute lifetime of a cached read; sliding access never extends past it.
CACHE_TTL_SECONDS = int(os.environ.get("CACHE_TTL_SECONDS", "300"))
CACHE_SLIDING_SECONDS = int(os.environ.get("CACHE_SLIDING_SECONDS", "60"))
# Total counts drift faster than the pages they describe.
CACHE_COUNT_TTL_SECONDS = int(os.environ.get("CACHE_COUNT_TTL_SECONDS", "60"))
CACHE_INVALIDATION_PAGES = int(os.environ.get("CACHE_INVALIDATION_PAGES", "10"))
# "enumerate" removes only the guessed page keys; "prefix" also sweeps every
# derived collection key under the prefix.
CACHE_INVALIDATION_MODE = os.environ.get("CACHE_INVALIDATION_MODE", "prefix").strip().lower()

DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "50"))
MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

# ---------------------------------------------------------------------------
# Rate limiting (fixed window, per client + path)
# ---------------------------------------------------------------------------
RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("RATE_LIMIT_MAX_REQUESTS", "5"))
RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_PATHS = _env_list("RATE_LIMIT_PATHS", "/api/auth/register,/api/auth/login")
RATE_LIMIT_SWEEP_SECONDS = int(os.environ.get("RATE_LIMIT_SWEEP_SECONDS", "300"))

# ---------------------------------------------------------------------------
# Profiler
# ---------------------------------------------------------------------------
PROFILER_MAX_SAMPLES = int(os.environ.get("PROFILER_MAX_SAMPLES", "10000"))
METRICS_EXPORT_DIR = os.environ.get("METRICS_EXPORT_DIR", "") or tempfile.gettempdir()
