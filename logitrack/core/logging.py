"""
LogiTrack: logging configuration.

``configure_logging()`` is called once when ``logitrack.app`` is imported.
Application loggers share one stdout handler; the ``logitrack.audit``
logger can additionally be written to its own file (``AUDIT_LOG_FILE``).
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from logitrack import config

_CONFIGURED = False

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO.
_QUIET = {
    "httpx": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "redis": logging.WARNING,
}


def _resolve_level(level: Optional[str]) -> int:
    name = (level or config.LOG_LEVEL or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: Optional[str] = None, audit_file: Optional[str] = None) -> None:
    """Install the shared handler and the audit sink.  Safe to call repeatedly."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    formatter = logging.Formatter(fmt=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    # uvicorn / gunicorn may have installed their own handlers already.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name, lvl in _QUIET.items():
        logging.getLogger(name).setLevel(lvl)

    audit_path = audit_file or config.AUDIT_LOG_FILE
    if audit_path:
        audit_handler = logging.FileHandler(audit_path, encoding="utf-8")
        audit_handler.setFormatter(formatter)
        logging.getLogger("logitrack.audit").addHandler(audit_handler)

    _CONFIGURED = True
