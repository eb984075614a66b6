"""
Audit trail for account events.

Events are written to the ``logitrack.audit`` logger; ship that logger to a
separate sink to keep an audit log apart from application logs.
"""

import logging
from datetime import datetime, timezone

audit_logger = logging.getLogger("logitrack.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_registration(user_id: str, email: str) -> None:
    audit_logger.info("AUDIT: User registered. user_id=%s email=%s ts=%s", user_id, email, _now())


def log_login(user_id: str, email: str) -> None:
    audit_logger.info("AUDIT: User logged in. user_id=%s email=%s ts=%s", user_id, email, _now())


def log_failed_login(email: str, reason: str) -> None:
    audit_logger.warning("AUDIT: Failed login attempt. email=%s reason=%s ts=%s", email, reason, _now())


def log_failed_registration(email: str, reason: str) -> None:
    audit_logger.warning(
        "AUDIT: Failed registration attempt. email=%s reason=%s ts=%s", email, reason, _now(),
    )
