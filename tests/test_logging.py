from __future__ import annotations

import logging

from logitrack import audit
from logitrack.core import logging as log_setup


def test_audit_events_reach_the_audit_file(monkeypatch, tmp_path):
    monkeypatch.setattr(log_setup, "_CONFIGURED", False)
    audit_logger = logging.getLogger("logitrack.audit")
    before = list(audit_logger.handlers)
    path = tmp_path / "audit.log"

    try:
        log_setup.configure_logging(level="INFO", audit_file=str(path))
        audit.log_failed_login("ghost@example.com", "unknown user")
        for handler in audit_logger.handlers:
            handler.flush()
    finally:
        for handler in audit_logger.handlers:
            if handler not in before:
                handler.close()
                audit_logger.removeHandler(handler)

    text = path.read_text(encoding="utf-8")
    assert "AUDIT: Failed login attempt" in text
    assert "reason=unknown user" in text


def test_configure_is_idempotent(monkeypatch):
    monkeypatch.setattr(log_setup, "_CONFIGURED", True)
    root = logging.getLogger()
    handlers = list(root.handlers)
    log_setup.configure_logging(level="DEBUG")
    assert root.handlers == handlers


def test_unknown_level_falls_back_to_info():
    assert log_setup._resolve_level("LOUD") == logging.INFO
    assert log_setup._resolve_level("debug") == logging.DEBUG
