"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • clock          - controllable monotonic clock (no sleeping in tests)
  • memory_cache   - MemoryCacheBackend driven by ``clock``
  • app            - a fresh LogiTrack app on in-memory SQLite, auth disabled
  • client         - TestClient bound to ``app`` (lifespan started)
  • add_items      - helper creating inventory rows through the API
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from logitrack import config
from logitrack.app import create_app
from logitrack.cache_backend import MemoryCacheBackend
from logitrack.rate_limiter import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(clock) -> MemoryCacheBackend:
    return MemoryCacheBackend(clock=clock)


@pytest.fixture
def app(monkeypatch, clock, memory_cache):
    monkeypatch.setattr(config, "AUTH_DISABLED", True)
    return create_app(
        database_url="sqlite://",
        cache_backend=memory_cache,
        rate_limiter=FixedWindowRateLimiter(max_requests=5, window_seconds=60, clock=clock),
        clock=clock,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def add_items(client):
    """POST (name, quantity, location) tuples and return the created ids."""

    def _add(*rows: tuple) -> list:
        ids = []
        for name, quantity, location in rows:
            resp = client.post(
                "/api/inventory",
                json={"name": name, "quantity": quantity, "location": location},
            )
            assert resp.status_code == 201, resp.text
            ids.append(resp.json()["item_id"])
        return ids

    return _add
