"""
Fixed-window rate limiter for the login and registration endpoints.

Counts requests per (client, path) in one-minute windows.  Once a window
holds ``max_requests`` requests every further request in that window is
rejected without being counted; the first request after the window ends
opens a new one.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    reset_at: float
    retry_after: int = 0


class _WindowCounter:
    __slots__ = ("lock", "count", "reset_at", "evicted")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.count = 0
        self.reset_at = 0.0
        self.evicted = False


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = 300,
    ) -> None:
        self.max_requests = max(1, int(max_requests))
        self.window_seconds = float(window_seconds)
        self.sweep_interval = float(sweep_interval)
        self._clock = clock
        self._counters: Dict[Tuple[str, str], _WindowCounter] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def hit(self, client: str, path: str) -> RateLimitDecision:
        now = self._clock()
        self._maybe_sweep(now)
        key = (client, path)
        while True:
            with self._lock:
                counter = self._counters.get(key)
                if counter is None:
                    counter = self._counters[key] = _WindowCounter()
            with counter.lock:
                if not counter.evicted:
                    return self._hit_locked(counter, now)

    def _hit_locked(self, counter: _WindowCounter, now: float) -> RateLimitDecision:
        if counter.count == 0 or now >= counter.reset_at:
            counter.count = 1
            counter.reset_at = now + self.window_seconds
            return RateLimitDecision(True, 1, counter.reset_at)
        if counter.count >= self.max_requests:
            retry = max(1, math.ceil(counter.reset_at - now))
            return RateLimitDecision(False, counter.count, counter.reset_at, retry)
        counter.count += 1
        return RateLimitDecision(True, counter.count, counter.reset_at)

    def sweep(self, now: float | None = None) -> int:
        """Evict counters whose window has ended; returns how many went."""
        now = self._clock() if now is None else now
        stale = []
        with self._lock:
            for key, counter in list(self._counters.items()):
                with counter.lock:
                    if now >= counter.reset_at:
                        counter.evicted = True
                        stale.append(key)
            for key in stale:
                del self._counters[key]
            self._last_sweep = now
        if stale:
            logger.debug("rate limiter swept %d expired windows", len(stale))
        return len(stale)

    def _maybe_sweep(self, now: float) -> None:
        if self.sweep_interval > 0 and now - self._last_sweep >= self.sweep_interval:
            self.sweep(now)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)


def is_protected(path: str, protected_paths: Iterable[str]) -> bool:
    lowered = path.lower()
    return any(p.lower() in lowered for p in protected_paths)


async def rate_limit_middleware(request: Request, call_next):
    """Reject excess requests to protected paths with a 429."""
    limiter: FixedWindowRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    protected = getattr(request.app.state, "rate_limit_paths", ())
    path = request.url.path
    if limiter is None or not is_protected(path, protected):
        return await call_next(request)

    client = request.client.host if request.client else "unknown"
    decision = limiter.hit(client, path)
    if not decision.allowed:
        logger.warning("Rate limit exceeded for %s on %s", client, path)
        return JSONResponse(
            status_code=429,
            content={"message": RATE_LIMIT_MESSAGE},
            headers={"Retry-After": str(decision.retry_after)},
        )
    return await call_next(request)
