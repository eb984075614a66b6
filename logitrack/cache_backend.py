"""
Cache store for read-through lookups (Redis when configured, in-memory otherwise).

Entries carry an absolute expiration and an optional sliding window.  A hit
re-arms the sliding window but never extends the entry past its absolute
expiration.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float
    sliding_seconds: Optional[float] = None
    last_access: float = 0.0

    def is_live(self, now: float) -> bool:
        if now >= self.expires_at:
            return False
        if self.sliding_seconds is not None and now >= self.last_access + self.sliding_seconds:
            return False
        return True


class CacheBackend:
    backend: str = "none"

    def get(self, key: str) -> Tuple[bool, Any]:
        raise NotImplementedError

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        sliding_seconds: Optional[float] = None,
    ) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def delete_prefix(self, prefix: str, keep: Optional[Callable[[str], bool]] = None) -> int:
        """Remove every key starting with ``prefix`` unless ``keep(key)`` is true."""
        raise NotImplementedError

    def clear(self) -> int:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class MemoryCacheBackend(CacheBackend):
    backend = "memory"

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Tuple[bool, Any]:
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False, None
            if not entry.is_live(now):
                self._store.pop(key, None)
                return False, None
            entry.last_access = now
            return True, entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        sliding_seconds: Optional[float] = None,
    ) -> None:
        now = self._clock()
        entry = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + max(0.0, float(ttl_seconds)),
            sliding_seconds=sliding_seconds,
            last_access=now,
        )
        with self._lock:
            self._store[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def delete_prefix(self, prefix: str, keep: Optional[Callable[[str], bool]] = None) -> int:
        with self._lock:
            doomed = [
                k for k in self._store
                if k.startswith(prefix) and not (keep and keep(k))
            ]
            for k in doomed:
                del self._store[k]
            return len(doomed)

    def clear(self) -> int:
        with self._lock:
            n = len(self._store)
            self._store.clear()
            return n

    def keys(self) -> List[str]:
        now = self._clock()
        with self._lock:
            return [k for k, e in self._store.items() if e.is_live(now)]

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            dead = [k for k, e in self._store.items() if not e.is_live(now)]
            for k in dead:
                del self._store[k]
            return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class RedisCacheBackend(CacheBackend):
    """Values are JSON envelopes; the key TTL tracks min(sliding, remaining absolute)."""

    backend = "redis"

    def __init__(self, url: str, namespace: str = "logitrack:") -> None:
        self._client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
            retry_on_timeout=False,
        )
        self._ns = namespace
        # Fail fast at startup so we can fall back to the memory store.
        self._client.ping()

    def _k(self, key: str) -> str:
        return f"{self._ns}{key}"

    @staticmethod
    def _ttl_ms(expires_at: float, sliding: Optional[float], now: float) -> int:
        remaining = expires_at - now
        if sliding is not None:
            remaining = min(remaining, sliding)
        return int(remaining * 1000)

    def get(self, key: str) -> Tuple[bool, Any]:
        raw = self._client.get(self._k(key))
        if raw is None:
            return False, None
        envelope = json.loads(raw)
        now = time.time()
        ttl_ms = self._ttl_ms(envelope["exp"], envelope.get("sl"), now)
        if ttl_ms <= 0:
            self._client.delete(self._k(key))
            return False, None
        if envelope.get("sl") is not None:
            self._client.pexpire(self._k(key), ttl_ms)
        return True, envelope["v"]

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        sliding_seconds: Optional[float] = None,
    ) -> None:
        now = time.time()
        expires_at = now + max(0.0, float(ttl_seconds))
        ttl_ms = self._ttl_ms(expires_at, sliding_seconds, now)
        if ttl_ms <= 0:
            self._client.delete(self._k(key))
            return
        payload = json.dumps({"v": value, "exp": expires_at, "sl": sliding_seconds}, default=str)
        self._client.set(self._k(key), payload, px=ttl_ms)

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(self._k(key)))

    def delete_prefix(self, prefix: str, keep: Optional[Callable[[str], bool]] = None) -> int:
        removed = 0
        for full_key in self._client.scan_iter(match=f"{self._k(prefix)}*"):
            key = full_key[len(self._ns):]
            if keep and keep(key):
                continue
            removed += int(self._client.delete(full_key))
        return removed

    def clear(self) -> int:
        return self.delete_prefix("")

    def keys(self) -> List[str]:
        return [k[len(self._ns):] for k in self._client.scan_iter(match=f"{self._ns}*")]


def create_cache_backend(redis_url: str = "", clock: Clock = time.monotonic) -> CacheBackend:
    """Build the cache store for one application instance."""
    if redis_url:
        try:
            return RedisCacheBackend(redis_url)
        except Exception as exc:
            logger.warning("Redis cache unavailable (%s); using in-memory cache", exc)
    return MemoryCacheBackend(clock=clock)
