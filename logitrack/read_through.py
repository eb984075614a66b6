"""
Read-through cache used by the inventory and order endpoints.

Keys are built from an operation prefix plus fully-qualified parameter
parts (``inventory_skip_0_take_50``).  Writes invalidate the set of keys a
mutation could plausibly affect; see ``ReadThroughCache.invalidate``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

from logitrack.cache_backend import CacheBackend
from logitrack.metrics import PerformanceProfiler

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_DELIMITER = "_"
SOURCE_CACHE = "cache"
SOURCE_DATABASE = "database"

INVALIDATE_ENUMERATE = "enumerate"
INVALIDATE_PREFIX = "prefix"

_ENTITY_SUFFIX = re.compile(r"^\d+$")
_UNSET: Any = object()


def build_key(prefix: str, *parts: Any) -> str:
    if not parts:
        return prefix
    rendered = ["" if p is None else str(p) for p in parts]
    return KEY_DELIMITER.join([prefix, *rendered])


def page_key(prefix: str, skip: int, take: int) -> str:
    return build_key(prefix, "skip", skip, "take", take)


def clamp_page(skip: int, take: int, max_page_size: int) -> tuple[int, int]:
    """Clamp pagination silently instead of rejecting it."""
    return max(0, int(skip)), max(1, min(int(take), int(max_page_size)))


@dataclass
class CachedResult:
    source: str
    data: Any
    total: Optional[int] = None

    @property
    def from_cache(self) -> bool:
        return self.source == SOURCE_CACHE


class ReadThroughCache:
    def __init__(
        self,
        backend: CacheBackend,
        profiler: Optional[PerformanceProfiler] = None,
        *,
        ttl_seconds: float = 300,
        sliding_seconds: Optional[float] = 60,
        count_ttl_seconds: float = 60,
        invalidation_pages: int = 10,
        page_size: int = 50,
        mode: str = INVALIDATE_PREFIX,
    ) -> None:
        if mode not in (INVALIDATE_ENUMERATE, INVALIDATE_PREFIX):
            raise ValueError(f"unknown invalidation mode: {mode!r}")
        self.backend = backend
        self.profiler = profiler or PerformanceProfiler()
        self.ttl_seconds = ttl_seconds
        self.sliding_seconds = sliding_seconds
        self.count_ttl_seconds = count_ttl_seconds
        self.invalidation_pages = invalidation_pages
        self.page_size = page_size
        self.mode = mode

    # ------------------------------------------------------------------
    # Store access (never raises)
    # ------------------------------------------------------------------

    def get(self, key: str) -> tuple[bool, Any]:
        try:
            return self.backend.get(key)
        except Exception as exc:
            logger.warning("cache get failed for %s: %s", key, exc)
            return False, None

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[float] = None,
        sliding_seconds: Any = _UNSET,
    ) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        sliding = self.sliding_seconds if sliding_seconds is _UNSET else sliding_seconds
        try:
            self.backend.set(key, value, ttl, sliding)
        except Exception as exc:
            logger.warning("cache set failed for %s: %s", key, exc)

    def _delete(self, key: str) -> bool:
        try:
            return self.backend.delete(key)
        except Exception as exc:
            logger.warning("cache delete failed for %s: %s", key, exc)
            return False

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(
        self,
        prefix: str,
        specific_id: Optional[int] = None,
        page_count: Optional[int] = None,
    ) -> int:
        """Drop the keys a write under ``prefix`` could have made stale.

        Always removes the bare prefix key, the first ``page_count`` default
        sized page keys, the cached total count and ``prefix_{specific_id}``.
        In ``prefix`` mode every other key under ``prefix_`` is removed too,
        except by-id keys of other entities.  Returns the number of keys
        actually removed.
        """
        pages = self.invalidation_pages if page_count is None else page_count
        doomed: List[str] = [prefix, build_key(prefix, "count")]
        doomed.extend(
            page_key(prefix, i * self.page_size, self.page_size) for i in range(max(0, pages))
        )
        if specific_id is not None:
            doomed.append(build_key(prefix, specific_id))

        removed = sum(1 for k in doomed if self._delete(k))

        if self.mode == INVALIDATE_PREFIX:
            head = prefix + KEY_DELIMITER

            def _keep(key: str) -> bool:
                return bool(_ENTITY_SUFFIX.match(key[len(head):]))

            try:
                removed += self.backend.delete_prefix(head, keep=_keep)
            except Exception as exc:
                logger.warning("cache prefix sweep failed for %s: %s", prefix, exc)

        logger.debug("invalidated %d cache keys under %s", removed, prefix)
        return removed

    def clear(self) -> int:
        try:
            return self.backend.clear()
        except Exception as exc:
            logger.warning("cache clear failed: %s", exc)
            return 0

    # ------------------------------------------------------------------
    # Read-through orchestration
    # ------------------------------------------------------------------

    def fetch(self, operation: str, key: str, loader: Callable[[], T]) -> CachedResult:
        """Serve ``key`` from cache or call ``loader`` and cache its result.

        Loader errors propagate and a ``None`` result is returned uncached.
        """
        with self.profiler.measure(operation) as m:
            found, value = self.get(key)
            if found:
                m.used_cache = True
                return CachedResult(SOURCE_CACHE, value)
            value = loader()
            if value is not None:
                self.set(key, value)
            return CachedResult(SOURCE_DATABASE, value)

    def fetch_count(self, prefix: str, loader: Callable[[], int]) -> int:
        key = build_key(prefix, "count")
        found, value = self.get(key)
        if found:
            return int(value)
        total = int(loader())
        self.set(key, total, ttl_seconds=self.count_ttl_seconds, sliding_seconds=None)
        return total

    def fetch_page(
        self,
        operation: str,
        prefix: str,
        skip: int,
        take: int,
        load_items: Callable[[int, int], List[Any]],
        load_count: Callable[[], int],
    ) -> CachedResult:
        result = self.fetch(operation, page_key(prefix, skip, take), lambda: load_items(skip, take))
        result.total = self.fetch_count(prefix, load_count)
        return result
