from __future__ import annotations

import json
from types import SimpleNamespace

from logitrack import cache_backend
from logitrack.cache_backend import MemoryCacheBackend, create_cache_backend


def test_memory_cache_round_trip_and_absolute_ttl(memory_cache, clock):
    memory_cache.set("k", {"v": 1}, ttl_seconds=300)
    assert memory_cache.get("k") == (True, {"v": 1})

    clock.advance(299.9)
    assert memory_cache.get("k") == (True, {"v": 1})

    clock.advance(0.1)
    assert memory_cache.get("k") == (False, None)
    assert len(memory_cache) == 0


def test_sliding_window_refreshes_on_hit_but_never_past_absolute(memory_cache, clock):
    memory_cache.set("k", "v", ttl_seconds=300, sliding_seconds=60)

    # Touch every 50s: sliding keeps it alive until the absolute limit.
    for _ in range(5):
        clock.advance(50)
        assert memory_cache.get("k") == (True, "v")

    clock.advance(50)  # t=300: absolute expiration reached
    assert memory_cache.get("k") == (False, None)


def test_sliding_window_evicts_idle_entry_early(memory_cache, clock):
    memory_cache.set("k", "v", ttl_seconds=300, sliding_seconds=60)
    clock.advance(61)
    assert memory_cache.get("k") == (False, None)


def test_set_overwrites_and_restarts_expiration(memory_cache, clock):
    memory_cache.set("k", "old", ttl_seconds=10)
    clock.advance(8)
    memory_cache.set("k", "new", ttl_seconds=10)
    clock.advance(8)
    assert memory_cache.get("k") == (True, "new")


def test_falsy_values_are_still_hits(memory_cache):
    memory_cache.set("empty", [], ttl_seconds=10)
    memory_cache.set("zero", 0, ttl_seconds=10)
    assert memory_cache.get("empty") == (True, [])
    assert memory_cache.get("zero") == (True, 0)


def test_delete_prefix_honours_keep(memory_cache):
    for key in ("inventory", "inventory_7", "inventory_skip_0_take_50", "order_data_1"):
        memory_cache.set(key, key, ttl_seconds=60)

    removed = memory_cache.delete_prefix("inventory_", keep=lambda k: k == "inventory_7")

    assert removed == 1
    assert sorted(memory_cache.keys()) == ["inventory", "inventory_7", "order_data_1"]


def test_delete_and_clear(memory_cache):
    memory_cache.set("a", 1, ttl_seconds=60)
    memory_cache.set("b", 2, ttl_seconds=60)
    assert memory_cache.delete("a") is True
    assert memory_cache.delete("a") is False
    assert memory_cache.clear() == 1
    assert memory_cache.keys() == []


def test_purge_expired_drops_only_dead_entries(memory_cache, clock):
    memory_cache.set("short", 1, ttl_seconds=5)
    memory_cache.set("long", 2, ttl_seconds=500)
    clock.advance(10)
    assert memory_cache.purge_expired() == 1
    assert memory_cache.keys() == ["long"]


class FakeRedisClient:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, px=None):
        self.store[key] = value
        self.ttls[key] = px

    def pexpire(self, key, ms):
        self.ttls[key] = ms
        return True

    def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0

    def scan_iter(self, match="*"):
        head = match.rstrip("*")
        return [k for k in list(self.store) if k.startswith(head)]


def _redis_backend(monkeypatch, client):
    fake_module = SimpleNamespace(from_url=lambda *_args, **_kwargs: client)
    monkeypatch.setattr(cache_backend, "redis", fake_module)
    return create_cache_backend("redis://example")


def test_create_cache_backend_uses_redis_when_available(monkeypatch):
    client = FakeRedisClient()
    backend = _redis_backend(monkeypatch, client)
    assert backend.backend == "redis"

    backend.set("inventory_1", {"name": "Pallet"}, ttl_seconds=300, sliding_seconds=60)
    assert backend.get("inventory_1") == (True, {"name": "Pallet"})
    # Key TTL follows the sliding window, not the absolute lifetime.
    assert client.ttls["logitrack:inventory_1"] <= 60_000

    envelope = json.loads(client.store["logitrack:inventory_1"])
    assert envelope["sl"] == 60


def test_redis_backend_prefix_delete_and_keys(monkeypatch):
    client = FakeRedisClient()
    backend = _redis_backend(monkeypatch, client)
    backend.set("inventory_7", 1, ttl_seconds=60)
    backend.set("inventory_search_name__qty__take_50", 2, ttl_seconds=60)
    backend.set("order_data_1", 3, ttl_seconds=60)

    removed = backend.delete_prefix("inventory_", keep=lambda k: k == "inventory_7")

    assert removed == 1
    assert sorted(backend.keys()) == ["inventory_7", "order_data_1"]
    assert backend.clear() == 2


def test_redis_backend_expired_envelope_is_a_miss(monkeypatch):
    client = FakeRedisClient()
    backend = _redis_backend(monkeypatch, client)
    client.store["logitrack:stale"] = json.dumps({"v": 1, "exp": 0, "sl": None})
    assert backend.get("stale") == (False, None)
    assert "logitrack:stale" not in client.store


def test_create_cache_backend_falls_back_when_redis_ping_fails(monkeypatch):
    class BadRedisClient:
        def ping(self):
            raise RuntimeError("cannot connect")

    backend = _redis_backend(monkeypatch, BadRedisClient())
    assert backend.backend == "memory"


def test_create_cache_backend_defaults_to_memory():
    assert isinstance(create_cache_backend(""), MemoryCacheBackend)
