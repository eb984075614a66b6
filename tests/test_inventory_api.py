from __future__ import annotations

from fastapi.testclient import TestClient

from logitrack.routers import inventory


def test_list_is_served_from_database_then_cache(client, add_items):
    add_items(("Pallet jack", 3, "A1"), ("Shrink wrap", 40, "B2"), ("Forklift", 1, "Dock"))

    first = client.get("/api/inventory").json()
    second = client.get("/api/inventory").json()

    assert first["source"] == "database"
    assert (first["count"], first["total"], first["skip"], first["take"]) == (3, 3, 0, 50)
    assert second["source"] == "cache"
    assert second["data"] == first["data"]
    assert [row["name"] for row in second["data"]] == ["Pallet jack", "Shrink wrap", "Forklift"]


def test_take_above_maximum_is_clamped(client, add_items):
    add_items(("Pallet jack", 3, "A1"))
    body = client.get("/api/inventory", params={"skip": -4, "take": 1000}).json()
    assert (body["skip"], body["take"]) == (0, 100)


def test_create_invalidates_cached_pages(client, add_items):
    add_items(("Pallet jack", 3, "A1"))
    client.get("/api/inventory")

    add_items(("Tape", 100, "C3"))
    body = client.get("/api/inventory").json()

    assert body["source"] == "database"
    assert body["total"] == 2


def test_search_filters_and_caches(client, add_items):
    add_items(("Steel bolt", 500, "A1"), ("Brass bolt", 5, "A2"), ("Hammer", 12, "B1"))

    params = {"name": "bolt", "minQuantity": 10}
    first = client.get("/api/inventory/search", params=params).json()
    second = client.get("/api/inventory/search", params=params).json()

    assert first["source"] == "database"
    assert [r["name"] for r in first["data"]] == ["Steel bolt"]
    assert second["source"] == "cache"

    everything = client.get("/api/inventory/search").json()
    # Ordered by quantity, largest first.
    assert [r["quantity"] for r in everything["data"]] == [500, 12, 5]


def test_search_rejects_overlong_name(client):
    assert client.get("/api/inventory/search", params={"name": "x" * 101}).status_code == 422
    assert client.get("/api/inventory/search", params={"minQuantity": -1}).status_code == 422


def test_update_invalidates_search_results(client, add_items):
    (item_id,) = add_items(("Steel bolt", 500, "A1"))
    client.get("/api/inventory/search", params={"name": "bolt"})

    resp = client.put(f"/api/inventory/{item_id}", json={"name": "Steel nut", "quantity": 500, "location": "A1"})
    assert resp.status_code == 200

    body = client.get("/api/inventory/search", params={"name": "bolt"}).json()
    assert body["source"] == "database"
    assert body["data"] == []


def test_summary_projection(client, add_items):
    add_items(("Pallet jack", 3, "A1"))
    body = client.get("/api/inventory/summary").json()
    assert body["data"] == [{"item_id": 1, "name": "Pallet jack", "quantity": 3, "location": "A1"}]
    assert client.get("/api/inventory/summary").json()["source"] == "cache"


def test_get_by_id_caches_and_update_refreshes(client, add_items):
    (item_id,) = add_items(("Pallet jack", 3, "A1"))

    assert client.get(f"/api/inventory/{item_id}").json()["source"] == "database"
    assert client.get(f"/api/inventory/{item_id}").json()["source"] == "cache"

    client.put(f"/api/inventory/{item_id}", json={"name": "Pallet jack", "quantity": 9, "location": "A1"})
    body = client.get(f"/api/inventory/{item_id}").json()
    assert body["source"] == "database"
    assert body["data"]["quantity"] == 9


def test_write_to_one_item_keeps_other_items_cached(client, add_items):
    first, second = add_items(("Pallet jack", 3, "A1"), ("Tape", 100, "C3"))
    client.get(f"/api/inventory/{second}")

    client.delete(f"/api/inventory/{first}")

    assert client.get(f"/api/inventory/{second}").json()["source"] == "cache"


def test_missing_item_returns_404_and_is_not_cached(client, memory_cache):
    resp = client.get("/api/inventory/999")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Inventory item with ID 999 not found."}
    assert "inventory_999" not in memory_cache.keys()


def test_delete_and_put_unknown_item(client, add_items):
    (item_id,) = add_items(("Pallet jack", 3, "A1"))
    assert client.delete(f"/api/inventory/{item_id}").status_code == 204
    assert client.delete(f"/api/inventory/{item_id}").status_code == 404
    resp = client.put(f"/api/inventory/{item_id}", json={"name": "x", "quantity": 1, "location": "y"})
    assert resp.status_code == 404


def test_validation_errors(client):
    for body in (
        {"name": "", "quantity": 1, "location": "A1"},
        {"name": "Tape", "quantity": -1, "location": "A1"},
        {"name": "Tape", "quantity": 1, "location": "   "},
    ):
        assert client.post("/api/inventory", json=body).status_code == 422


def test_backend_failure_is_a_500_and_not_cached(app, monkeypatch, memory_cache):
    def _boom(*_args, **_kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(inventory, "list_inventory", _boom)
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/api/inventory")
        assert not any(k.startswith("inventory_skip") for k in memory_cache.keys())

    assert resp.status_code == 500
    body = resp.json()
    assert body["status"] == 500
    assert "database is locked" not in body["detail"]


def test_development_mode_exposes_exception_detail(app, monkeypatch):
    monkeypatch.setattr(inventory.config, "ENVIRONMENT", "development")
    monkeypatch.setattr(inventory, "count_inventory", lambda _db: 1 / 0)
    with TestClient(app, raise_server_exceptions=False) as c:
        body = c.get("/api/inventory").json()
    assert body["exception"] == "ZeroDivisionError"


def test_entries_expire_after_absolute_ttl(client, add_items, clock):
    add_items(("Pallet jack", 3, "A1"))
    client.get("/api/inventory")

    # Keep touching it so the sliding window never lapses.
    for _ in range(5):
        clock.advance(50)
        client.get("/api/inventory")

    clock.advance(50)
    assert client.get("/api/inventory").json()["source"] == "database"
