"""Tests for the catalog endpoints."""
from __future__ import annotations


def test_list_filters_and_sorts(client, db, products):
    db.put("products", "p3", {"name": "armchair", "price": 80.0, "isActive": False, "category": "furniture"})

    names = [p["name"] for p in client.get("/products").json()]
    assert names == ["armchair", "Desk Lamp", "Light Bulb"]

    active = client.get("/products", params={"active": True}).json()
    assert {p["id"] for p in active} == {"p1", "p2"}

    furniture = client.get("/products", params={"category": "furniture"}).json()
    assert [p["id"] for p in furniture] == ["p3"]


def test_get_missing_product(client):
    resp = client.get("/products/nope")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Product not found"}


def test_admin_product_lifecycle(client, db, admin_headers):
    resp = client.post("/products", json={"name": "Shade", "price": 12.5, "stock": 4}, headers=admin_headers)
    assert resp.status_code == 201
    pid = resp.json()["id"]
    assert db.doc("products", pid)["price"] == 12.5

    resp = client.patch(f"/products/{pid}", json={"price": 11}, headers=admin_headers)
    assert resp.json()["price"] == 11

    assert client.delete(f"/products/{pid}", headers=admin_headers).json() == {"ok": True}
    assert db.doc("products", pid) is None


def test_negative_price_is_rejected(client, admin_headers):
    resp = client.post("/products", json={"name": "Shade", "price": -1}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "price must be zero or more"


def test_customers_cannot_edit_catalog(client, user_headers, products):
    resp = client.patch("/products/p1", json={"price": 0}, headers=user_headers)
    assert resp.status_code == 403
