"""Tests for the persisted cart."""
from __future__ import annotations


def test_empty_cart(client, user_headers):
    resp = client.get("/cart", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json() == []


def test_add_merges_quantities(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p1", "quantity": 2}, headers=user_headers)
    resp = client.post("/cart/add", json={"productId": "p1"}, headers=user_headers)
    assert resp.status_code == 200
    cart = resp.json()
    assert len(cart) == 1
    assert cart[0]["quantity"] == 3
    assert cart[0]["product"]["name"] == "Desk Lamp"
    assert db.doc("users", user)["cart"] == [{"product": "p1", "quantity": 3}]


def test_add_unknown_product(client, user_headers, products):
    resp = client.post("/cart/add", json={"productId": "nope"}, headers=user_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Product not found"


def test_add_rejects_zero_quantity(client, user_headers, products):
    resp = client.post("/cart/add", json={"productId": "p1", "quantity": 0}, headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Quantity must be at least 1"


def test_update_sets_quantity(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p2", "quantity": 5}, headers=user_headers)
    resp = client.put("/cart/update", json={"productId": "p2", "quantity": 2}, headers=user_headers)
    assert resp.json()[0]["quantity"] == 2


def test_update_line_not_in_cart(client, user_headers, products):
    resp = client.put("/cart/update", json={"productId": "p1", "quantity": 2}, headers=user_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Product not found in cart"


def test_remove_and_clear(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p1"}, headers=user_headers)
    client.post("/cart/add", json={"productId": "p2"}, headers=user_headers)

    resp = client.delete("/cart/remove/p1", headers=user_headers)
    assert [l["productId"] for l in resp.json()] == ["p2"]

    resp = client.delete("/cart/clear", headers=user_headers)
    assert resp.json()["cart"] == []
    assert db.doc("users", user)["cart"] == []


def test_count_sums_quantities_and_has_no_side_effects(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p1", "quantity": 2}, headers=user_headers)
    client.post("/cart/add", json={"productId": "p2", "quantity": 3}, headers=user_headers)
    before = db.doc("users", user)

    assert client.get("/cart/count", headers=user_headers).json() == {"count": 5}
    assert client.get("/cart/count", headers=user_headers).json() == {"count": 5}
    assert db.doc("users", user) == before


def test_deleted_product_shows_as_null(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p1"}, headers=user_headers)
    db.data["products"].pop("p1")

    cart = client.get("/cart", headers=user_headers).json()
    assert cart == [{"product": None, "productId": "p1", "quantity": 1}]


def test_transfer_guest_cart(client, db, user, user_headers, products):
    client.post("/cart/add", json={"productId": "p1", "quantity": 1}, headers=user_headers)
    items = [
        {"product": {"_id": "p1"}, "quantity": 2},
        {"product": "p2", "quantity": 1},
        {"product": "gone", "quantity": 4},
        {"product": "p2", "quantity": "lots"},
    ]
    resp = client.post("/cart/transfer", json={"items": items}, headers=user_headers)
    assert resp.status_code == 200
    assert db.doc("users", user)["cart"] == [
        {"product": "p1", "quantity": 3},
        {"product": "p2", "quantity": 1},
    ]


def test_cart_needs_a_customer(client, admin_headers):
    assert client.get("/cart").status_code == 401
    assert client.get("/cart", headers=admin_headers).status_code == 403
