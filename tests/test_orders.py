"""Tests for order reads, cancellation and the admin status flow."""
from __future__ import annotations

from datetime import timedelta


def _put_order(db, now, order_id="o1", user="u1", status="pending", step="none", **extra):
    data = {
        "user": user,
        "items": [{"product": "p1", "name": "Desk Lamp", "price": 10.0, "quantity": 2}],
        "totals": {"subtotal": 20.0, "discount": 0.0, "shipping": 0.0, "total": 20.0},
        "promotion": None,
        "status": status,
        "processing": {"step": step, "stepIndex": 0, "updatedAt": None},
        "createdAt": now,
        "updatedAt": now,
    }
    data.update(extra)
    db.put("orders", order_id, data)
    return order_id


# ---------- Reads ----------

def test_my_orders_newest_first(client, db, now, user, user_headers):
    _put_order(db, now - timedelta(days=2), "old")
    _put_order(db, now, "new")
    _put_order(db, now, "theirs", user="u2")

    resp = client.get("/orders/mine", headers=user_headers)
    assert [o["id"] for o in resp.json()] == ["new", "old"]


def test_other_users_order_is_forbidden(client, db, now, user, user_headers):
    _put_order(db, now, user="u2")
    resp = client.get("/orders/o1", headers=user_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Forbidden"


def test_missing_order(client, user_headers):
    assert client.get("/orders/nope", headers=user_headers).status_code == 404


# ---------- Scenario E ----------

def test_cancel_pending_order(client, db, now, user, user_headers):
    _put_order(db, now)
    resp = client.patch("/orders/o1/cancel", headers=user_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "cancelled"
    assert db.doc("orders", "o1")["status"] == "cancelled"


def test_cancel_rejected_order_fails(client, db, now, user, user_headers):
    _put_order(db, now, status="rejected")
    resp = client.patch("/orders/o1/cancel", headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Order cannot be cancelled once it is rejected"
    assert db.doc("orders", "o1")["status"] == "rejected"


def test_cancel_approved_order(client, db, now, user, user_headers):
    _put_order(db, now, status="approved", step="packing")
    resp = client.patch("/orders/o1/cancel", headers=user_headers)
    assert resp.status_code == 200
    assert db.doc("orders", "o1")["status"] == "cancelled"


def test_cancel_already_cancelled_order_fails(client, db, now, user, user_headers):
    _put_order(db, now, status="cancelled")
    resp = client.patch("/orders/o1/cancel", headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Order cannot be cancelled once it is cancelled"


def test_cancel_delivered_order_fails(client, db, now, user, user_headers):
    _put_order(db, now, status="approved", step="finished")
    resp = client.patch("/orders/o1/cancel", headers=user_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Order cannot be cancelled once it has been delivered"
    assert db.doc("orders", "o1")["status"] == "approved"


def test_cannot_cancel_someone_elses_order(client, db, now, user, user_headers):
    _put_order(db, now, user="u2")
    assert client.patch("/orders/o1/cancel", headers=user_headers).status_code == 403


# ---------- Admin ----------

def test_admin_lists_all_orders(client, db, now, admin_headers):
    _put_order(db, now - timedelta(hours=1), "a")
    _put_order(db, now, "b", user="u2")
    resp = client.get("/admin/orders", headers=admin_headers)
    assert [o["id"] for o in resp.json()] == ["b", "a"]


def test_admin_routes_need_admin(client, user_headers):
    assert client.get("/admin/orders", headers=user_headers).status_code == 403


def test_admin_approves_pending(client, db, now, admin_headers):
    _put_order(db, now)
    resp = client.put("/admin/orders/o1/status", json={"status": "approved"}, headers=admin_headers)
    assert resp.status_code == 200
    assert db.doc("orders", "o1")["status"] == "approved"


def test_admin_cannot_reopen_rejected(client, db, now, admin_headers):
    _put_order(db, now, status="rejected")
    resp = client.put("/admin/orders/o1/status", json={"status": "approved"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Cannot change order status from rejected to approved"


def test_admin_unknown_status(client, db, now, admin_headers):
    _put_order(db, now)
    resp = client.put("/admin/orders/o1/status", json={"status": "shipped"}, headers=admin_headers)
    assert resp.json()["message"] == "Invalid status"


def test_processing_moves_forward_only(client, db, now, admin_headers):
    _put_order(db, now, status="approved")

    resp = client.put("/admin/orders/o1/processing", json={"step": "packing"}, headers=admin_headers)
    assert resp.status_code == 200
    assert db.doc("orders", "o1")["processing"]["step"] == "packing"

    resp = client.put("/admin/orders/o1/processing", json={"step": "preparing"}, headers=admin_headers)
    assert resp.status_code == 400

    client.put("/admin/orders/o1/processing", json={"step": "finished"}, headers=admin_headers)
    stored = db.doc("orders", "o1")
    assert stored["processing"]["step"] == "finished"
    assert stored["deliveredAt"] is not None


def test_processing_needs_approval(client, db, now, admin_headers):
    _put_order(db, now)
    resp = client.put("/admin/orders/o1/processing", json={"step": "packing"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Only approved orders can be processed"
