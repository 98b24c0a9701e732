# storefront/services/orders.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from ..errors import AuthorizationError, CartEmptyError, NotFoundError, ValidationError
from .cart import read_cart_snapshot
from .firebase import ensure_firestore, now_utc, snapshot_to_dict
from .pricing import (
    PromotionResult,
    evaluate_promotion,
    money_out,
    normalize_code,
    snapshot_lines,
)
from .products import get_products
from .promotions import find_promotion_ref, record_usage
from .users import USERS

logger = logging.getLogger(__name__)

COLLECTION = "orders"

ORDER_STATUSES = ("pending", "approved", "rejected", "cancelled")

# administrative moves; cancellation is the owner's and handled separately
ADMIN_TRANSITIONS = {
    "pending": {"approved", "rejected"},
}
CANCELLABLE = ("pending", "approved")

PROCESSING_STEPS = ("none", "preparing", "packing", "waiting_to_delivery", "on_the_way", "finished")


def _last4(payment: Optional[Dict[str, Any]]) -> Optional[str]:
    number = (payment or {}).get("cardNumber")
    if not number:
        return None
    digits = "".join(ch for ch in str(number) if ch.isdigit())
    return digits[-4:] or None


def _payment_summary(payment: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {"method": "card", "last4": _last4(payment), "status": "paid"}


def _promotion_code(promotion: Any) -> Optional[str]:
    if isinstance(promotion, dict):
        promotion = promotion.get("code")
    code = normalize_code(promotion if isinstance(promotion, str) else None)
    return code or None


def create_order(user_id: str, body: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Place an order from the caller's persisted cart.

    Cart read, product reads, promotion read, the order write, the promotion
    usage write and the cart clear run in one Firestore transaction, so a
    failure anywhere leaves the cart and the promotion ledger untouched.
    Client supplied ``items`` and ``totals`` are ignored.
    """
    now = now or now_utc()
    db = ensure_firestore()
    user_ref = db.collection(USERS).document(user_id)
    order_ref = db.collection(COLLECTION).document()

    code = _promotion_code(body.get("promotion"))
    promo_ref = find_promotion_ref(code) if code else None

    transaction = db.transaction()

    @firestore.transactional
    def _checkout(txn) -> Dict[str, Any]:
        cart = read_cart_snapshot(user_id, transaction=txn)
        if not cart:
            raise CartEmptyError("Cart is empty")

        products = get_products([c["product"] for c in cart], transaction=txn)
        lines, subtotal = snapshot_lines(cart, products)
        if not lines:
            raise CartEmptyError("No valid items in cart")

        result = PromotionResult(False, "No promotion code")
        promo = None
        if code:
            promo = snapshot_to_dict(promo_ref.get(transaction=txn)) if promo_ref is not None else None
            result = evaluate_promotion(promo, user_id, subtotal, now)
            if not result.valid:
                # a bad code never blocks the order
                logger.info("order for %s placed without promotion %s: %s", user_id, code, result.message)

        shipping = 0
        discount = result.discount if result.valid else 0
        order = {
            "user": user_id,
            "items": lines,
            "totals": {
                "subtotal": money_out(subtotal),
                "discount": money_out(discount),
                "shipping": money_out(shipping),
                "total": money_out(subtotal - discount + shipping),
            },
            "promotion": (
                {"code": promo["code"], "id": promo["id"], "discountAmount": result.discount_amount}
                if result.valid else None
            ),
            "shippingAddress": body.get("shippingAddress") or {},
            "customer": body.get("customer") or {},
            "payment": _payment_summary(body.get("payment")),
            "status": "pending",
            "processing": {"step": "none", "stepIndex": 0, "updatedAt": None},
            "createdAt": now,
            "updatedAt": now,
        }

        txn.set(order_ref, order)
        if result.valid:
            record_usage(txn, promo_ref, promo, user_id, subtotal, result, now)
        txn.update(user_ref, {"cart": []})
        return order

    order = _checkout(transaction)
    order["id"] = order_ref.id
    logger.info("order %s created for %s, total %s", order_ref.id, user_id, order["totals"]["total"])
    return order


# --- READ HELPERS -------------------------------------------------------------
def _load(order_id: str) -> Dict[str, Any]:
    db = ensure_firestore()
    order = snapshot_to_dict(db.collection(COLLECTION).document(order_id).get())
    if not order:
        raise NotFoundError("Order not found")
    return order


def get_order(order_id: str) -> Dict[str, Any]:
    return _load(order_id)


def get_owned_order(order_id: str, user_id: str) -> Dict[str, Any]:
    order = _load(order_id)
    if str(order.get("user")) != str(user_id):
        raise AuthorizationError("Forbidden")
    return order


def list_user_orders(user_id: str) -> List[Dict[str, Any]]:
    db = ensure_firestore()
    q = db.collection(COLLECTION).where("user", "==", user_id)
    orders = [snapshot_to_dict(s) for s in q.stream()]
    orders.sort(key=lambda o: o.get("createdAt") or now_utc(), reverse=True)
    return orders


def list_orders(limit: int = 200) -> List[Dict[str, Any]]:
    db = ensure_firestore()
    q = (
        db.collection(COLLECTION)
        .order_by("createdAt", direction=firestore.Query.DESCENDING)
        .limit(limit)
    )
    return [snapshot_to_dict(s) for s in q.stream()]


# --- STATUS CHANGES -----------------------------------------------------------
def _write(order: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    db = ensure_firestore()
    db.collection(COLLECTION).document(order["id"]).update(changes)
    order.update(changes)
    return order


def cancel_order(order_id: str, user_id: str) -> Dict[str, Any]:
    order = get_owned_order(order_id, user_id)
    status = order.get("status")
    if status not in CANCELLABLE:
        raise ValidationError(f"Order cannot be cancelled once it is {status}")
    if (order.get("processing") or {}).get("step") == "finished":
        raise ValidationError("Order cannot be cancelled once it has been delivered")
    logger.info("order %s cancelled by owner", order_id)
    return _write(order, {"status": "cancelled", "updatedAt": now_utc()})


def update_status(order_id: str, status: str) -> Dict[str, Any]:
    if status not in ORDER_STATUSES or status == "cancelled":
        raise ValidationError("Invalid status")
    order = _load(order_id)
    current = order.get("status")
    if status == current:
        return order
    if status not in ADMIN_TRANSITIONS.get(current, ()):
        raise ValidationError(f"Cannot change order status from {current} to {status}")
    logger.info("order %s moved %s -> %s", order_id, current, status)
    return _write(order, {"status": status, "updatedAt": now_utc()})


def update_processing(order_id: str, step: str) -> Dict[str, Any]:
    if step not in PROCESSING_STEPS:
        raise ValidationError("Invalid processing step")
    order = _load(order_id)
    if order.get("status") != "approved":
        raise ValidationError("Only approved orders can be processed")

    index = PROCESSING_STEPS.index(step)
    current = int((order.get("processing") or {}).get("stepIndex") or 0)
    if index < current:
        raise ValidationError(
            f"Processing cannot move back from {PROCESSING_STEPS[current]} to {step}"
        )

    now = now_utc()
    changes = {"processing": {"step": step, "stepIndex": index, "updatedAt": now}, "updatedAt": now}
    if step == "finished":
        changes["deliveredAt"] = now
    return _write(order, changes)
