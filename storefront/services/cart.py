# storefront/services/cart.py
"""
The persisted cart lives on the user document as ``cart: [{product, quantity}]``.

Reads resolve product references for display only; checkout re-reads the
products itself and never trusts these resolved values.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..errors import NotFoundError, ValidationError
from .firebase import ensure_firestore
from .products import get_product, get_products, public_view
from .users import USERS, get_user

logger = logging.getLogger(__name__)


def _cart_lines(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    lines = []
    for item in user.get("cart") or []:
        pid = item.get("product")
        qty = int(item.get("quantity") or 0)
        if pid and qty >= 1:
            lines.append({"product": str(pid), "quantity": qty})
    return lines


def _resolve(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    products = get_products([l["product"] for l in lines])
    return [
        {"product": public_view(products.get(l["product"])), "productId": l["product"], "quantity": l["quantity"]}
        for l in lines
    ]


def _save(user_id: str, lines: List[Dict[str, Any]]) -> None:
    db = ensure_firestore()
    db.collection(USERS).document(user_id).update({"cart": lines})


def read_cart_snapshot(user_id: str, transaction=None) -> List[Dict[str, Any]]:
    """Return the caller's raw cart lines. An empty cart is an empty list."""
    return _cart_lines(get_user(user_id, transaction=transaction))


def get_cart(user_id: str) -> List[Dict[str, Any]]:
    return _resolve(read_cart_snapshot(user_id))


def _require_product(product_id: str) -> None:
    if not product_id or not str(product_id).strip():
        raise ValidationError("Invalid product ID")
    if get_product(product_id) is None:
        raise NotFoundError("Product not found")


def add_to_cart(user_id: str, product_id: str, quantity: int = 1) -> List[Dict[str, Any]]:
    if quantity is None or int(quantity) < 1:
        raise ValidationError("Quantity must be at least 1")
    _require_product(product_id)
    lines = read_cart_snapshot(user_id)

    for line in lines:
        if line["product"] == product_id:
            line["quantity"] += int(quantity)
            break
    else:
        lines.append({"product": product_id, "quantity": int(quantity)})

    _save(user_id, lines)
    return _resolve(lines)


def update_cart_item(user_id: str, product_id: str, quantity: int) -> List[Dict[str, Any]]:
    if not product_id:
        raise ValidationError("Invalid product ID")
    if not quantity or int(quantity) < 1:
        raise ValidationError("Quantity must be at least 1")
    lines = read_cart_snapshot(user_id)

    line = next((l for l in lines if l["product"] == product_id), None)
    if line is None:
        raise NotFoundError("Product not found in cart")
    line["quantity"] = int(quantity)

    _save(user_id, lines)
    return _resolve(lines)


def remove_from_cart(user_id: str, product_id: str) -> List[Dict[str, Any]]:
    if not product_id:
        raise ValidationError("Invalid product ID")
    lines = [l for l in read_cart_snapshot(user_id) if l["product"] != product_id]
    _save(user_id, lines)
    return _resolve(lines)


def clear_cart(user_id: str) -> None:
    get_user(user_id)
    _save(user_id, [])


def cart_count(user_id: str) -> int:
    return sum(l["quantity"] for l in read_cart_snapshot(user_id))


def _guest_product_id(item: Dict[str, Any]) -> str:
    product = item.get("product")
    if isinstance(product, dict):
        return str(product.get("id") or product.get("_id") or "")
    return str(product or "")


def transfer_guest_cart(user_id: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge a cart built while logged out into the user's cart."""
    lines = read_cart_snapshot(user_id)
    by_id = {l["product"]: l for l in lines}
    skipped = 0

    for item in items:
        pid = _guest_product_id(item)
        try:
            qty = int(item.get("quantity") or 0)
        except (TypeError, ValueError):
            qty = 0
        if not pid or qty < 1 or get_product(pid) is None:
            skipped += 1
            continue
        if pid in by_id:
            by_id[pid]["quantity"] += qty
        else:
            by_id[pid] = {"product": pid, "quantity": qty}
            lines.append(by_id[pid])

    if skipped:
        logger.info("guest cart transfer for %s skipped %d line(s)", user_id, skipped)
    _save(user_id, lines)
    return _resolve(lines)
