# storefront/services/products.py
from __future__ import annotations
from typing import List, Dict, Any, Optional, Iterable

from ..errors import NotFoundError, ValidationError
from .firebase import ensure_firestore, now_utc, snapshot_to_dict

COLLECTION = "products"

# fields a cart line shows next to each product
CART_FIELDS = ("name", "price", "imageUrl", "category", "brand", "stock")


# --- READ HELPERS -------------------------------------------------------------
def list_products(category: Optional[str] = None,
                  active: Optional[bool] = None) -> List[Dict[str, Any]]:
    """
    Catalog list with optional category / active filters.
    """
    db = ensure_firestore()
    col = db.collection(COLLECTION)
    if category:
        col = col.where("category", "==", category)
    if active is not None:
        col = col.where("isActive", "==", bool(active))

    out: List[Dict[str, Any]] = []
    for d in col.stream():
        data = d.to_dict() or {}
        data["id"] = d.id
        out.append(data)
    out.sort(key=lambda p: (p.get("name") or "").lower())
    return out


def get_product(product_id: str, transaction=None) -> Optional[Dict[str, Any]]:
    if not product_id:
        return None
    db = ensure_firestore()
    snap = db.collection(COLLECTION).document(product_id).get(transaction=transaction)
    return snapshot_to_dict(snap)


def get_products(product_ids: Iterable[str], transaction=None) -> Dict[str, Optional[Dict[str, Any]]]:
    """Load products by id; missing ones map to None."""
    return {pid: get_product(pid, transaction=transaction) for pid in dict.fromkeys(product_ids)}


def public_view(product: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not product:
        return None
    out = {k: product.get(k) for k in CART_FIELDS}
    out["id"] = product["id"]
    return out


# --- WRITES -------------------------------------------------------------------
def _check_numbers(payload: Dict[str, Any]) -> None:
    if "price" in payload and (payload["price"] is None or float(payload["price"]) < 0):
        raise ValidationError("price must be zero or more")
    if "stock" in payload and (payload["stock"] is None or int(payload["stock"]) < 0):
        raise ValidationError("stock must be zero or more")


def create_product(payload: Dict[str, Any]) -> Dict[str, Any]:
    name: str = (payload.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")
    if payload.get("price") is None:
        raise ValidationError("price is required")
    _check_numbers(payload)

    db = ensure_firestore()
    ref = db.collection(COLLECTION).document()
    now = now_utc()
    base = {
        "name": name,
        "description": payload.get("description") or "",
        "price": float(payload["price"]),
        "stock": int(payload.get("stock") or 0),
        "category": payload.get("category"),
        "brand": payload.get("brand"),
        "imageUrl": payload.get("imageUrl"),
        "isActive": bool(payload.get("isActive", True)),
        "createdAt": now,
        "updatedAt": now,
    }
    ref.set(base)
    out = base.copy()
    out["id"] = ref.id
    return out


def update_product(product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    if not product_id:
        raise ValidationError("product_id required")
    if "name" in payload and not (payload.get("name") or "").strip():
        raise ValidationError("name is required")
    _check_numbers(payload)

    db = ensure_firestore()
    ref = db.collection(COLLECTION).document(product_id)
    if not ref.get().exists:
        raise NotFoundError("Product not found")
    ref.set({**payload, "updatedAt": now_utc()}, merge=True)
    return snapshot_to_dict(ref.get())


def delete_product(product_id: str) -> None:
    if not product_id:
        raise ValidationError("product_id required")
    db = ensure_firestore()
    ref = db.collection(COLLECTION).document(product_id)
    if not ref.get().exists:
        raise NotFoundError("Product not found")
    ref.delete()
