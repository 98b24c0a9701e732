# storefront/services/promotions.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from ..errors import ConflictError, NotFoundError, ValidationError
from .firebase import as_utc, ensure_firestore, now_utc, snapshot_to_dict
from .pricing import (
    PROMOTION_TYPES,
    PromotionResult,
    evaluate_promotion,
    is_currently_valid,
    money_out,
    normalize_code,
    to_decimal,
    usage_entry,
)
from .products import list_products

logger = logging.getLogger(__name__)

COLLECTION = "promotions"

REQUIRED_FIELDS = ("name", "description", "code", "type", "discountValue", "startDate", "endDate")

# caps an admin may clear by sending null
NULLABLE_FIELDS = ("maxDiscountAmount", "maxUsageCount")


def public_promotion(promotion: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Promotion as shown to shoppers: no usage ledger."""
    if not promotion:
        return None
    return {k: v for k, v in promotion.items() if k not in ("usedBy", "createdBy")}


# --- READ HELPERS -------------------------------------------------------------
def list_promotions() -> List[Dict[str, Any]]:
    db = ensure_firestore()
    q = db.collection(COLLECTION).order_by("createdAt", direction=firestore.Query.DESCENDING)
    return [snapshot_to_dict(s) for s in q.stream()]


def list_active_promotions(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or now_utc()
    db = ensure_firestore()
    q = db.collection(COLLECTION).where("isActive", "==", True)
    out = []
    for snap in q.stream():
        promo = snapshot_to_dict(snap)
        if is_currently_valid(promo, now):
            out.append(public_promotion(promo))
    return out


def get_promotion(promotion_id: str) -> Dict[str, Any]:
    db = ensure_firestore()
    promo = snapshot_to_dict(db.collection(COLLECTION).document(promotion_id).get())
    if not promo:
        raise NotFoundError("Promotion not found")
    return promo


def find_promotion_ref(code: Optional[str]):
    """Reference of the promotion with this code (case-insensitive), or None."""
    key = normalize_code(code)
    if not key:
        return None
    db = ensure_firestore()
    q = db.collection(COLLECTION).where("code", "==", key).limit(1)
    for snap in q.stream():
        return snap.reference
    return None


def products_for_promotion() -> List[Dict[str, Any]]:
    return [
        {"id": p["id"], "name": p.get("name"), "price": p.get("price"),
         "category": p.get("category"), "imageUrl": p.get("imageUrl")}
        for p in list_products(active=True)
    ]


# --- VALIDATION ---------------------------------------------------------------
def _check_rules(data: Dict[str, Any]) -> None:
    start, end = as_utc(data.get("startDate")), as_utc(data.get("endDate"))
    if start is None or end is None or end <= start:
        raise ValidationError("End date must be after start date")

    kind = data.get("type")
    if kind not in PROMOTION_TYPES:
        raise ValidationError(f"type must be one of {', '.join(PROMOTION_TYPES)}")

    value = to_decimal(data.get("discountValue"))
    if kind == "percentage" and (value <= 0 or value > 100):
        raise ValidationError("Percentage discount must be between 1 and 100")
    if kind == "fixed_amount" and value <= 0:
        raise ValidationError("Fixed amount discount must be greater than 0")

    code = data.get("code") or ""
    if not 3 <= len(code) <= 20:
        raise ValidationError("Promotion code must be 3-20 characters")


def _code_taken(code: str, exclude_id: Optional[str] = None) -> bool:
    ref = find_promotion_ref(code)
    return ref is not None and ref.id != exclude_id


# --- WRITES -------------------------------------------------------------------
def create_promotion(payload: Dict[str, Any], admin_id: str) -> Dict[str, Any]:
    if any(payload.get(f) in (None, "") for f in REQUIRED_FIELDS):
        raise ValidationError("Missing required fields")

    code = normalize_code(payload["code"])
    if _code_taken(code):
        raise ConflictError("Promotion code already exists")

    now = now_utc()
    data = {
        "name": payload["name"].strip(),
        "description": payload["description"].strip(),
        "code": code,
        "type": payload["type"],
        "discountValue": float(payload["discountValue"]),
        "maxDiscountAmount": payload.get("maxDiscountAmount") or None,
        "minimumOrderValue": float(payload.get("minimumOrderValue") or 0),
        "maxUsageCount": payload.get("maxUsageCount") or None,
        "usageCount": 0,
        "maxUsagePerUser": int(payload.get("maxUsagePerUser") or 1),
        "startDate": as_utc(payload["startDate"]),
        "endDate": as_utc(payload["endDate"]),
        "applicableProducts": list(payload.get("applicableProducts") or []),
        "applicableCategories": list(payload.get("applicableCategories") or []),
        "isApplicableToAll": payload.get("isApplicableToAll", True) is not False,
        "isActive": True,
        "usedBy": [],
        "createdBy": admin_id,
        "createdAt": now,
        "updatedAt": now,
    }
    _check_rules(data)

    db = ensure_firestore()
    ref = db.collection(COLLECTION).document()
    ref.set(data)
    data["id"] = ref.id
    logger.info("promotion %s created by %s", code, admin_id)
    return data


def update_promotion(promotion_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    current = get_promotion(promotion_id)
    changes = {
        k: v for k, v in payload.items()
        if k not in ("id", "usedBy", "usageCount", "createdBy")
        and (v is not None or k in NULLABLE_FIELDS)
    }

    if changes.get("code"):
        changes["code"] = normalize_code(changes["code"])
        if changes["code"] != current.get("code") and _code_taken(changes["code"], promotion_id):
            raise ConflictError("Promotion code already exists")
    for key in ("startDate", "endDate"):
        if changes.get(key) is not None:
            changes[key] = as_utc(changes[key])

    merged = {**current, **changes}
    _check_rules(merged)

    changes["updatedAt"] = now_utc()
    db = ensure_firestore()
    ref = db.collection(COLLECTION).document(promotion_id)
    ref.set(changes, merge=True)
    return snapshot_to_dict(ref.get())


def delete_promotion(promotion_id: str) -> None:
    promo = get_promotion(promotion_id)
    if int(promo.get("usageCount") or 0) > 0:
        raise ConflictError(
            "Cannot delete promotion that has been used. Consider deactivating it instead."
        )
    db = ensure_firestore()
    db.collection(COLLECTION).document(promotion_id).delete()
    logger.info("promotion %s deleted", promo.get("code"))


def toggle_promotion(promotion_id: str) -> Dict[str, Any]:
    promo = get_promotion(promotion_id)
    active = not promo.get("isActive", True)
    db = ensure_firestore()
    db.collection(COLLECTION).document(promotion_id).update(
        {"isActive": active, "updatedAt": now_utc()}
    )
    promo["isActive"] = active
    return promo


# --- EVALUATION ---------------------------------------------------------------
def validate_code(code: str, user_id: Optional[str], order_value: Any,
                  now: Optional[datetime] = None) -> PromotionResult:
    """Read-only check used by the checkout page before the order is placed."""
    ref = find_promotion_ref(code)
    promo = snapshot_to_dict(ref.get()) if ref is not None else None
    return evaluate_promotion(promo, user_id, order_value, now or now_utc())


def record_usage(transaction, ref, promotion: Dict[str, Any], user_id: str,
                 order_value: Any, result: PromotionResult, now: datetime) -> None:
    """Queue the ledger append and counter bump on ``transaction``."""
    used_by = list(promotion.get("usedBy") or [])
    used_by.append(usage_entry(user_id, now, order_value, result.discount))
    transaction.update(ref, {
        "usedBy": used_by,
        "usageCount": int(promotion.get("usageCount") or 0) + 1,
        "updatedAt": now,
    })


def apply_code(code: str, user_id: str, order_value: Any,
               now: Optional[datetime] = None) -> PromotionResult:
    """Validate and record a usage in one transaction."""
    now = now or now_utc()
    ref = find_promotion_ref(code)
    if ref is None:
        return evaluate_promotion(None, user_id, order_value, now)

    db = ensure_firestore()
    transaction = db.transaction()

    @firestore.transactional
    def _apply(txn) -> PromotionResult:
        promo = snapshot_to_dict(ref.get(transaction=txn))
        result = evaluate_promotion(promo, user_id, order_value, now)
        if result.valid:
            record_usage(txn, ref, promo, user_id, order_value, result, now)
        return result

    result = _apply(transaction)
    if result.valid:
        logger.info("promotion %s applied for %s: %s off", normalize_code(code), user_id, result.discount)
    return result


def promotion_stats(promotion_id: str) -> Dict[str, Any]:
    promo = get_promotion(promotion_id)
    used_by = promo.get("usedBy") or []
    usage = int(promo.get("usageCount") or 0)
    cap = promo.get("maxUsageCount")

    total_discount = sum(to_decimal(u.get("discountApplied")) for u in used_by)
    avg_order = (
        sum(to_decimal(u.get("orderValue")) for u in used_by) / len(used_by)
        if used_by else 0
    )
    return {
        "totalUsage": usage,
        "maxUsage": cap,
        "usagePercentage": f"{usage / cap * 100:.2f}" if cap else None,
        "totalDiscountGiven": money_out(total_discount),
        "averageOrderValue": money_out(avg_order),
        "recentUsages": list(reversed(used_by[-10:])),
    }
