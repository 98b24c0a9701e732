# storefront/services/refunds.py
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import NotFoundError, ValidationError
from ..settings import settings
from .firebase import as_utc, ensure_firestore, now_utc, snapshot_to_dict
from .orders import COLLECTION as ORDERS
from .pricing import money_out, to_decimal

logger = logging.getLogger(__name__)

COLLECTION = "refunds"

REASONS = (
    "Defective Product",
    "Wrong Item Received",
    "Not as Described",
    "Damaged During Shipping",
    "Changed Mind",
    "Size/Color Issue",
    "Late Delivery",
    "Other",
)
REFUND_METHODS = ("Original Payment Method", "Bank Transfer", "Store Credit")
REFUND_STATUSES = ("Pending", "Approved", "Rejected", "Processing", "Completed")
OPEN_STATUSES = ("Pending", "Approved", "Processing")

# "Delivered" is never written by this service but older orders may carry it
DELIVERED_STATUS = "Delivered"


def _order(order_id: str) -> Optional[Dict[str, Any]]:
    db = ensure_firestore()
    return snapshot_to_dict(db.collection(ORDERS).document(order_id).get())


def _open_refund_exists(order_id: str, product_id: str) -> bool:
    db = ensure_firestore()
    q = (
        db.collection(COLLECTION)
        .where("orderId", "==", order_id)
        .where("productId", "==", product_id)
    )
    return any((s.to_dict() or {}).get("status") in OPEN_STATUSES for s in q.stream())


def check_eligibility(order_id: str, product_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    An item is refundable when its order finished fulfilment (approved with
    the ``finished`` step, or the legacy ``Delivered`` status), the refund
    window has not passed, and no open refund exists for it.
    """
    now = now or now_utc()
    order = _order(order_id)
    if not order:
        return {"eligible": False, "reason": "Order not found"}

    status = order.get("status")
    if status in ("rejected", "cancelled"):
        return {"eligible": False, "reason": "Cannot request refund for rejected or cancelled orders"}

    finished = status == "approved" and (order.get("processing") or {}).get("step") == "finished"
    if not finished and status != DELIVERED_STATUS:
        return {"eligible": False, "reason": "Order must be approved and completed to request refund"}

    delivered = as_utc(order.get("deliveredAt") or order.get("updatedAt")) or now
    days = math.floor((now - delivered).total_seconds() / 86400)
    if days > settings.refund_window_days:
        return {
            "eligible": False,
            "reason": f"Refund period ({settings.refund_window_days} days) has expired",
        }

    if _open_refund_exists(order_id, product_id):
        return {"eligible": False, "reason": "Refund request already exists for this item"}

    return {"eligible": True, "daysSinceDelivery": days}


def _order_line(order: Dict[str, Any], product_id: str) -> Optional[Dict[str, Any]]:
    return next((i for i in order.get("items") or [] if str(i.get("product")) == str(product_id)), None)


def _max_amount(line: Dict[str, Any]):
    return to_decimal(line.get("price")) * int(line.get("quantity") or 0)


def _check_amount(amount: Any, line: Dict[str, Any]) -> None:
    limit = _max_amount(line)
    if to_decimal(amount) <= 0:
        raise ValidationError("Refund amount must be greater than 0")
    if to_decimal(amount) > limit:
        raise ValidationError(f"Refund amount cannot exceed {money_out(limit)}")


def create_refund(user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    order_id = payload.get("orderId")
    product_id = payload.get("productId")
    reason = payload.get("reason")
    description = (payload.get("description") or "").strip()
    amount = payload.get("refundAmount")
    if not (order_id and product_id and reason and description and amount):
        raise ValidationError("All fields are required")
    if reason not in REASONS:
        raise ValidationError("Invalid refund reason")
    if len(description) > 500:
        raise ValidationError("Description must be 500 characters or fewer")

    eligibility = check_eligibility(order_id, product_id)
    if not eligibility["eligible"]:
        raise ValidationError(eligibility["reason"])

    order = _order(order_id)
    if not order or str(order.get("user")) != str(user_id):
        raise NotFoundError("Order not found or does not belong to you")

    line = _order_line(order, product_id)
    if line is None:
        raise ValidationError("Product not found in this order")
    _check_amount(amount, line)

    now = now_utc()
    data = {
        "orderId": order_id,
        "userId": user_id,
        "productId": product_id,
        "productName": line.get("name"),
        "reason": reason,
        "description": description,
        "refundAmount": money_out(amount),
        "status": "Pending",
        "adminResponse": None,
        "adminId": None,
        "refundMethod": "Original Payment Method",
        "estimatedProcessingDays": 7,
        "actualProcessingDate": None,
        "createdAt": now,
        "updatedAt": now,
    }
    db = ensure_firestore()
    ref = db.collection(COLLECTION).document()
    ref.set(data)
    data["id"] = ref.id
    logger.info("refund %s requested for order %s", ref.id, order_id)
    return data


def _paginate(rows: List[Dict[str, Any]], page: int, limit: int) -> Dict[str, Any]:
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)
    start = (page - 1) * limit
    return {
        "refunds": rows[start:start + limit],
        "total": len(rows),
        "pages": math.ceil(len(rows) / limit),
        "currentPage": page,
    }


def _newest_first(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda r: r.get("createdAt") or now_utc(), reverse=True)


def list_user_refunds(user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    db = ensure_firestore()
    q = db.collection(COLLECTION).where("userId", "==", user_id)
    return _paginate(_newest_first([snapshot_to_dict(s) for s in q.stream()]), page, limit)


def get_refund(refund_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    db = ensure_firestore()
    refund = snapshot_to_dict(db.collection(COLLECTION).document(refund_id).get())
    if not refund or (user_id is not None and str(refund.get("userId")) != str(user_id)):
        raise NotFoundError("Refund request not found")
    return refund


def _write(refund: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    changes["updatedAt"] = now_utc()
    db = ensure_firestore()
    db.collection(COLLECTION).document(refund["id"]).update(changes)
    refund.update(changes)
    return refund


def update_refund(refund_id: str, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    refund = get_refund(refund_id, user_id)
    if refund.get("status") != "Pending":
        raise ValidationError("Cannot update refund request that is not pending")

    changes: Dict[str, Any] = {}
    if payload.get("reason"):
        if payload["reason"] not in REASONS:
            raise ValidationError("Invalid refund reason")
        changes["reason"] = payload["reason"]
    if payload.get("description"):
        changes["description"] = payload["description"].strip()[:500]
    if payload.get("refundAmount"):
        order = _order(refund["orderId"]) or {}
        line = _order_line(order, refund["productId"])
        if line is None:
            raise ValidationError("Product not found in this order")
        _check_amount(payload["refundAmount"], line)
        changes["refundAmount"] = money_out(payload["refundAmount"])
    return _write(refund, changes)


def cancel_refund(refund_id: str, user_id: str) -> None:
    refund = get_refund(refund_id, user_id)
    if refund.get("status") != "Pending":
        raise ValidationError("Cannot cancel refund request that is not pending")
    db = ensure_firestore()
    db.collection(COLLECTION).document(refund_id).delete()


# --- ADMIN --------------------------------------------------------------------
def list_refunds(status: Optional[str] = None, page: int = 1, limit: int = 10,
                 sort_order: str = "desc") -> Dict[str, Any]:
    db = ensure_firestore()
    col = db.collection(COLLECTION)
    if status and status != "All":
        col = col.where("status", "==", status)
    rows = _newest_first([snapshot_to_dict(s) for s in col.stream()])
    if sort_order == "asc":
        rows.reverse()
    out = _paginate(rows, page, limit)
    out["stats"] = refund_stats()
    return out


def refund_stats() -> Dict[str, Any]:
    db = ensure_firestore()
    rows = [s.to_dict() or {} for s in db.collection(COLLECTION).stream()]

    by_status = []
    for status in REFUND_STATUSES:
        matching = [r for r in rows if r.get("status") == status]
        if matching:
            by_status.append({
                "_id": status,
                "count": len(matching),
                "totalAmount": money_out(sum(to_decimal(r.get("refundAmount")) for r in matching)),
            })

    durations = [
        (as_utc(r["actualProcessingDate"]) - as_utc(r["createdAt"])).total_seconds() / 86400
        for r in rows
        if r.get("status") == "Completed" and r.get("actualProcessingDate") and r.get("createdAt")
    ]
    stats = {status.lower(): sum(1 for r in rows if r.get("status") == status) for status in REFUND_STATUSES}
    stats.update({
        "total": len(rows),
        "avgProcessingTime": round(sum(durations) / len(durations)) if durations else 0,
        "byStatus": by_status,
    })
    return stats


def _transition(refund_id: str, admin_id: str, expected: str, target: str,
                changes: Dict[str, Any], verb: str) -> Dict[str, Any]:
    refund = get_refund(refund_id)
    if refund.get("status") != expected:
        raise ValidationError(f"Can only {verb} {expected.lower()} refund requests")
    changes.update({"status": target, "adminId": admin_id})
    logger.info("refund %s %s -> %s by %s", refund_id, expected, target, admin_id)
    return _write(refund, changes)


def approve_refund(refund_id: str, admin_id: str, admin_response: Optional[str] = None,
                   refund_method: Optional[str] = None,
                   estimated_days: Optional[int] = None) -> Dict[str, Any]:
    changes: Dict[str, Any] = {"adminResponse": admin_response or "Refund request has been approved"}
    if refund_method:
        if refund_method not in REFUND_METHODS:
            raise ValidationError("Invalid refund method")
        changes["refundMethod"] = refund_method
    if estimated_days:
        changes["estimatedProcessingDays"] = int(estimated_days)
    return _transition(refund_id, admin_id, "Pending", "Approved", changes, "approve")


def reject_refund(refund_id: str, admin_id: str, admin_response: Optional[str]) -> Dict[str, Any]:
    if not admin_response or not admin_response.strip():
        raise ValidationError("Admin response is required when rejecting a refund")
    return _transition(refund_id, admin_id, "Pending", "Rejected",
                       {"adminResponse": admin_response.strip()}, "reject")


def mark_processing(refund_id: str, admin_id: str, admin_response: Optional[str] = None) -> Dict[str, Any]:
    changes = {"adminResponse": admin_response} if admin_response else {}
    return _transition(refund_id, admin_id, "Approved", "Processing", changes, "process")


def complete_refund(refund_id: str, admin_id: str, admin_response: Optional[str] = None) -> Dict[str, Any]:
    changes: Dict[str, Any] = {"actualProcessingDate": now_utc()}
    if admin_response:
        changes["adminResponse"] = admin_response
    return _transition(refund_id, admin_id, "Processing", "Completed", changes, "complete")
