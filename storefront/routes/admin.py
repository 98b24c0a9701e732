from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..schemas.orders import ProcessingIn, StatusIn
from ..schemas.refunds import AdminDecisionIn
from ..security import AdminCaller, require_admin
from ..services import orders, refunds

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ---- Orders ------------------------------------------------------------------
@router.get("/orders")
def all_orders():
    """Every order, newest first, for the back-office table."""
    return orders.list_orders()


@router.put("/orders/{order_id}/status")
def update_order_status(order_id: str, body: StatusIn):
    order = orders.update_status(order_id, body.status)
    return {"message": "Order status updated", "order": order}


@router.put("/orders/{order_id}/processing")
def update_order_processing(order_id: str, body: ProcessingIn):
    order = orders.update_processing(order_id, body.step)
    return {"message": "Processing updated", "order": order}


# ---- Refunds -----------------------------------------------------------------
@router.get("/refunds/stats")
def refund_stats():
    return {"success": True, "data": refunds.refund_stats()}


@router.get("/refunds")
def all_refunds(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sortOrder: str = Query("desc"),
):
    return {"success": True, "data": refunds.list_refunds(status, page, limit, sortOrder)}


@router.get("/refunds/{refund_id}")
def get_refund(refund_id: str):
    return {"success": True, "data": refunds.get_refund(refund_id)}


@router.put("/refunds/{refund_id}/approve")
def approve_refund(refund_id: str, body: AdminDecisionIn, admin: AdminCaller = Depends(require_admin)):
    refund = refunds.approve_refund(
        refund_id, admin.id, body.adminResponse, body.refundMethod, body.estimatedProcessingDays
    )
    return {"success": True, "message": "Refund request approved successfully", "data": refund}


@router.put("/refunds/{refund_id}/reject")
def reject_refund(refund_id: str, body: AdminDecisionIn, admin: AdminCaller = Depends(require_admin)):
    refund = refunds.reject_refund(refund_id, admin.id, body.adminResponse)
    return {"success": True, "message": "Refund request rejected", "data": refund}


@router.put("/refunds/{refund_id}/processing")
def refund_processing(refund_id: str, body: AdminDecisionIn, admin: AdminCaller = Depends(require_admin)):
    refund = refunds.mark_processing(refund_id, admin.id, body.adminResponse)
    return {"success": True, "message": "Refund marked as processing", "data": refund}


@router.put("/refunds/{refund_id}/complete")
def complete_refund(refund_id: str, body: AdminDecisionIn, admin: AdminCaller = Depends(require_admin)):
    refund = refunds.complete_refund(refund_id, admin.id, body.adminResponse)
    return {"success": True, "message": "Refund completed successfully", "data": refund}
