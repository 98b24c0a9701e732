# storefront/routes/refunds.py
from __future__ import annotations
from fastapi import APIRouter, Depends, Query

from ..schemas.refunds import RefundIn, RefundUpdate
from ..security import UserCaller, require_user
from ..services import refunds
from ..services.orders import get_owned_order

router = APIRouter(prefix="/refunds", tags=["refunds"])


@router.post("", status_code=201)
def create_refund(body: RefundIn, caller: UserCaller = Depends(require_user)):
    refund = refunds.create_refund(caller.id, body.model_dump())
    return {"success": True, "message": "Refund request created successfully", "data": refund}


@router.get("")
def my_refunds(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: UserCaller = Depends(require_user),
):
    return {"success": True, "data": refunds.list_user_refunds(caller.id, page, limit)}


@router.get("/eligibility/{order_id}/{product_id}")
def refund_eligibility(order_id: str, product_id: str, caller: UserCaller = Depends(require_user)):
    get_owned_order(order_id, caller.id)
    return {"success": True, "data": refunds.check_eligibility(order_id, product_id)}


@router.get("/{refund_id}")
def get_refund(refund_id: str, caller: UserCaller = Depends(require_user)):
    return {"success": True, "data": refunds.get_refund(refund_id, caller.id)}


@router.put("/{refund_id}")
def update_refund(refund_id: str, body: RefundUpdate, caller: UserCaller = Depends(require_user)):
    refund = refunds.update_refund(refund_id, caller.id, body.model_dump(exclude_none=True))
    return {"success": True, "message": "Refund request updated successfully", "data": refund}


@router.delete("/{refund_id}")
def cancel_refund(refund_id: str, caller: UserCaller = Depends(require_user)):
    refunds.cancel_refund(refund_id, caller.id)
    return {"success": True, "message": "Refund request cancelled successfully"}
