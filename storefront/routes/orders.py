# storefront/routes/orders.py
from __future__ import annotations
from fastapi import APIRouter, Depends

from ..schemas.orders import CreateOrderIn
from ..security import UserCaller, require_user
from ..services.orders import cancel_order, create_order, get_owned_order, list_user_orders


router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
def create_order_endpoint(body: CreateOrderIn, caller: UserCaller = Depends(require_user)):
    """
    Place an order from the caller's server-side cart. Prices and totals are
    always recomputed; a bad promotion code only drops the discount.
    """
    order = create_order(caller.id, body.model_dump(exclude_none=True))
    return {"message": "Order created", "order": order}


@router.get("/mine")
def my_orders(caller: UserCaller = Depends(require_user)):
    return list_user_orders(caller.id)


@router.get("/{order_id}")
def get_order_endpoint(order_id: str, caller: UserCaller = Depends(require_user)):
    return get_owned_order(order_id, caller.id)


@router.patch("/{order_id}/cancel")
def cancel_order_endpoint(order_id: str, caller: UserCaller = Depends(require_user)):
    order = cancel_order(order_id, caller.id)
    return {"success": True, "message": "Order cancelled successfully", "data": order}
