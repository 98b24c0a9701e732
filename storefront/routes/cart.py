# storefront/routes/cart.py
from __future__ import annotations
from typing import Any, Dict, List
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..security import UserCaller, require_user
from ..services import cart as carts

router = APIRouter(prefix="/cart", tags=["cart"])


class CartAddBody(BaseModel):
    productId: str
    quantity: int = 1


class CartUpdateBody(BaseModel):
    productId: str
    quantity: int


class CartTransferBody(BaseModel):
    items: List[Dict[str, Any]]


@router.get("")
def get_cart(caller: UserCaller = Depends(require_user)):
    return carts.get_cart(caller.id)


@router.post("/add")
def add_to_cart(body: CartAddBody, caller: UserCaller = Depends(require_user)):
    return carts.add_to_cart(caller.id, body.productId, body.quantity)


@router.put("/update")
def update_cart_item(body: CartUpdateBody, caller: UserCaller = Depends(require_user)):
    return carts.update_cart_item(caller.id, body.productId, body.quantity)


@router.delete("/remove/{product_id}")
def remove_from_cart(product_id: str, caller: UserCaller = Depends(require_user)):
    return carts.remove_from_cart(caller.id, product_id)


@router.delete("/clear")
def clear_cart(caller: UserCaller = Depends(require_user)):
    carts.clear_cart(caller.id)
    return {"message": "Cart cleared successfully", "cart": []}


@router.get("/count")
def cart_count(caller: UserCaller = Depends(require_user)):
    return {"count": carts.cart_count(caller.id)}


@router.post("/transfer")
def transfer_guest_cart(body: CartTransferBody, caller: UserCaller = Depends(require_user)):
    cart = carts.transfer_guest_cart(caller.id, body.items)
    return {"message": "Guest cart transferred successfully", "cart": cart}
