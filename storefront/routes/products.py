# storefront/routes/products.py
from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..errors import NotFoundError
from ..security import require_admin
from ..services.products import (
    list_products,
    get_product,
    create_product,
    update_product,
    delete_product,
)

router = APIRouter(prefix="/products", tags=["products"])


# ---- Pydantic models ---------------------------------------------------------
class ProductIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, description="Current unit price")
    stock: Optional[int] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    imageUrl: Optional[str] = None
    isActive: Optional[bool] = True


# ---- Routes ------------------------------------------------------------------
@router.get("")
def list_products_endpoint(
    category: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
):
    return list_products(category=category, active=active)


@router.get("/{product_id}")
def get_product_endpoint(product_id: str):
    product = get_product(product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_product_endpoint(payload: ProductIn):
    return create_product(payload.model_dump(exclude_unset=True))


@router.patch("/{product_id}", dependencies=[Depends(require_admin)])
def update_product_endpoint(product_id: str, payload: ProductIn):
    return update_product(product_id, payload.model_dump(exclude_unset=True))


@router.delete("/{product_id}", dependencies=[Depends(require_admin)])
def delete_product_endpoint(product_id: str):
    delete_product(product_id)
    return {"ok": True}
