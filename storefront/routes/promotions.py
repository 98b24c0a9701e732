# storefront/routes/promotions.py
from __future__ import annotations
from fastapi import APIRouter, Depends

from ..errors import AuthorizationError, ValidationError
from ..schemas.promotions import ApplyIn, PromotionIn, PromotionUpdate, ValidateIn
from ..security import AdminCaller, Caller, UserCaller, get_caller, require_admin, require_user
from ..services import promotions as promos
from ..services.pricing import money_out

router = APIRouter(prefix="/promotions", tags=["promotions"])


def _ok(data=None, message=None):
    out = {"success": True}
    if message:
        out["message"] = message
    if data is not None:
        out["data"] = data
    return out


# ---- Shopper routes ----------------------------------------------------------
@router.get("/active")
def active_promotions():
    return _ok(promos.list_active_promotions())


@router.post("/validate")
def validate_promotion(body: ValidateIn, caller: UserCaller = Depends(require_user)):
    if not body.code:
        raise ValidationError("Promotion code is required")
    if not body.orderValue or body.orderValue <= 0:
        raise ValidationError("Valid order value is required")

    result = promos.validate_code(body.code, caller.id, body.orderValue)
    if not result.valid:
        raise ValidationError(result.message)
    return _ok(
        {
            "promotionId": result.promotion["id"],
            "discountAmount": result.discount_amount,
            "promotion": promos.public_promotion(result.promotion),
        },
        result.message,
    )


@router.post("/apply")
def apply_promotion(body: ApplyIn, caller: Caller = Depends(get_caller)):
    if not body.code or not body.orderValue or not body.userId:
        raise ValidationError("Code, order value, and user ID are required")
    if isinstance(caller, UserCaller) and caller.id != body.userId:
        raise AuthorizationError("Promotions can only be applied to your own account")

    result = promos.apply_code(body.code, body.userId, body.orderValue)
    if not result.valid:
        raise ValidationError(result.message)
    return _ok(
        {
            "promotionId": result.promotion["id"],
            "code": result.promotion["code"],
            "discountAmount": result.discount_amount,
            "promotion": promos.public_promotion(result.promotion),
            "finalTotal": money_out(body.orderValue - result.discount_amount),
        },
        "Promotion applied successfully",
    )


# ---- Admin routes ------------------------------------------------------------
@router.get("", dependencies=[Depends(require_admin)])
def all_promotions():
    return _ok(promos.list_promotions())


@router.get("/products", dependencies=[Depends(require_admin)])
def products_for_promotion():
    return _ok(promos.products_for_promotion())


@router.post("", status_code=201)
def create_promotion(body: PromotionIn, admin: AdminCaller = Depends(require_admin)):
    promo = promos.create_promotion(body.model_dump(), admin.id)
    return _ok(promo, "Promotion created successfully")


@router.get("/{promotion_id}", dependencies=[Depends(require_admin)])
def get_promotion(promotion_id: str):
    return _ok(promos.get_promotion(promotion_id))


@router.put("/{promotion_id}", dependencies=[Depends(require_admin)])
def update_promotion(promotion_id: str, body: PromotionUpdate):
    promo = promos.update_promotion(promotion_id, body.model_dump(exclude_unset=True))
    return _ok(promo, "Promotion updated successfully")


@router.delete("/{promotion_id}", dependencies=[Depends(require_admin)])
def delete_promotion(promotion_id: str):
    promos.delete_promotion(promotion_id)
    return _ok(message="Promotion deleted successfully")


@router.patch("/{promotion_id}/toggle-status", dependencies=[Depends(require_admin)])
def toggle_promotion(promotion_id: str):
    promo = promos.toggle_promotion(promotion_id)
    state = "activated" if promo["isActive"] else "deactivated"
    return _ok(promo, f"Promotion {state} successfully")


@router.get("/{promotion_id}/stats", dependencies=[Depends(require_admin)])
def promotion_stats(promotion_id: str):
    return _ok(promos.promotion_stats(promotion_id))
