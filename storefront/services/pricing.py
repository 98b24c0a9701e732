# storefront/services/pricing.py
"""
Money arithmetic for checkout: line snapshots, subtotals and promotion
discounts. Everything here is pure so it can be reused by the order
transaction and by the standalone promotion endpoints.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .firebase import as_utc

CENTS = Decimal("0.01")

PROMOTION_TYPES = ("percentage", "fixed_amount", "free_shipping", "buy_x_get_y")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 10.1 as 10.1 instead of its binary float expansion
    return Decimal(str(value))


def round_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def money_out(value: Any) -> float:
    """Documents and JSON carry plain numbers."""
    return float(round_money(value))


def _fmt(value: Any) -> str:
    return format(round_money(value), "f")


# --- Lines --------------------------------------------------------------------
def snapshot_lines(
    cart: Iterable[Dict[str, Any]],
    products: Dict[str, Optional[Dict[str, Any]]],
) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Build order lines from cart lines and the freshly loaded products.

    Lines whose product no longer exists are dropped. The subtotal is summed
    unrounded and only rounded once at the end.
    """
    lines: List[Dict[str, Any]] = []
    subtotal = Decimal("0")
    for item in cart:
        product = products.get(item.get("product"))
        if not product:
            continue
        qty = int(item.get("quantity") or 0)
        if qty < 1:
            continue
        price = to_decimal(product.get("price"))
        lines.append({
            "product": product["id"],
            "name": product.get("name"),
            "price": float(price),
            "quantity": qty,
        })
        subtotal += price * qty
    return lines, round_money(subtotal)


# --- Promotions ---------------------------------------------------------------
@dataclass
class PromotionResult:
    valid: bool
    message: str
    discount: Decimal = Decimal("0")
    promotion: Optional[Dict[str, Any]] = field(default=None)

    @property
    def discount_amount(self) -> float:
        return float(self.discount)


def is_currently_valid(promotion: Dict[str, Any], now: datetime) -> bool:
    if not promotion.get("isActive", True):
        return False
    start = as_utc(promotion.get("startDate"))
    end = as_utc(promotion.get("endDate"))
    if start is None or end is None:
        return False
    if not (start <= now <= end):
        return False
    cap = promotion.get("maxUsageCount")
    if cap is not None and int(promotion.get("usageCount") or 0) >= int(cap):
        return False
    return True


def user_usage_count(promotion: Dict[str, Any], user_id: Optional[str]) -> int:
    if user_id is None:
        return 0
    return sum(1 for u in promotion.get("usedBy") or [] if str(u.get("user")) == str(user_id))


def can_user_use(promotion: Dict[str, Any], user_id: Optional[str]) -> bool:
    limit = promotion.get("maxUsagePerUser") or 1
    return user_usage_count(promotion, user_id) < int(limit)


def calculate_discount(promotion: Dict[str, Any], order_value: Any) -> Decimal:
    subtotal = to_decimal(order_value)
    value = to_decimal(promotion.get("discountValue"))
    kind = promotion.get("type")

    if kind == "percentage":
        discount = subtotal * value / Decimal("100")
        cap = promotion.get("maxDiscountAmount")
        if cap:
            discount = min(discount, to_decimal(cap))
    elif kind == "fixed_amount":
        discount = min(value, subtotal)
    else:
        # free_shipping and buy_x_get_y carry no discount yet
        discount = Decimal("0")

    discount = max(discount, Decimal("0"))
    return round_money(min(discount, subtotal))


def evaluate_promotion(
    promotion: Optional[Dict[str, Any]],
    user_id: Optional[str],
    order_value: Any,
    now: datetime,
) -> PromotionResult:
    """Decide whether ``promotion`` applies to this caller and order value."""
    if not promotion or not promotion.get("isActive", True):
        return PromotionResult(False, "Invalid promotion code")

    if not is_currently_valid(promotion, now):
        return PromotionResult(False, "Promotion code has expired or is not active", promotion=promotion)

    if not can_user_use(promotion, user_id):
        return PromotionResult(False, "You have already used this promotion code", promotion=promotion)

    minimum = to_decimal(promotion.get("minimumOrderValue"))
    if to_decimal(order_value) < minimum:
        return PromotionResult(
            False,
            f"Minimum order value of ${_fmt(minimum)} required",
            promotion=promotion,
        )

    discount = calculate_discount(promotion, order_value)
    return PromotionResult(True, f"Discount of ${_fmt(discount)} applied", discount, promotion)


def usage_entry(user_id: str, now: datetime, order_value: Any, discount: Decimal) -> Dict[str, Any]:
    return {
        "user": user_id,
        "usedAt": now,
        "orderValue": money_out(order_value),
        "discountApplied": float(discount),
    }


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()
