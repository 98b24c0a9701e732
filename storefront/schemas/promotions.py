# storefront/schemas/promotions.py
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class PromotionIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    code: Optional[str] = None
    type: Optional[str] = None              # percentage | fixed_amount | free_shipping | buy_x_get_y
    discountValue: Optional[float] = None
    maxDiscountAmount: Optional[float] = None
    minimumOrderValue: Optional[float] = 0
    maxUsageCount: Optional[int] = None
    maxUsagePerUser: Optional[int] = 1
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    applicableProducts: Optional[List[str]] = None
    applicableCategories: Optional[List[str]] = None
    isApplicableToAll: Optional[bool] = True


class PromotionUpdate(PromotionIn):
    minimumOrderValue: Optional[float] = None
    maxUsagePerUser: Optional[int] = None
    isApplicableToAll: Optional[bool] = None
    isActive: Optional[bool] = None


class ValidateIn(BaseModel):
    code: Optional[str] = None
    orderValue: Optional[float] = None
    products: Optional[List[Any]] = None


class ApplyIn(ValidateIn):
    userId: Optional[str] = Field(None, description="Account the usage is recorded against")
