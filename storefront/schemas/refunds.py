# storefront/schemas/refunds.py
from typing import Optional
from pydantic import BaseModel, Field


class RefundIn(BaseModel):
    orderId: Optional[str] = None
    productId: Optional[str] = None
    reason: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    refundAmount: Optional[float] = None


class RefundUpdate(BaseModel):
    reason: Optional[str] = None
    description: Optional[str] = Field(None, max_length=500)
    refundAmount: Optional[float] = None


class AdminDecisionIn(BaseModel):
    adminResponse: Optional[str] = None
    refundMethod: Optional[str] = None
    estimatedProcessingDays: Optional[int] = Field(None, ge=1)
