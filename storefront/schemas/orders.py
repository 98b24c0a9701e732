# storefront/schemas/orders.py
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict


class CustomerIn(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ShippingAddressIn(BaseModel):
    addressLine1: Optional[str] = None
    addressLine2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None


class PaymentIn(BaseModel):
    # card details are only used to derive the masked reference
    model_config = ConfigDict(extra="ignore")

    cardName: Optional[str] = None
    cardNumber: Optional[Union[str, int]] = None
    expiryMonth: Optional[Union[str, int]] = None
    expiryYear: Optional[Union[str, int]] = None


class PromotionRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[Any] = None


class CreateOrderIn(BaseModel):
    customer: Optional[CustomerIn] = None
    shippingAddress: Optional[ShippingAddressIn] = None
    payment: Optional[PaymentIn] = None
    # accepted for compatibility with the web client, never trusted
    items: Optional[List[Any]] = None
    totals: Optional[Dict[str, Any]] = None
    # a malformed code only drops the discount
    promotion: Optional[Union[PromotionRef, str, Any]] = None


class StatusIn(BaseModel):
    status: str


class ProcessingIn(BaseModel):
    step: str

