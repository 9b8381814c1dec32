"""
Coupon schemas for request/response validation
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
import uuid

from rental_orders.schemas.coupon import CouponRejection, DiscountType, OrderLine

class CouponValidateRequest(BaseModel):
    """Schema for checking a code against a cart"""
    code: str = Field(..., min_length=1, max_length=50)
    amount: Decimal
    items: List[OrderLine] = Field(default_factory=list)

class ValidatedCoupon(BaseModel):
    id: Optional[uuid.UUID] = None
    code: str
    title: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    minimum_amount: Optional[Decimal] = None
    maximum_discount: Optional[Decimal] = None

class CouponValidateResponse(BaseModel):
    valid: bool
    error: Optional[str] = None
    rejection: Optional[CouponRejection] = None
    shortfall: Optional[Decimal] = None
    coupon: Optional[ValidatedCoupon] = None

class CouponUseRequest(BaseModel):
    """Schema for recording a coupon redemption"""
    order_id: uuid.UUID
    user_id: Optional[str] = Field(None, max_length=64)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)

class CouponUseResponse(BaseModel):
    success: bool
    coupon_id: uuid.UUID
    code: str
    used_count: int
