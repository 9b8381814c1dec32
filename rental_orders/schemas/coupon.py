"""
Coupon schemas used by the coupon engine
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
import enum
import uuid

from rental_orders.utils.helpers import ensure_utc

class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

class CouponScope(str, enum.Enum):
    ALL = "all"
    CATEGORY = "category"
    PRODUCT = "product"
    VENDOR = "vendor"

class CouponRejection(str, enum.Enum):
    """Business-rule outcomes of coupon validation, in check order"""
    COUPON_NOT_FOUND = "coupon_not_found"
    COUPON_NOT_YET_VALID = "coupon_not_yet_valid"
    COUPON_EXPIRED = "coupon_expired"
    COUPON_EXHAUSTED = "coupon_exhausted"
    MINIMUM_AMOUNT_NOT_MET = "minimum_amount_not_met"
    NOT_APPLICABLE_TO_ORDER_CONTENTS = "not_applicable_to_order_contents"

class CouponSnapshot(BaseModel):
    """Coupon as read from storage"""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[uuid.UUID] = None
    code: str
    title: Optional[str] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    minimum_amount: Optional[Decimal] = Field(None, ge=0)
    maximum_discount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=1)
    used_count: int = Field(0, ge=0)
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
    applicable_to: CouponScope = CouponScope.ALL
    applicable_ids: List[str] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) < 3:
            raise ValueError("Coupon code must be at least 3 characters")
        return v

    @field_validator("valid_from", "valid_until")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("applicable_ids", mode="before")
    @classmethod
    def default_ids(cls, v):
        return [] if v is None else [str(i) for i in v]

    @model_validator(mode="after")
    def check_invariants(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100%")
        if self.valid_from >= self.valid_until:
            raise ValueError("valid_until must be after valid_from")
        if (self.applicable_to == CouponScope.ALL) != (not self.applicable_ids):
            raise ValueError("applicable_ids must be empty exactly when applicable_to is 'all'")
        return self

class OrderLine(BaseModel):
    """Scope triple for one line of the candidate order"""
    product_id: str
    category_id: Optional[str] = None
    vendor_id: Optional[str] = None

class OrderContext(BaseModel):
    """Candidate order a coupon is checked against"""
    subtotal: Decimal
    lines: List[OrderLine] = Field(default_factory=list)
    now: datetime

    @field_validator("now")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

class EligibilityResult(BaseModel):
    eligible: bool
    rejection: Optional[CouponRejection] = None
    shortfall: Optional[Decimal] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "EligibilityResult":
        return cls(eligible=True)

    @classmethod
    def reject(
        cls,
        rejection: CouponRejection,
        message: str,
        shortfall: Optional[Decimal] = None
    ) -> "EligibilityResult":
        return cls(eligible=False, rejection=rejection, message=message, shortfall=shortfall)

class CouponResult(BaseModel):
    """Eligibility plus the discount it grants, fed to the pricing calculator"""
    code: Optional[str] = None
    coupon_id: Optional[uuid.UUID] = None
    eligibility: EligibilityResult
    discount_amount: Decimal = Decimal("0")

    @property
    def eligible(self) -> bool:
        return self.eligibility.eligible

class CouponRedemption(BaseModel):
    """Intended usage increment; storage applies it with a conditional update"""
    coupon_id: uuid.UUID
    code: str
    order_id: uuid.UUID
    user_id: Optional[str] = None
    discount_amount: Decimal
