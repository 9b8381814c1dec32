"""
Order schemas for request/response validation
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from rental_orders.models.order import OrderStatus, PaymentStatus, DeliveryStatus
from rental_orders.schemas.coupon import CouponResult
from rental_orders.schemas.order import (
    LineItem, OrderSnapshot, PriceBreakdown, RentalWindow, StatusChangeRecord
)

class PricingRequest(BaseModel):
    """Items, rental window and delivery charge shared by quote and checkout"""
    items: List[LineItem] = Field(..., min_length=1)
    rental_start_date: datetime
    rental_end_date: datetime
    delivery_charge: Decimal = Decimal("0")
    coupon_code: Optional[str] = Field(None, max_length=50)

    @property
    def rental_window(self) -> RentalWindow:
        return RentalWindow(start_date=self.rental_start_date, end_date=self.rental_end_date)

class QuoteRequest(PricingRequest):
    """Schema for pricing a cart without placing it"""
    pass

class QuoteResponse(BaseModel):
    breakdown: PriceBreakdown
    coupon: Optional[CouponResult] = None

class OrderCreate(PricingRequest):
    """Schema for placing an order"""
    profile_id: Optional[str] = Field(None, max_length=64)
    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[str] = Field(None, max_length=255)
    delivery_partner_id: Optional[str] = Field(None, max_length=64)
    delivery_address: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)

class OrderStatusUpdate(BaseModel):
    """Schema for an admin status change or delivery partner assignment"""
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    delivery_status: Optional[DeliveryStatus] = None
    delivery_partner_id: Optional[str] = Field(None, min_length=1, max_length=64)
    notes: Optional[str] = Field(None, max_length=500)
    updated_by: str = Field(..., min_length=1, max_length=64)
    expected_version: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def require_a_change(self):
        if (
            self.order_status is None
            and self.payment_status is None
            and self.delivery_status is None
            and self.delivery_partner_id is None
        ):
            raise ValueError(
                "At least one of order_status, payment_status, delivery_status or delivery_partner_id is required"
            )
        return self

class OrderStatusUpdateResponse(BaseModel):
    order: OrderSnapshot
    records: List[StatusChangeRecord] = Field(default_factory=list)
    notification_queued: bool = False
