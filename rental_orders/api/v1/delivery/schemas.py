"""
Delivery partner schemas for request/response validation
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional

from rental_orders.models.order import OrderStatus, PaymentStatus, DeliveryStatus
from rental_orders.schemas.delivery import CompletionKind
from rental_orders.schemas.order import OrderSnapshot

class CompletionRequest(BaseModel):
    kind: CompletionKind

class CompletionResponse(BaseModel):
    order: OrderSnapshot
    changed: bool

class PartnerStatusUpdate(BaseModel):
    """Status change made by the assigned delivery partner; always checked against the strict tables"""
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    delivery_status: Optional[DeliveryStatus] = None
    notes: Optional[str] = Field(None, max_length=500)
    expected_version: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def require_a_status(self):
        if self.order_status is None and self.payment_status is None and self.delivery_status is None:
            raise ValueError("At least one of order_status, payment_status or delivery_status is required")
        return self
