"""
Order schemas for pricing and status transitions
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
import math
import uuid

from rental_orders.core.exceptions import InconsistentRentalWindowException
from rental_orders.models.order import OrderStatus, PaymentStatus, DeliveryStatus, StatusField
from rental_orders.schemas.coupon import OrderLine
from rental_orders.utils.helpers import ensure_utc

SECONDS_PER_DAY = 24 * 60 * 60

class LineItem(BaseModel):
    """One rented product line"""

    model_config = ConfigDict(from_attributes=True)

    product_id: str
    category_id: Optional[str] = None
    vendor_id: Optional[str] = None
    title: Optional[str] = None
    selected_size: Optional[str] = None
    quantity: int
    unit_price: Decimal  # per rental day

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_order_line(self) -> OrderLine:
        return OrderLine(
            product_id=self.product_id,
            category_id=self.category_id,
            vendor_id=self.vendor_id
        )

class RentalWindow(BaseModel):
    """[start_date, end_date) period an order rents its products for"""
    start_date: datetime
    end_date: datetime

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def rental_days(self) -> int:
        """Whole days, rounded up, never less than one"""
        if self.end_date <= self.start_date:
            raise InconsistentRentalWindowException()
        seconds = (self.end_date - self.start_date).total_seconds()
        return max(1, math.ceil(seconds / SECONDS_PER_DAY))

class PriceBreakdown(BaseModel):
    subtotal: Decimal
    delivery_charge: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    rental_days: int
    applied_coupon_code: Optional[str] = None

class OrderSnapshot(BaseModel):
    """Order as read from storage; updates produce new snapshots"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    profile_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_partner_id: Optional[str] = None

    rental_start_date: datetime
    rental_end_date: datetime
    rental_days: int

    subtotal: Decimal
    delivery_charge: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total_amount: Decimal
    applied_coupon_code: Optional[str] = None

    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_status: Optional[DeliveryStatus] = None

    delivery_address: Optional[str] = None
    delivery_time: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    notes: Optional[str] = None

    items: List[LineItem] = Field(default_factory=list)
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator(
        "rental_start_date", "rental_end_date", "delivery_time",
        "pickup_time", "created_at", "updated_at"
    )
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def rental_window(self) -> RentalWindow:
        return RentalWindow(start_date=self.rental_start_date, end_date=self.rental_end_date)

    @property
    def effective_delivery_status(self) -> DeliveryStatus:
        """A missing delivery status means nothing has moved yet"""
        return self.delivery_status or DeliveryStatus.PENDING

class StatusChangeRecord(BaseModel):
    """Append-only audit entry, one per changed field"""

    order_id: uuid.UUID
    field: StatusField
    previous_status: Optional[str] = None
    status: str
    notes: Optional[str] = None
    actor: str
    created_at: datetime

class LineItemSummary(BaseModel):
    title: str
    quantity: int

class NotificationRequest(BaseModel):
    """Payload handed to the notification dispatcher after an order status change"""
    customer_email: str
    customer_name: str = "Customer"
    order_number: str
    previous_status: Optional[str] = None
    new_status: str
    order_date: Optional[datetime] = None
    rental_start_date: datetime
    rental_end_date: datetime
    rental_days: int
    total_amount: Decimal
    line_item_summaries: List[LineItemSummary] = Field(default_factory=list)
    notes: Optional[str] = None

class TransitionRejection(BaseModel):
    field: StatusField
    current: Optional[str] = None
    requested: str
    message: str

class TransitionOutcome(BaseModel):
    """Result of one transition call; rejected calls leave the order untouched"""
    order: OrderSnapshot
    records: List[StatusChangeRecord] = Field(default_factory=list)
    notification: Optional[NotificationRequest] = None
    rejections: List[TransitionRejection] = Field(default_factory=list)

    @property
    def applied(self) -> bool:
        return not self.rejections

    @property
    def changed(self) -> bool:
        return bool(self.records)
