"""Rental order models"""

from sqlalchemy import Column, String, Numeric, Integer, Enum, ForeignKey, Index, Text, DateTime, Uuid
from sqlalchemy.orm import relationship
import enum

from .base import Base, TimestampedModel, UUIDModel, VersionedModel

class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

class DeliveryStatus(str, enum.Enum):
    PENDING = "pending"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    RETURNED = "returned"

class StatusField(str, enum.Enum):
    """Which order field a history row describes: one of the three statuses or the partner assignment"""
    ORDER = "order"
    PAYMENT = "payment"
    DELIVERY = "delivery"
    DELIVERY_PARTNER = "delivery_partner"

def _enum_column(enum_class, name):
    return Enum(enum_class, name=name, values_callable=lambda members: [m.value for m in members])

class Order(Base, TimestampedModel, UUIDModel, VersionedModel):
    """Rental booking; items and pricing are fixed once placed"""

    __tablename__ = "orders"

    order_number = Column(String(50), unique=True, nullable=False, index=True)

    # Parties
    profile_id = Column(String(64), nullable=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    delivery_partner_id = Column(String(64), nullable=True, index=True)

    # Rental window
    rental_start_date = Column(DateTime(timezone=True), nullable=False)
    rental_end_date = Column(DateTime(timezone=True), nullable=False)
    rental_days = Column(Integer, nullable=False)

    # Amounts
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_charge = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    applied_coupon_code = Column(String(50), nullable=True)

    # Status
    order_status = Column(_enum_column(OrderStatus, "order_status"), default=OrderStatus.PENDING, nullable=False, index=True)
    payment_status = Column(_enum_column(PaymentStatus, "payment_status"), default=PaymentStatus.PENDING, nullable=False)
    delivery_status = Column(_enum_column(DeliveryStatus, "delivery_status"), nullable=True)

    # Delivery
    delivery_address = Column(Text, nullable=True)
    delivery_time = Column(DateTime(timezone=True), nullable=True)
    pickup_time = Column(DateTime(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.position")
    status_history = relationship("OrderStatusHistory", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_orders_partner_created", "delivery_partner_id", "created_at"),
        Index("idx_orders_status_payment", "order_status", "payment_status"),
    )

class OrderItem(Base, TimestampedModel, UUIDModel):
    """Individual rented product within an order"""

    __tablename__ = "order_items"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    # Snapshot at time of order
    product_id = Column(String(64), nullable=False)
    category_id = Column(String(64), nullable=True)
    vendor_id = Column(String(64), nullable=True)
    title = Column(String(500), nullable=True)
    selected_size = Column(String(50), nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)  # per rental day
    total_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    __table_args__ = (
        Index("idx_order_items_order_product", "order_id", "product_id"),
    )

class OrderStatusHistory(Base, TimestampedModel, UUIDModel):
    """Append-only audit of status changes"""

    __tablename__ = "order_status_history"

    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False)
    field = Column(_enum_column(StatusField, "status_field"), nullable=False, default=StatusField.ORDER)
    status = Column(String(64), nullable=False)
    previous_status = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    updated_by = Column(String(64), nullable=False)

    order = relationship("Order", back_populates="status_history")

    __table_args__ = (
        Index("idx_order_status_history_order", "order_id"),
    )
