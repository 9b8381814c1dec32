"""Models package initialization"""

from .base import Base
from .coupon import Coupon, CouponUsage
from .order import (
    Order, OrderItem, OrderStatusHistory,
    OrderStatus, PaymentStatus, DeliveryStatus, StatusField
)

__all__ = [
    "Base",
    "Coupon",
    "CouponUsage",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderStatus",
    "PaymentStatus",
    "DeliveryStatus",
    "StatusField",
]
