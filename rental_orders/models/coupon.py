"""
Coupon and discount models
"""

from sqlalchemy import Column, String, Integer, Numeric, Boolean, ForeignKey, Index, CheckConstraint, Text, DateTime, JSON, Uuid
from sqlalchemy.orm import relationship

from .base import Base, TimestampedModel, UUIDModel

class Coupon(Base, TimestampedModel, UUIDModel):
    """Discount coupons and promo codes"""

    __tablename__ = "coupons"

    # Stored upper-cased, lookups normalise the same way
    code = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # Discount details
    discount_type = Column(String(20), nullable=False)  # percentage, fixed
    discount_value = Column(Numeric(10, 2), nullable=False)

    # Conditions
    minimum_amount = Column(Numeric(10, 2), nullable=True)
    maximum_discount = Column(Numeric(10, 2), nullable=True)

    # Usage limits
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    used_count = Column(Integer, nullable=False, default=0)

    # Validity
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Applicability
    applicable_to = Column(String(20), nullable=False, default="all")  # all, category, product, vendor
    applicable_ids = Column(JSON, nullable=False, default=list)

    usages = relationship("CouponUsage", back_populates="coupon")

    __table_args__ = (
        CheckConstraint("discount_value > 0", name="check_positive_discount"),
        CheckConstraint("usage_limit IS NULL OR usage_limit > 0", name="check_positive_usage_limit"),
        CheckConstraint("used_count >= 0", name="check_non_negative_used_count"),
        CheckConstraint("valid_from < valid_until", name="check_validity_window"),
        Index("idx_coupons_active_valid", "is_active", "valid_from", "valid_until"),
    )

class CouponUsage(Base, TimestampedModel, UUIDModel):
    """One row per order that redeemed a coupon"""

    __tablename__ = "coupon_usages"

    coupon_id = Column(Uuid(as_uuid=True), ForeignKey("coupons.id"), nullable=False)
    order_id = Column(Uuid(as_uuid=True), ForeignKey("orders.id"), nullable=False)
    user_id = Column(String(64), nullable=True)
    discount_amount = Column(Numeric(10, 2), nullable=False)

    coupon = relationship("Coupon", back_populates="usages")

    __table_args__ = (
        Index("idx_coupon_usages_coupon_user", "coupon_id", "user_id"),
        Index("idx_coupon_usages_order", "order_id"),
    )
