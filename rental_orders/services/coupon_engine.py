"""
Coupon validation and discount computation
"""

from decimal import Decimal
from typing import Optional
import logging
import uuid

from rental_orders.core.config import settings
from rental_orders.core.exceptions import InvalidOrderContextException
from rental_orders.schemas.coupon import (
    CouponSnapshot, CouponScope, CouponRejection, CouponResult, CouponRedemption,
    DiscountType, EligibilityResult, OrderContext, OrderLine
)
from rental_orders.utils.helpers import round_currency

logger = logging.getLogger(__name__)

# Which attribute of an order line a scoped coupon targets
SCOPE_ATTRIBUTES = {
    CouponScope.PRODUCT: "product_id",
    CouponScope.CATEGORY: "category_id",
    CouponScope.VENDOR: "vendor_id",
}

class CouponEngine:
    """
    Checks a coupon against a candidate order and computes its discount.
    Pure computation: the caller fetches the coupon and persists the outcome.
    """

    def validate(
        self,
        coupon: Optional[CouponSnapshot],
        context: OrderContext
    ) -> EligibilityResult:
        """
        Run the eligibility checks in order, stopping at the first failure

        Args:
            coupon: Coupon looked up by code, None when the code is unknown
            context: Candidate order subtotal, scope triples and current time

        Returns:
            Eligible result or the first rejection

        Raises:
            InvalidOrderContextException: If the order context is malformed
        """
        if context.subtotal < 0:
            raise InvalidOrderContextException("Order subtotal cannot be negative")

        if coupon is None or not coupon.is_active:
            return EligibilityResult.reject(
                CouponRejection.COUPON_NOT_FOUND,
                "Invalid coupon code" if coupon is None else "Coupon is not active"
            )

        if context.now < coupon.valid_from:
            return EligibilityResult.reject(
                CouponRejection.COUPON_NOT_YET_VALID,
                "Coupon is not yet valid"
            )

        if context.now > coupon.valid_until:
            return EligibilityResult.reject(
                CouponRejection.COUPON_EXPIRED,
                "Coupon has expired"
            )

        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            return EligibilityResult.reject(
                CouponRejection.COUPON_EXHAUSTED,
                "Coupon usage limit exceeded"
            )

        minimum = coupon.minimum_amount or Decimal("0")
        if context.subtotal < minimum:
            return EligibilityResult.reject(
                CouponRejection.MINIMUM_AMOUNT_NOT_MET,
                f"Minimum order amount of {settings.CURRENCY_SYMBOL}{minimum} required",
                shortfall=minimum - context.subtotal
            )

        if not self.is_applicable(coupon, context.lines):
            return EligibilityResult.reject(
                CouponRejection.NOT_APPLICABLE_TO_ORDER_CONTENTS,
                "Coupon is not applicable to selected items"
            )

        return EligibilityResult.ok()

    def is_applicable(self, coupon: CouponSnapshot, lines) -> bool:
        """At least one line must match the coupon's scope, unless it covers everything"""
        if coupon.applicable_to == CouponScope.ALL:
            return True

        attribute = SCOPE_ATTRIBUTES[coupon.applicable_to]
        targets = set(coupon.applicable_ids)
        return any(getattr(line, attribute) in targets for line in lines)

    def compute_discount(self, coupon: CouponSnapshot, subtotal: Decimal) -> Decimal:
        """
        Discount granted on an eligible order

        Percentage discounts are rounded half-up to the currency unit and
        capped by maximum_discount; fixed discounts never exceed the subtotal.
        """
        if coupon.discount_type == DiscountType.PERCENTAGE:
            amount = round_currency(subtotal * coupon.discount_value / Decimal(100))
            if coupon.maximum_discount is not None:
                amount = min(amount, coupon.maximum_discount)
            return amount

        return min(coupon.discount_value, subtotal)

    def evaluate(
        self,
        coupon: Optional[CouponSnapshot],
        context: OrderContext
    ) -> CouponResult:
        """Validate and, when eligible, compute the discount in one step"""
        eligibility = self.validate(coupon, context)
        code = coupon.code if coupon else None

        if not eligibility.eligible:
            logger.debug(f"Coupon {code} rejected: {eligibility.rejection.value}")
            return CouponResult(code=code, coupon_id=coupon.id if coupon else None, eligibility=eligibility)

        discount = self.compute_discount(coupon, context.subtotal)
        return CouponResult(
            code=code,
            coupon_id=coupon.id,
            eligibility=eligibility,
            discount_amount=discount
        )

    def redemption_for(
        self,
        result: CouponResult,
        order_id: uuid.UUID,
        user_id: Optional[str] = None
    ) -> Optional[CouponRedemption]:
        """The usage increment a placed order owes its coupon, if any"""
        if not result.eligible or result.coupon_id is None:
            return None

        return CouponRedemption(
            coupon_id=result.coupon_id,
            code=result.code,
            order_id=order_id,
            user_id=user_id,
            discount_amount=result.discount_amount
        )

def context_from_lines(subtotal: Decimal, lines, now) -> OrderContext:
    """Build an order context from anything carrying product/category/vendor ids"""
    return OrderContext(
        subtotal=subtotal,
        lines=[
            line if isinstance(line, OrderLine) else line.to_order_line()
            for line in lines
        ],
        now=now
    )
