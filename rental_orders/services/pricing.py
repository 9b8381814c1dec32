"""
Authoritative price breakdown for a rental order
"""

from decimal import Decimal
from typing import List, Optional
import logging

from rental_orders.core.exceptions import (
    InconsistentRentalWindowException, InvalidLineItemException, ValidationException
)
from rental_orders.schemas.coupon import CouponResult
from rental_orders.schemas.order import LineItem, PriceBreakdown, RentalWindow

logger = logging.getLogger(__name__)

class OrderPricingCalculator:
    """Derives subtotal, discount and total; has no side effects"""

    def subtotal(self, items: List[LineItem]) -> Decimal:
        """
        Sum of unit price x quantity over all lines

        Raises:
            InvalidLineItemException: For an empty order or a malformed line
        """
        if not items:
            raise InvalidLineItemException("Order must contain at least one item")

        total = Decimal("0")
        for item in items:
            if item.quantity < 1:
                raise InvalidLineItemException(
                    f"Quantity for product {item.product_id} must be at least 1"
                )
            if item.unit_price < 0:
                raise InvalidLineItemException(
                    f"Unit price for product {item.product_id} cannot be negative"
                )
            total += item.line_total
        return total

    def price(
        self,
        items: List[LineItem],
        rental_window: RentalWindow,
        delivery_charge: Decimal,
        coupon_result: Optional[CouponResult] = None,
        declared_rental_days: Optional[int] = None
    ) -> PriceBreakdown:
        """
        Compute the price breakdown for an order

        Args:
            items: Order lines
            rental_window: Rental start and end dates
            delivery_charge: Delivery charge decided by pricing policy
            coupon_result: Outcome of coupon evaluation, if a code was entered
            declared_rental_days: Day count a caller already holds; must agree with the dates

        Returns:
            Price breakdown with a total that is never negative

        Raises:
            InconsistentRentalWindowException: If the dates are inverted or disagree with declared_rental_days
            InvalidLineItemException: If items are empty or malformed
            ValidationException: If the delivery charge is negative
        """
        rental_days = rental_window.rental_days
        if declared_rental_days is not None and declared_rental_days != rental_days:
            raise InconsistentRentalWindowException(
                f"Declared {declared_rental_days} rental days but the window spans {rental_days}"
            )

        if delivery_charge < 0:
            raise ValidationException("Delivery charge cannot be negative")

        subtotal = self.subtotal(items)

        discount = Decimal("0")
        applied_code = None
        if coupon_result is not None and coupon_result.eligible:
            discount = coupon_result.discount_amount
            applied_code = coupon_result.code

        total = max(Decimal("0"), subtotal + delivery_charge - discount)
        if total == 0 and discount > 0:
            logger.debug(f"Discount {discount} clamped order total to zero")

        return PriceBreakdown(
            subtotal=subtotal,
            delivery_charge=delivery_charge,
            discount_amount=discount,
            total_amount=total,
            rental_days=rental_days,
            applied_coupon_code=applied_code
        )
