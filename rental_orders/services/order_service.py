"""Order storage and checkout"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload
from datetime import datetime
from decimal import Decimal
import logging
import uuid

from rental_orders.core.exceptions import (
    IllegalStatusTransitionException, NotFoundException, StaleOrderException, ValidationException
)
from rental_orders.models.order import Order, OrderItem, OrderStatus, OrderStatusHistory, StatusField
from rental_orders.schemas.order import (
    LineItem, OrderSnapshot, PriceBreakdown, RentalWindow, StatusChangeRecord, TransitionOutcome
)
from rental_orders.services.coupon_engine import CouponEngine, context_from_lines
from rental_orders.services.coupon_service import CouponService
from rental_orders.services.pricing import OrderPricingCalculator
from rental_orders.utils.helpers import generate_order_number, utcnow

logger = logging.getLogger(__name__)

class OrderService:
    """Reads and writes orders; every status write is version checked"""

    def __init__(
        self,
        db: AsyncSession,
        coupon_engine: Optional[CouponEngine] = None,
        pricing: Optional[OrderPricingCalculator] = None
    ):
        self.db = db
        self.coupon_engine = coupon_engine or CouponEngine()
        self.pricing = pricing or OrderPricingCalculator()

    def _order_query(self):
        return (
            select(Order)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )

    async def get(self, order_id: uuid.UUID) -> OrderSnapshot:
        """
        Get order with its items

        Raises:
            NotFoundException: If no such order exists
        """
        result = await self.db.execute(
            self._order_query().where(Order.id == order_id)
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundException(f"Order {order_id} not found", error_code="ORDER_NOT_FOUND")
        return OrderSnapshot.model_validate(order)

    async def list_orders(self, delivery_partner_id: Optional[str] = None) -> List[OrderSnapshot]:
        """Orders newest first, optionally only those assigned to one delivery partner"""
        query = self._order_query().order_by(Order.created_at.desc())
        if delivery_partner_id is not None:
            query = query.where(Order.delivery_partner_id == delivery_partner_id)

        result = await self.db.execute(query)
        return [OrderSnapshot.model_validate(order) for order in result.scalars().all()]

    async def list_for_partner(self, delivery_partner_id: str) -> List[OrderSnapshot]:
        return await self.list_orders(delivery_partner_id=delivery_partner_id)

    async def create(
        self,
        items: List[LineItem],
        rental_window: RentalWindow,
        breakdown: PriceBreakdown,
        profile_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        delivery_partner_id: Optional[str] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
        commit: bool = True
    ) -> OrderSnapshot:
        """
        Persist a priced order together with its items

        Args:
            items: Order lines
            rental_window: Rental start and end dates
            breakdown: Output of the pricing calculator for these items
            profile_id: Customer placing the order
            customer_name: Name used in notifications
            customer_email: Address status updates are sent to
            delivery_partner_id: Assigned delivery partner, if known
            delivery_address: Where the order is dropped off
            notes: Customer notes
            commit: Commit immediately; pass False to join a larger transaction

        Returns:
            The stored order
        """
        order = Order(
            order_number=generate_order_number(),
            profile_id=profile_id,
            customer_name=customer_name,
            customer_email=customer_email,
            delivery_partner_id=delivery_partner_id,
            rental_start_date=rental_window.start_date,
            rental_end_date=rental_window.end_date,
            rental_days=breakdown.rental_days,
            subtotal=breakdown.subtotal,
            delivery_charge=breakdown.delivery_charge,
            discount_amount=breakdown.discount_amount,
            total_amount=breakdown.total_amount,
            applied_coupon_code=breakdown.applied_coupon_code,
            order_status=OrderStatus.PENDING,
            delivery_address=delivery_address,
            notes=notes,
            items=[
                OrderItem(
                    position=position,
                    product_id=item.product_id,
                    category_id=item.category_id,
                    vendor_id=item.vendor_id,
                    title=item.title,
                    selected_size=item.selected_size,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.line_total
                )
                for position, item in enumerate(items)
            ]
        )
        self.db.add(order)
        await self.db.flush()

        # Initial status history
        self.db.add(OrderStatusHistory(
            order_id=order.id,
            field=StatusField.ORDER,
            status=OrderStatus.PENDING.value,
            notes="Order created",
            updated_by=profile_id or "system"
        ))

        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

        logger.info(f"Order {order.order_number} created, total {breakdown.total_amount}")
        return await self.get(order.id)

    async def place_order(
        self,
        items: List[LineItem],
        rental_window: RentalWindow,
        delivery_charge: Decimal,
        coupon_code: Optional[str] = None,
        profile_id: Optional[str] = None,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        delivery_partner_id: Optional[str] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> OrderSnapshot:
        """
        Checkout: price the order, store it and redeem its coupon in one transaction

        Raises:
            ValidationException: If the entered coupon is not eligible
            CouponExhaustedException: If the coupon ran out between validation and redemption
        """
        now = now or utcnow()
        subtotal = self.pricing.subtotal(items)

        coupon_result = None
        if coupon_code:
            coupon = await CouponService(self.db).get_by_code(coupon_code)
            coupon_result = self.coupon_engine.evaluate(
                coupon, context_from_lines(subtotal, items, now)
            )
            if not coupon_result.eligible:
                eligibility = coupon_result.eligibility
                raise ValidationException(eligibility.message, error_code=eligibility.rejection.value.upper())

        breakdown = self.pricing.price(items, rental_window, delivery_charge, coupon_result)

        order = await self.create(
            items,
            rental_window,
            breakdown,
            profile_id=profile_id,
            customer_name=customer_name,
            customer_email=customer_email,
            delivery_partner_id=delivery_partner_id,
            delivery_address=delivery_address,
            notes=notes,
            commit=False
        )

        if coupon_result is not None:
            redemption = self.coupon_engine.redemption_for(coupon_result, order.id, profile_id)
            if redemption is not None:
                await CouponService(self.db).redeem(redemption, commit=False)

        await self.db.commit()
        return order

    async def save_transition(
        self,
        before: OrderSnapshot,
        after: OrderSnapshot,
        records: List[StatusChangeRecord]
    ) -> OrderSnapshot:
        """
        Persist the mutable fields of an updated order (statuses, timestamps and
        delivery partner) plus its history rows

        The UPDATE only matches while the stored version equals the one the
        caller read, so a concurrent writer makes this call fail instead of
        being silently overwritten.

        Raises:
            StaleOrderException: If the order changed since it was read
        """
        result = await self.db.execute(
            update(Order)
            .where(Order.id == before.id, Order.version == before.version)
            .values(
                order_status=after.order_status,
                payment_status=after.payment_status,
                delivery_status=after.delivery_status,
                delivery_partner_id=after.delivery_partner_id,
                delivery_time=after.delivery_time,
                pickup_time=after.pickup_time,
                notes=after.notes,
                updated_at=after.updated_at or utcnow(),
                version=Order.version + 1
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            await self.db.rollback()
            raise StaleOrderException(before.id, before.version)

        for record in records:
            self.db.add(OrderStatusHistory(
                order_id=record.order_id,
                field=record.field,
                status=record.status,
                previous_status=record.previous_status,
                notes=record.notes,
                updated_by=record.actor,
                created_at=record.created_at
            ))

        await self.db.commit()
        return after.model_copy(update={"version": before.version + 1})

    async def apply_transition(self, order: OrderSnapshot, outcome: TransitionOutcome) -> OrderSnapshot:
        """
        Store the result of a status machine call made on `order`

        Raises:
            IllegalStatusTransitionException: If the machine rejected any requested change
            StaleOrderException: If the order changed since it was read
        """
        if not outcome.applied:
            raise IllegalStatusTransitionException(
                [rejection.model_dump(mode="json") for rejection in outcome.rejections]
            )

        if not outcome.changed:
            return order
        return await self.save_transition(order, outcome.order, outcome.records)
