"""
Order API routes
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
from datetime import date
import uuid
import logging

from rental_orders.core.database import get_db
from rental_orders.core.exceptions import StaleOrderException
from rental_orders.schemas.delivery import DueWindow
from rental_orders.schemas.order import OrderSnapshot
from rental_orders.services.coupon_engine import CouponEngine, context_from_lines
from rental_orders.services.coupon_service import CouponService
from rental_orders.services.delivery_queue import assign_partner, rental_due_filter
from rental_orders.services.order_notification import OrderNotificationService
from rental_orders.services.order_service import OrderService
from rental_orders.services.order_status import OrderStatusMachine
from rental_orders.services.pricing import OrderPricingCalculator
from rental_orders.utils.dependencies import get_admin_status_machine, get_order_notifier, get_today
from rental_orders.utils.helpers import utcnow
from .schemas import (
    OrderCreate,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    QuoteRequest,
    QuoteResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post(
    "/quote",
    response_model=QuoteResponse,
    summary="Quote order",
    description="Price a cart, with an optional coupon, without placing it"
)
async def quote_order(
    request: QuoteRequest,
    db: AsyncSession = Depends(get_db)
):
    """Price breakdown for a candidate order"""
    pricing = OrderPricingCalculator()
    subtotal = pricing.subtotal(request.items)

    coupon_result = None
    if request.coupon_code:
        coupon = await CouponService(db).get_by_code(request.coupon_code)
        coupon_result = CouponEngine().evaluate(
            coupon, context_from_lines(subtotal, request.items, utcnow())
        )

    breakdown = pricing.price(
        request.items,
        request.rental_window,
        request.delivery_charge,
        coupon_result
    )
    return QuoteResponse(breakdown=breakdown, coupon=coupon_result)

@router.post(
    "/",
    response_model=OrderSnapshot,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description="Price and place an order, redeeming its coupon"
)
async def create_order(
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db)
):
    """Checkout"""
    service = OrderService(db)
    return await service.place_order(
        items=order_data.items,
        rental_window=order_data.rental_window,
        delivery_charge=order_data.delivery_charge,
        coupon_code=order_data.coupon_code,
        profile_id=order_data.profile_id,
        customer_name=order_data.customer_name,
        customer_email=order_data.customer_email,
        delivery_partner_id=order_data.delivery_partner_id,
        delivery_address=order_data.delivery_address,
        notes=order_data.notes
    )

@router.get(
    "/",
    response_model=List[OrderSnapshot],
    summary="List orders",
    description="Orders newest first, optionally by delivery partner and rental due date"
)
async def list_orders(
    partner_id: Optional[str] = Query(None, description="Delivery partner"),
    due: Optional[DueWindow] = Query(None, description="Rental end date window"),
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db)
):
    """List orders"""
    orders = await OrderService(db).list_orders(delivery_partner_id=partner_id)
    if due is not None:
        orders = rental_due_filter(orders, due, today)
    return orders

@router.get(
    "/{order_id}",
    response_model=OrderSnapshot,
    summary="Get order details"
)
async def get_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db)
):
    return await OrderService(db).get(order_id)

@router.patch(
    "/{order_id}/status",
    response_model=OrderStatusUpdateResponse,
    summary="Update order status",
    description="Change order, payment and delivery status and the delivery partner in one write"
)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
    machine: OrderStatusMachine = Depends(get_admin_status_machine),
    notifier: OrderNotificationService = Depends(get_order_notifier)
):
    """Update order status"""
    service = OrderService(db)
    order = await service.get(order_id)

    if status_update.expected_version is not None and status_update.expected_version != order.version:
        raise StaleOrderException(order_id, status_update.expected_version)

    now = utcnow()
    outcome = machine.transition(
        order,
        actor=status_update.updated_by,
        order_status=status_update.order_status,
        payment_status=status_update.payment_status,
        delivery_status=status_update.delivery_status,
        notes=status_update.notes,
        now=now
    )

    if outcome.applied and status_update.delivery_partner_id is not None:
        assigned, record = assign_partner(
            outcome.order,
            status_update.delivery_partner_id,
            actor=status_update.updated_by,
            notes=status_update.notes,
            now=now
        )
        if record is not None:
            outcome = outcome.model_copy(update={"order": assigned, "records": outcome.records + [record]})

    saved = await service.apply_transition(order, outcome)

    # Only after the status change is committed
    queued = False
    if outcome.notification is not None:
        queued = notifier.dispatch(outcome.notification)

    return OrderStatusUpdateResponse(
        order=saved,
        records=outcome.records,
        notification_queued=queued
    )
