"""
Delivery partner API routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
import uuid

from rental_orders.api.v1.orders.schemas import OrderStatusUpdateResponse
from rental_orders.core.database import get_db
from rental_orders.core.exceptions import OrderNotAssignedToWorkerException, StaleOrderException
from rental_orders.schemas.delivery import DeliveryQueue
from rental_orders.services.delivery_queue import DeliveryQueuePartitioner
from rental_orders.services.order_notification import OrderNotificationService
from rental_orders.services.order_service import OrderService
from rental_orders.services.order_status import OrderStatusMachine
from rental_orders.utils.dependencies import (
    get_delivery_partitioner, get_order_notifier, get_partner_status_machine, get_today
)
from .schemas import CompletionRequest, CompletionResponse, PartnerStatusUpdate

router = APIRouter()

@router.get(
    "/{partner_id}/queue",
    response_model=DeliveryQueue,
    summary="Delivery queue",
    description="Drops, pickups and completed orders for one delivery partner"
)
async def get_delivery_queue(
    partner_id: str,
    today: date = Depends(get_today),
    db: AsyncSession = Depends(get_db),
    partitioner: DeliveryQueuePartitioner = Depends(get_delivery_partitioner)
):
    orders = await OrderService(db).list_for_partner(partner_id)
    return partitioner.partition(orders, today)

@router.post(
    "/{partner_id}/orders/{order_id}/complete",
    response_model=CompletionResponse,
    summary="Complete drop or pickup"
)
async def complete_delivery(
    partner_id: str,
    order_id: uuid.UUID,
    request: CompletionRequest,
    db: AsyncSession = Depends(get_db),
    partitioner: DeliveryQueuePartitioner = Depends(get_delivery_partitioner)
):
    """Mark a drop or pickup as done"""
    service = OrderService(db)
    order = await service.get(order_id)

    completion = partitioner.mark_complete(order, request.kind, partner_id)
    if not completion.changed:
        return CompletionResponse(order=order, changed=False)

    saved = await service.save_transition(order, completion.order, [completion.record])
    return CompletionResponse(order=saved, changed=True)

@router.patch(
    "/{partner_id}/orders/{order_id}/status",
    response_model=OrderStatusUpdateResponse,
    summary="Update order status as delivery partner",
    description="Change the status of an assigned order under the strict transition tables"
)
async def update_order_status_as_partner(
    partner_id: str,
    order_id: uuid.UUID,
    status_update: PartnerStatusUpdate,
    db: AsyncSession = Depends(get_db),
    machine: OrderStatusMachine = Depends(get_partner_status_machine),
    notifier: OrderNotificationService = Depends(get_order_notifier)
):
    """Partner status update, recorded with the partner as actor"""
    service = OrderService(db)
    order = await service.get(order_id)

    if order.delivery_partner_id != partner_id:
        raise OrderNotAssignedToWorkerException(order.order_number, partner_id)

    if status_update.expected_version is not None and status_update.expected_version != order.version:
        raise StaleOrderException(order_id, status_update.expected_version)

    outcome = machine.transition(
        order,
        actor=partner_id,
        order_status=status_update.order_status,
        payment_status=status_update.payment_status,
        delivery_status=status_update.delivery_status,
        notes=status_update.notes
    )
    saved = await service.apply_transition(order, outcome)

    queued = False
    if outcome.notification is not None:
        queued = notifier.dispatch(outcome.notification)

    return OrderStatusUpdateResponse(
        order=saved,
        records=outcome.records,
        notification_queued=queued
    )
