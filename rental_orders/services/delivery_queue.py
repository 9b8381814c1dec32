"""
Delivery partner work queue

Drops, pickups and completed orders are three independently computed views
over the same order set; an order can appear in more than one of them.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union
import logging

from rental_orders.core.exceptions import (
    IllegalStatusTransitionException, OrderNotAssignedToWorkerException
)
from rental_orders.models.order import OrderStatus, DeliveryStatus, StatusField
from rental_orders.schemas.delivery import (
    CompletionKind, DeliveryCompletion, DeliveryQueue, DueWindow, QueuedOrder
)
from rental_orders.schemas.order import OrderSnapshot, StatusChangeRecord
from rental_orders.utils.helpers import as_day, utcnow, week_end

logger = logging.getLogger(__name__)

CLOSED_ORDER_STATUSES = {OrderStatus.CANCELLED, OrderStatus.REJECTED}
OPEN_DELIVERY_STATUSES = {DeliveryStatus.PENDING, DeliveryStatus.PICKED_UP}
FINISHED_DELIVERY_STATUSES = {DeliveryStatus.DELIVERED, DeliveryStatus.RETURNED}

# kind -> (allowed source states, target state, timestamp attribute)
COMPLETIONS = {
    CompletionKind.DROP: (OPEN_DELIVERY_STATUSES, DeliveryStatus.DELIVERED, "delivery_time"),
    CompletionKind.PICKUP: ({DeliveryStatus.DELIVERED}, DeliveryStatus.RETURNED, "pickup_time"),
}

def is_drop(order: OrderSnapshot) -> bool:
    """Still has to be delivered to the customer"""
    return (
        order.order_status not in CLOSED_ORDER_STATUSES
        and order.effective_delivery_status in OPEN_DELIVERY_STATUSES
    )

def is_pickup(order: OrderSnapshot, today: date) -> bool:
    """Delivered and due back today or earlier"""
    return (
        order.effective_delivery_status == DeliveryStatus.DELIVERED
        and order.order_status not in CLOSED_ORDER_STATUSES
        and as_day(order.rental_end_date) <= today
    )

def is_overdue(order: OrderSnapshot, today: date) -> bool:
    return as_day(order.rental_end_date) < today

def is_completed(order: OrderSnapshot) -> bool:
    return (
        order.effective_delivery_status in FINISHED_DELIVERY_STATUSES
        or order.order_status in CLOSED_ORDER_STATUSES
    )

def rental_due_filter(
    orders: Iterable[OrderSnapshot],
    when: Union[DueWindow, str],
    today: date
) -> List[OrderSnapshot]:
    """
    Orders whose rental ends within a window relative to today

    Args:
        orders: Orders to filter
        when: today, tomorrow, this_week (today through Sunday) or overdue
        today: Reference day

    Returns:
        Matching orders in their original order
    """
    when = DueWindow(when)
    today = as_day(today)

    def matches(order: OrderSnapshot) -> bool:
        end = as_day(order.rental_end_date)
        if when == DueWindow.TODAY:
            return end == today
        if when == DueWindow.TOMORROW:
            return end == today + timedelta(days=1)
        if when == DueWindow.THIS_WEEK:
            return today <= end <= week_end(today)
        # Overdue rentals have not come back yet
        return end < today and order.effective_delivery_status != DeliveryStatus.RETURNED

    return [order for order in orders if matches(order)]

def assign_partner(
    order: OrderSnapshot,
    partner_id: str,
    actor: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> Tuple[OrderSnapshot, Optional[StatusChangeRecord]]:
    """
    Assign or reassign the delivery partner of an order

    Returns:
        Updated order and the history record, or the order unchanged and None
        when it already belongs to that partner
    """
    if order.delivery_partner_id == partner_id:
        return order, None

    now = now or utcnow()
    record = StatusChangeRecord(
        order_id=order.id,
        field=StatusField.DELIVERY_PARTNER,
        previous_status=order.delivery_partner_id,
        status=partner_id,
        notes=notes,
        actor=actor,
        created_at=now
    )

    logger.info(
        f"Order {order.order_number} assigned to partner {partner_id} by {actor}"
        f" (was {order.delivery_partner_id})"
    )
    return order.model_copy(update={"delivery_partner_id": partner_id, "updated_at": now}), record

class DeliveryQueuePartitioner:
    """
    Builds a delivery partner's queue and records drop/pickup completion
    """

    def partition(self, orders: Iterable[OrderSnapshot], today: date) -> DeliveryQueue:
        """
        Classify a partner's assigned orders

        Args:
            orders: All orders assigned to one delivery partner
            today: Reference day, time of day is ignored

        Returns:
            Drops, pickups (with overdue flags) and completed orders
        """
        today = as_day(today)
        queue = DeliveryQueue()

        for order in orders:
            if is_drop(order):
                queue.drops.append(QueuedOrder(order=order))
            if is_pickup(order, today):
                queue.pickups.append(QueuedOrder(order=order, overdue=is_overdue(order, today)))
            if is_completed(order):
                queue.completed.append(QueuedOrder(order=order))

        return queue

    def mark_complete(
        self,
        order: OrderSnapshot,
        kind: Union[CompletionKind, str],
        worker_id: str,
        now: Optional[datetime] = None
    ) -> DeliveryCompletion:
        """
        Mark a drop or pickup as done

        Repeating a completion is a no-op that keeps the first timestamp.

        Args:
            order: Order as last read from storage
            kind: drop (delivered to customer) or pickup (returned)
            worker_id: Delivery partner performing the action
            now: Completion time, defaults to the current UTC time

        Returns:
            Updated order and the history record to persist, if anything changed

        Raises:
            OrderNotAssignedToWorkerException: If the order belongs to another partner
            IllegalStatusTransitionException: If the order is closed or not ready for this step
        """
        kind = CompletionKind(kind)
        if order.delivery_partner_id != worker_id:
            raise OrderNotAssignedToWorkerException(order.order_number, worker_id)

        sources, target, timestamp_attribute = COMPLETIONS[kind]
        current = order.effective_delivery_status

        if current == target:
            logger.info(f"Order {order.order_number} already {target.value}, nothing to do")
            return DeliveryCompletion(order=order)

        if order.order_status in CLOSED_ORDER_STATUSES:
            raise IllegalStatusTransitionException([{
                "field": StatusField.ORDER.value,
                "current": order.order_status.value,
                "requested": target.value,
                "message": f"Cannot mark {kind.value} complete on a {order.order_status.value} order"
            }])

        if current not in sources:
            raise IllegalStatusTransitionException([{
                "field": StatusField.DELIVERY.value,
                "current": current.value,
                "requested": target.value,
                "message": f"Cannot mark {kind.value} complete while delivery is {current.value}"
            }])

        now = now or utcnow()
        updates = {"delivery_status": target, "updated_at": now}
        if getattr(order, timestamp_attribute) is None:
            updates[timestamp_attribute] = now

        record = StatusChangeRecord(
            order_id=order.id,
            field=StatusField.DELIVERY,
            previous_status=order.delivery_status.value if order.delivery_status else None,
            status=target.value,
            notes=f"{kind.value.capitalize()} completed",
            actor=worker_id,
            created_at=now
        )

        logger.info(f"Partner {worker_id} completed {kind.value} for order {order.order_number}")
        return DeliveryCompletion(order=order.model_copy(update=updates), record=record)
