"""
Order status transitions

Applies requested order, payment and delivery status changes to an order
snapshot as one atomic update and describes the side effects the caller
must carry out: history rows to persist and an optional customer
notification.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union
import enum
import logging

from rental_orders.models.order import OrderStatus, PaymentStatus, DeliveryStatus, StatusField
from rental_orders.schemas.order import (
    LineItemSummary, NotificationRequest, OrderSnapshot, StatusChangeRecord,
    TransitionOutcome, TransitionRejection
)
from rental_orders.services.state_machine import STRICT_POLICY, TransitionPolicy
from rental_orders.utils.helpers import utcnow

logger = logging.getLogger(__name__)

# Order attribute and enum type behind each status field
FIELD_ATTRIBUTES = {
    StatusField.ORDER: ("order_status", OrderStatus),
    StatusField.PAYMENT: ("payment_status", PaymentStatus),
    StatusField.DELIVERY: ("delivery_status", DeliveryStatus),
}

def build_notification_request(
    before: OrderSnapshot,
    after: OrderSnapshot,
    notes: Optional[str] = None
) -> Optional[NotificationRequest]:
    """Customer notification for an order status change; None without an email address"""
    if not before.customer_email:
        return None

    return NotificationRequest(
        customer_email=before.customer_email,
        customer_name=before.customer_name or "Customer",
        order_number=before.order_number,
        previous_status=before.order_status.value,
        new_status=after.order_status.value,
        order_date=before.created_at,
        rental_start_date=before.rental_start_date,
        rental_end_date=before.rental_end_date,
        rental_days=before.rental_days,
        total_amount=before.total_amount,
        line_item_summaries=[
            LineItemSummary(title=item.title or "Product", quantity=item.quantity)
            for item in before.items
        ],
        notes=notes
    )

class OrderStatusMachine:
    """
    Enforces the transition policy across the three status fields of an order
    """

    def __init__(self, policy: TransitionPolicy = STRICT_POLICY):
        self.policy = policy

    def _current(self, order: OrderSnapshot, field: StatusField) -> enum.Enum:
        if field == StatusField.DELIVERY:
            return order.effective_delivery_status
        attribute, _ = FIELD_ATTRIBUTES[field]
        return getattr(order, attribute)

    def _requested_changes(
        self,
        order: OrderSnapshot,
        requested: Dict[StatusField, enum.Enum]
    ) -> Tuple[Dict[StatusField, Tuple[enum.Enum, enum.Enum]], List[TransitionRejection]]:
        changes = {}
        rejections = []

        for field, new_status in requested.items():
            current = self._current(order, field)
            if new_status == current:
                continue

            if not self.policy.machine(field).can_transition(current, new_status):
                rejections.append(TransitionRejection(
                    field=field,
                    current=current.value,
                    requested=new_status.value,
                    message=f"Cannot transition {field.value} status from {current.value} to {new_status.value}"
                ))
                continue

            changes[field] = (current, new_status)

        return changes, rejections

    def transition(
        self,
        order: OrderSnapshot,
        *,
        actor: str,
        order_status: Optional[Union[OrderStatus, str]] = None,
        payment_status: Optional[Union[PaymentStatus, str]] = None,
        delivery_status: Optional[Union[DeliveryStatus, str]] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> TransitionOutcome:
        """
        Apply the requested status changes

        Each supplied field is checked independently; if any of them is
        illegal under the policy nothing is applied and the rejections are
        returned. Requesting a field's current value is a no-op.

        Args:
            order: Order as last read from storage
            actor: Identity recorded on the history rows
            order_status: Requested order status
            payment_status: Requested payment status
            delivery_status: Requested delivery status
            notes: Free text stored on the history rows and sent to the customer
            now: Transition time, defaults to the current UTC time

        Returns:
            Updated order, history records, notification request and rejections
        """
        now = now or utcnow()
        requested: Dict[StatusField, enum.Enum] = {}
        for field, value in (
            (StatusField.ORDER, order_status),
            (StatusField.PAYMENT, payment_status),
            (StatusField.DELIVERY, delivery_status),
        ):
            if value is not None:
                _, enum_class = FIELD_ATTRIBUTES[field]
                requested[field] = enum_class(value)

        # Cancelling an order cancels its payment unless the caller chose a payment status
        if (
            requested.get(StatusField.ORDER) == OrderStatus.CANCELLED
            and StatusField.PAYMENT not in requested
            and order.payment_status != PaymentStatus.CANCELLED
            and self.policy.machine(StatusField.PAYMENT).can_transition(
                order.payment_status, PaymentStatus.CANCELLED
            )
        ):
            requested[StatusField.PAYMENT] = PaymentStatus.CANCELLED

        changes, rejections = self._requested_changes(order, requested)
        if rejections:
            logger.debug(
                f"Rejected transition on order {order.order_number} by {actor}: "
                f"{[r.message for r in rejections]}"
            )
            return TransitionOutcome(order=order, rejections=rejections)

        if not changes:
            return TransitionOutcome(order=order)

        updates = {}
        records = []
        for field, (current, new_status) in changes.items():
            attribute, _ = FIELD_ATTRIBUTES[field]
            previous = getattr(order, attribute)
            updates[attribute] = new_status
            records.append(StatusChangeRecord(
                order_id=order.id,
                field=field,
                previous_status=previous.value if previous is not None else None,
                status=new_status.value,
                notes=notes,
                actor=actor,
                created_at=now
            ))

        # Completion timestamps are only ever set once
        new_delivery = updates.get("delivery_status")
        if new_delivery == DeliveryStatus.DELIVERED and order.delivery_time is None:
            updates["delivery_time"] = now
        elif new_delivery == DeliveryStatus.RETURNED and order.pickup_time is None:
            updates["pickup_time"] = now

        updates["updated_at"] = now
        updated = order.model_copy(update=updates)

        notification = None
        if StatusField.ORDER in changes:
            notification = build_notification_request(order, updated, notes)
            if notification is None:
                logger.info(f"No customer email on order {order.order_number}, status email skipped")

        logger.info(
            f"Order {order.order_number} updated by {actor}: "
            + ", ".join(f"{r.field.value} {r.previous_status} -> {r.status}" for r in records)
        )

        return TransitionOutcome(
            order=updated,
            records=records,
            notification=notification
        )
