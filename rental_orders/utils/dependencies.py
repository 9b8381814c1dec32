"""
Common dependencies for FastAPI
"""

from datetime import date
from typing import Optional
from fastapi import Query

from rental_orders.core.config import settings
from rental_orders.services.delivery_queue import DeliveryQueuePartitioner
from rental_orders.services.order_notification import OrderNotificationService
from rental_orders.services.order_status import OrderStatusMachine
from rental_orders.services.state_machine import STRICT_POLICY, get_policy
from rental_orders.utils.helpers import utcnow

def get_order_notifier() -> OrderNotificationService:
    return OrderNotificationService()

def get_admin_status_machine() -> OrderStatusMachine:
    """Status machine for admin edits, using ADMIN_TRANSITION_POLICY"""
    return OrderStatusMachine(get_policy(settings.ADMIN_TRANSITION_POLICY))

def get_partner_status_machine() -> OrderStatusMachine:
    """Delivery partners are always held to the strict transition tables"""
    return OrderStatusMachine(STRICT_POLICY)

def get_delivery_partitioner() -> DeliveryQueuePartitioner:
    return DeliveryQueuePartitioner()

def get_today(
    today: Optional[date] = Query(None, description="Reference day, defaults to the current UTC date")
) -> date:
    return today or utcnow().date()
