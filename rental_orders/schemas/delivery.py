"""
Delivery partner queue schemas
"""

from pydantic import BaseModel, Field
from typing import List, Optional
import enum

from rental_orders.schemas.order import OrderSnapshot, StatusChangeRecord

class CompletionKind(str, enum.Enum):
    DROP = "drop"
    PICKUP = "pickup"

class DueWindow(str, enum.Enum):
    """Rental end date filters offered on the admin orders screen"""
    TODAY = "today"
    TOMORROW = "tomorrow"
    THIS_WEEK = "this_week"
    OVERDUE = "overdue"

class QueuedOrder(BaseModel):
    order: OrderSnapshot
    overdue: bool = False

class DeliveryQueue(BaseModel):
    """Three independently computed views; an order may sit in more than one"""
    drops: List[QueuedOrder] = Field(default_factory=list)
    pickups: List[QueuedOrder] = Field(default_factory=list)
    completed: List[QueuedOrder] = Field(default_factory=list)

class DeliveryCompletion(BaseModel):
    order: OrderSnapshot
    record: Optional[StatusChangeRecord] = None

    @property
    def changed(self) -> bool:
        return self.record is not None
