"""Services package"""

from .coupon_engine import CouponEngine
from .pricing import OrderPricingCalculator
from .order_status import OrderStatusMachine
from .delivery_queue import DeliveryQueuePartitioner
from .state_machine import STRICT_POLICY, PERMISSIVE_POLICY, TransitionPolicy, get_policy

__all__ = [
    "CouponEngine",
    "OrderPricingCalculator",
    "OrderStatusMachine",
    "DeliveryQueuePartitioner",
    "TransitionPolicy",
    "STRICT_POLICY",
    "PERMISSIVE_POLICY",
    "get_policy"
]
