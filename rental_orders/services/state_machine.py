"""
Status state machines for orders, payments and deliveries
"""

from typing import Dict, List, Optional, Set, Type
import enum

from rental_orders.models.order import OrderStatus, PaymentStatus, DeliveryStatus, StatusField

ORDER_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED
    },
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED
    },
    OrderStatus.SHIPPED: {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED
    },
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REJECTED: set()  # Terminal
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, Set[PaymentStatus]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED
    },
    PaymentStatus.PAID: {
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED
    },
    PaymentStatus.FAILED: {
        PaymentStatus.PENDING,  # For retry
        PaymentStatus.PAID
    },
    PaymentStatus.CANCELLED: set(),
    PaymentStatus.REFUNDED: set()
}

DELIVERY_TRANSITIONS: Dict[DeliveryStatus, Set[DeliveryStatus]] = {
    DeliveryStatus.PENDING: {
        DeliveryStatus.PICKED_UP,
        DeliveryStatus.DELIVERED  # Drop marked complete straight from the queue
    },
    DeliveryStatus.PICKED_UP: {
        DeliveryStatus.DELIVERED
    },
    DeliveryStatus.DELIVERED: {
        DeliveryStatus.RETURNED
    },
    DeliveryStatus.RETURNED: set()
}

class StatusStateMachine:
    """
    Manages valid status transitions from an injected table
    """

    def __init__(self, transitions: Dict[enum.Enum, Set[enum.Enum]]):
        self.transitions = transitions

    @classmethod
    def permissive(cls, states: Type[enum.Enum]) -> "StatusStateMachine":
        """Any state may move to any other state"""
        members = set(states)
        return cls({state: members - {state} for state in states})

    def can_transition(
        self,
        current_status: enum.Enum,
        new_status: enum.Enum
    ) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        valid_transitions = self.transitions.get(current_status, set())
        return new_status in valid_transitions

    def get_valid_transitions(
        self,
        current_status: enum.Enum
    ) -> List[enum.Enum]:
        """
        Get list of valid transitions from current status

        Args:
            current_status: Current status

        Returns:
            List of valid next statuses
        """
        return sorted(self.transitions.get(current_status, set()), key=lambda s: s.value)

    def is_terminal_state(self, status: enum.Enum) -> bool:
        """
        Check if status is a terminal state

        Args:
            status: Current status

        Returns:
            True if no more transitions possible
        """
        return len(self.transitions.get(status, set())) == 0

class TransitionPolicy:
    """One state machine per status field"""

    def __init__(
        self,
        name: str,
        order: StatusStateMachine,
        payment: StatusStateMachine,
        delivery: StatusStateMachine
    ):
        self.name = name
        self.machines: Dict[StatusField, StatusStateMachine] = {
            StatusField.ORDER: order,
            StatusField.PAYMENT: payment,
            StatusField.DELIVERY: delivery,
        }

    def machine(self, field: StatusField) -> StatusStateMachine:
        return self.machines[field]

    def __repr__(self):
        return f"<TransitionPolicy({self.name!r})>"

STRICT_POLICY = TransitionPolicy(
    "strict",
    order=StatusStateMachine(ORDER_TRANSITIONS),
    payment=StatusStateMachine(PAYMENT_TRANSITIONS),
    delivery=StatusStateMachine(DELIVERY_TRANSITIONS),
)

PERMISSIVE_POLICY = TransitionPolicy(
    "permissive",
    order=StatusStateMachine.permissive(OrderStatus),
    payment=StatusStateMachine.permissive(PaymentStatus),
    delivery=StatusStateMachine.permissive(DeliveryStatus),
)

POLICIES = {policy.name: policy for policy in (STRICT_POLICY, PERMISSIVE_POLICY)}

def get_policy(name: Optional[str]) -> TransitionPolicy:
    """Look up a named policy, e.g. from ADMIN_TRANSITION_POLICY"""
    try:
        return POLICIES[(name or "strict").lower()]
    except KeyError:
        raise ValueError(f"Unknown transition policy: {name}")
