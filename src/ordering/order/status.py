"""Order status values and the allowed-transition table."""

from enum import Enum

from ordering.errors import InvalidTransitionError


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PREPARING = "Preparing"
    READY = "Ready"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"


TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELED}),
    OrderStatus.READY: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELED})

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING})


def to_status(value) -> OrderStatus:
    """Coerce an ``OrderStatus`` or its value, rejecting unknown statuses."""
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Unknown order status: {value!r}") from None


def valid_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    return TRANSITIONS[to_status(status)]


def can_transition(source: OrderStatus, target: OrderStatus) -> bool:
    return to_status(target) in valid_transitions(source)


def is_terminal(status: OrderStatus) -> bool:
    return to_status(status) in TERMINAL_STATUSES
