"""
Order fulfillment lifecycle.

Orders move strictly forward: processing -> baking -> out_for_delivery -> delivered.
The transition set is a static table so it can be inspected and tested on its own.
"""
import enum
from types import MappingProxyType
from typing import NamedTuple
from storefront.errors import FailedPrecondition, InvalidArgument


class OrderStatus(str, enum.Enum):
    PROCESSING = "processing"
    BAKING = "baking"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


class StatusTransition(NamedTuple):
    next_status: OrderStatus
    message: str


TRANSITIONS = MappingProxyType({
    OrderStatus.PROCESSING: StatusTransition(OrderStatus.BAKING, "Your order is now being baked!"),
    OrderStatus.BAKING: StatusTransition(OrderStatus.OUT_FOR_DELIVERY, "Your order is out for delivery!"),
    OrderStatus.OUT_FOR_DELIVERY: StatusTransition(OrderStatus.DELIVERED, "Your order has been delivered!"),
})

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED})


def advance(current) -> StatusTransition:
    """
    Return the transition out of ``current``.

    Raises FailedPrecondition for a terminal status and InvalidArgument for
    anything that is not a known status. Accepts either an OrderStatus or its
    string value.
    """
    try:
        status = OrderStatus(current)
    except ValueError:
        raise InvalidArgument("Invalid order status.")

    if status in TERMINAL_STATUSES:
        raise FailedPrecondition("Order is already delivered and cannot progress further.")

    return TRANSITIONS[status]
