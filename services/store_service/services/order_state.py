"""Order status state machine.

The happy path is a straight line:

    pending -> confirmed -> packing -> ready_for_pickup -> out_for_delivery -> delivered

Back-office actions may move an order forward any number of steps, never
backwards. ``cancelled`` is reachable only through the cancellation flow
(which restores stock and refunds) and only before dispatch.
"""

from libs.common.errors import InvalidStatusTransition
from services.store_service.models import OrderStatus

PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKING,
    OrderStatus.READY_FOR_PICKUP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

CANCELLABLE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PACKING,
        OrderStatus.READY_FOR_PICKUP,
    }
)

_RANK = {status: index for index, status in enumerate(PROGRESSION)}

# Allowed targets per current status, derived from the progression.
TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    status: frozenset(PROGRESSION[_RANK[status] + 1 :]) for status in PROGRESSION
}
TRANSITIONS[OrderStatus.CANCELLED] = frozenset()
for _status in CANCELLABLE_STATUSES:
    TRANSITIONS[_status] = TRANSITIONS[_status] | {OrderStatus.CANCELLED}


def can_cancel(status: OrderStatus) -> bool:
    return status in CANCELLABLE_STATUSES


def ensure_cancellable(status: OrderStatus) -> None:
    if not can_cancel(status):
        raise InvalidStatusTransition(
            status.value,
            OrderStatus.CANCELLED.value,
            detail=f"Cannot cancel order that is {status.value}",
        )


def validate_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Check a back-office status change.

    Returns False when ``target`` equals ``current`` (nothing to do), True when
    the move is allowed. Raises ``InvalidStatusTransition`` otherwise.
    Cancelling is rejected here on purpose: use the cancellation flow.
    """
    if current == target:
        return False
    if target == OrderStatus.CANCELLED:
        raise InvalidStatusTransition(
            current.value,
            target.value,
            detail="Use the cancel action to cancel an order",
        )
    if target not in TRANSITIONS[current]:
        raise InvalidStatusTransition(current.value, target.value)
    return True
