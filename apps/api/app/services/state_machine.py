from fastapi import HTTPException, status

from app.models.domain import Order
from app.models.order import OrderStatus

ORDER_STATE_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.ASSIGNED, OrderStatus.CANCELLED},
    OrderStatus.ASSIGNED: {OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

RATABLE_STATUSES = frozenset({OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def ensure_valid_transition(current: OrderStatus, next_status: OrderStatus) -> None:
    if next_status == current:
        return

    allowed = ORDER_STATE_TRANSITIONS.get(current, set())
    if next_status not in allowed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invalid state transition: {current.value} -> {next_status.value}",
        )


def reconcile_status(order: Order) -> Order:
    """Return ``order`` with status moved off ``pending`` when it carries a code.

    A rating code and the ``pending`` status are mutually exclusive. Every order
    write goes through this function, whatever status the caller supplied.
    """
    if order.code and order.status == OrderStatus.PENDING:
        return order.model_copy(update={"status": OrderStatus.ASSIGNED})
    return order


def is_ratable(order: Order) -> bool:
    return order.status in RATABLE_STATUSES
