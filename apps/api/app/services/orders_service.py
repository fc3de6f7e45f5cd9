from fastapi import HTTPException, status

from app.auth.dependencies import AuthContext
from app.models.domain import Order, User, new_id, now_utc
from app.models.order import OrderStatus
from app.models.user import UserRole
from app.observability import log_event, metrics_store
from app.schemas.order import OrderCreate, OrderUpdate
from app.services.rating_codes import (
    CODE_SPACE_SIZE,
    RatingCodeRegistry,
    RatingCodeSpaceExhaustedError,
    normalize_code,
)
from app.services.state_machine import (
    RATABLE_STATUSES,
    ensure_valid_transition,
    is_ratable,
    reconcile_status,
)
from app.services.storage import TwoTierStore

INITIAL_STATUSES = {OrderStatus.PENDING, OrderStatus.ASSIGNED}
POSITIVE_RATING_THRESHOLD = 4

INVALID_CODE_DETAIL = "Invalid or expired code"
NOT_RATABLE_DETAIL = "Order not in a ratable state"


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")


def _resolve_courier(storage: TwoTierStore, courier_id: str) -> User:
    courier = storage.get_user(courier_id)
    if courier is None or courier.role != UserRole.COURIER:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown courier")
    return courier


def _ensure_courier_access(order: Order, actor: AuthContext) -> None:
    if actor.is_admin:
        return
    if order.courier_id != actor.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Order is not assigned to this courier",
        )


def issue_order_code(storage: TwoTierStore, registry: RatingCodeRegistry) -> str:
    """Issue a code that no ratable order in the store already holds."""
    try:
        for _ in range(CODE_SPACE_SIZE):
            # a rejected draw stays registered; a ratable order already holds it
            code = registry.issue_code()
            if not storage.find_orders_by_code(code, RATABLE_STATUSES):
                return code
        raise RatingCodeSpaceExhaustedError()
    except RatingCodeSpaceExhaustedError as err:
        metrics_store.increment("rating_code_exhausted_total")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No rating codes available, try again later",
        ) from err


def transition_order_status(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order: Order,
    next_status: OrderStatus,
    changes: dict | None = None,
) -> Order:
    """Move ``order`` to ``next_status``, saving ``changes`` in the same write."""
    previous_status = order.status
    ensure_valid_transition(previous_status, next_status)

    updates = dict(changes or {})
    if previous_status == next_status:
        return storage.save_order(order.model_copy(update=updates)) if updates else order

    updates["status"] = next_status
    if next_status == OrderStatus.ASSIGNED and not order.code:
        updates["code"] = issue_order_code(storage, registry)
    if next_status == OrderStatus.COMPLETED:
        updates["completed_at"] = now_utc()

    saved = storage.save_order(order.model_copy(update=updates))
    metrics_store.increment(f"order_status_{next_status.value}_total")
    log_event(
        f"order_status_changed:{previous_status.value}->{saved.status.value}",
        order_id=saved.id,
    )
    return saved


def create_order(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    payload: OrderCreate,
) -> Order:
    if payload.status not in INITIAL_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New orders must be pending or assigned",
        )

    order = Order(
        id=new_id(),
        address=payload.address,
        phone_number=payload.phone_number,
        delivery_time=payload.delivery_time,
        comments=payload.comments or None,
        status=payload.status,
        code=payload.code,
        created_at=now_utc(),
    )

    if payload.courier_id:
        courier = _resolve_courier(storage, payload.courier_id)
        order = order.model_copy(
            update={
                "courier_id": courier.id,
                "courier_name": courier.name,
                "status": OrderStatus.ASSIGNED,
            }
        )

    if order.status == OrderStatus.ASSIGNED and not order.code:
        order = order.model_copy(update={"code": issue_order_code(storage, registry)})

    created = storage.insert_order(order)
    metrics_store.increment("order_created_total")
    log_event("order_created", order_id=created.id, code=created.code)
    return created


def get_order(storage: TwoTierStore, order_id: str) -> Order:
    order = storage.get_order(order_id)
    if order is None:
        raise _not_found()
    return order


def list_orders(
    storage: TwoTierStore,
    status_filter: OrderStatus | None = None,
    courier_id: str | None = None,
) -> list[Order]:
    orders = storage.orders_for_courier(courier_id) if courier_id else storage.list_orders()
    if status_filter is not None:
        orders = [order for order in orders if order.status == status_filter]
    return orders


def update_order(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order_id: str,
    payload: OrderUpdate,
) -> Order:
    order = get_order(storage, order_id)
    if order.status == OrderStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Completed orders cannot be edited",
        )

    fields = payload.model_dump(exclude_unset=True, exclude={"status"})
    if "comments" in fields:
        fields["comments"] = fields["comments"] or None
    for name in ("address", "phone_number", "delivery_time"):
        if name in fields and fields[name] is None:
            fields.pop(name)

    if payload.status is None:
        next_status = order.status
    else:
        # a caller asking for "pending" on an order holding a code is steered to "assigned"
        next_status = reconcile_status(order.model_copy(update={"status": payload.status})).status

    updated = transition_order_status(storage, registry, order, next_status, changes=fields)
    if fields:
        log_event("order_updated", order_id=updated.id)
    return updated


def assign_courier(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order_id: str,
    courier_id: str,
) -> Order:
    order = get_order(storage, order_id)
    if order.status not in {OrderStatus.PENDING, *RATABLE_STATUSES}:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot assign a courier to a {order.status.value} order",
        )

    courier = _resolve_courier(storage, courier_id)
    order = order.model_copy(update={"courier_id": courier.id, "courier_name": courier.name})

    if order.status == OrderStatus.PENDING:
        order = transition_order_status(storage, registry, order, OrderStatus.ASSIGNED)
    else:
        order = storage.save_order(order)

    metrics_store.increment("courier_assigned_total")
    log_event("courier_assigned", order_id=order.id, user_id=courier.id, code=order.code)
    return order


def start_delivery(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order_id: str,
    actor: AuthContext,
) -> Order:
    order = get_order(storage, order_id)
    _ensure_courier_access(order, actor)
    return transition_order_status(storage, registry, order, OrderStatus.IN_PROGRESS)


def complete_delivery(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order_id: str,
    actor: AuthContext,
) -> Order:
    """Courier-side completion; the rating stays unset."""
    order = get_order(storage, order_id)
    _ensure_courier_access(order, actor)
    return transition_order_status(storage, registry, order, OrderStatus.COMPLETED)


def cancel_order(storage: TwoTierStore, registry: RatingCodeRegistry, order_id: str) -> Order:
    order = get_order(storage, order_id)
    return transition_order_status(storage, registry, order, OrderStatus.CANCELLED)


def delete_order(storage: TwoTierStore, registry: RatingCodeRegistry, order_id: str) -> None:
    order = get_order(storage, order_id)
    storage.delete_order(order.id)
    registry.invalidate(order.code)
    metrics_store.increment("order_deleted_total")
    log_event("order_deleted", order_id=order.id)


def lookup_order_by_code(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    code: str,
) -> Order:
    normalized = normalize_code(code)
    if not registry.is_valid(normalized):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVALID_CODE_DETAIL)

    candidates = storage.find_orders_by_code(normalized, RATABLE_STATUSES)
    if not candidates:
        candidates = storage.find_orders_by_code(normalized)
    if not candidates:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVALID_CODE_DETAIL)

    order = candidates[0]
    if not is_ratable(order):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NOT_RATABLE_DETAIL)
    return order


def submit_rating(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    code: str,
    rating: int,
    feedback: str | None = None,
    order_id: str | None = None,
) -> Order:
    if not 1 <= rating <= 5:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rating must be between 1 and 5",
        )

    order = lookup_order_by_code(storage, registry, code)
    if order_id is not None and order.id != order_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVALID_CODE_DETAIL)

    feedback = feedback.strip() if feedback else None
    rated = storage.save_order(
        order.model_copy(
            update={
                "status": OrderStatus.COMPLETED,
                "rating": rating,
                "is_positive": rating >= POSITIVE_RATING_THRESHOLD,
                "feedback": feedback or None,
                "completed_at": now_utc(),
            }
        )
    )
    registry.invalidate(code)

    metrics_store.increment("rating_submitted_total")
    log_event(f"rating_submitted:{rating}", order_id=rated.id, code=normalize_code(code))
    return rated


def rating_link(
    storage: TwoTierStore,
    registry: RatingCodeRegistry,
    order_id: str,
    actor: AuthContext,
) -> dict[str, str]:
    order = get_order(storage, order_id)
    _ensure_courier_access(order, actor)
    if not order.code or not is_ratable(order) or not registry.is_valid(order.code):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Order has no active rating code",
        )
    return {"order_id": order.id, "code": order.code, "path": f"/rate?code={order.code}"}
