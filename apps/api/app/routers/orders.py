from fastapi import APIRouter, Depends, Query, Response, status

from app.auth.dependencies import AuthContext, require_admin
from app.dependencies import get_rating_code_registry, get_storage
from app.models.order import OrderStatus
from app.observability import observe_timing
from app.schemas.order import (
    AssignCourierRequest,
    DeleteConfirmation,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderUpdate,
)
from app.services import orders_service, users_service
from app.services.rating_codes import RatingCodeRegistry
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, summary="Create order", status_code=201)
def create_order_endpoint(
    payload: OrderCreate,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    _auth: AuthContext = Depends(require_admin),
) -> OrderResponse:
    order = orders_service.create_order(storage, registry, payload)
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse, summary="List orders")
def list_orders_endpoint(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    courier_id: str | None = Query(default=None),
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> OrderListResponse:
    orders = orders_service.list_orders(storage, status_filter=status_filter, courier_id=courier_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order detail")
def get_order_endpoint(
    order_id: str,
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> OrderResponse:
    return OrderResponse.model_validate(orders_service.get_order(storage, order_id))


@router.patch("/{order_id}", response_model=OrderResponse, summary="Update order")
def update_order_endpoint(
    order_id: str,
    payload: OrderUpdate,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    _auth: AuthContext = Depends(require_admin),
) -> OrderResponse:
    order = orders_service.update_order(storage, registry, order_id, payload)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/assign", response_model=OrderResponse, summary="Assign courier")
def assign_endpoint(
    order_id: str,
    payload: AssignCourierRequest,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    _auth: AuthContext = Depends(require_admin),
) -> OrderResponse:
    with observe_timing("courier_assignment_seconds"):
        order = orders_service.assign_courier(storage, registry, order_id, payload.courier_id)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse, summary="Cancel order")
def cancel_endpoint(
    order_id: str,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    _auth: AuthContext = Depends(require_admin),
) -> OrderResponse:
    return OrderResponse.model_validate(orders_service.cancel_order(storage, registry, order_id))


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete order",
)
def delete_order_endpoint(
    order_id: str,
    payload: DeleteConfirmation,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    auth: AuthContext = Depends(require_admin),
) -> Response:
    users_service.confirm_password(storage, auth, payload.password)
    orders_service.delete_order(storage, registry, order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
