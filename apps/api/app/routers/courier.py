from fastapi import APIRouter, Depends, Query

from app.auth.dependencies import AuthContext, require_staff
from app.dependencies import get_rating_code_registry, get_storage
from app.models.order import OrderStatus
from app.schemas.order import OrderListResponse, OrderResponse, RatingLinkResponse
from app.services import orders_service
from app.services.rating_codes import RatingCodeRegistry
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/courier/orders", tags=["courier"])


@router.get("", response_model=OrderListResponse, summary="List orders assigned to the caller")
def my_orders_endpoint(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    storage: TwoTierStore = Depends(get_storage),
    auth: AuthContext = Depends(require_staff),
) -> OrderListResponse:
    orders = orders_service.list_orders(storage, status_filter=status_filter, courier_id=auth.user_id)
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.post("/{order_id}/start", response_model=OrderResponse, summary="Start delivery")
def start_endpoint(
    order_id: str,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    auth: AuthContext = Depends(require_staff),
) -> OrderResponse:
    order = orders_service.start_delivery(storage, registry, order_id, auth)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/complete", response_model=OrderResponse, summary="Complete delivery")
def complete_endpoint(
    order_id: str,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    auth: AuthContext = Depends(require_staff),
) -> OrderResponse:
    order = orders_service.complete_delivery(storage, registry, order_id, auth)
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}/rating-link",
    response_model=RatingLinkResponse,
    summary="Rating link to hand to the customer",
)
def rating_link_endpoint(
    order_id: str,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    auth: AuthContext = Depends(require_staff),
) -> RatingLinkResponse:
    return RatingLinkResponse(**orders_service.rating_link(storage, registry, order_id, auth))
