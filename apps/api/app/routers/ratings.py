from fastapi import APIRouter, Depends

from app.dependencies import get_rating_code_registry, get_storage
from app.schemas.rating import RatableOrderResponse, RatingResultResponse, RatingSubmitRequest
from app.services import orders_service
from app.services.rating_codes import RatingCodeRegistry
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/ratings", tags=["ratings"])


@router.get("/{code}", response_model=RatableOrderResponse, summary="Validate a rating code")
def lookup_endpoint(
    code: str,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
) -> RatableOrderResponse:
    order = orders_service.lookup_order_by_code(storage, registry, code)
    return RatableOrderResponse.model_validate(order)


@router.post("", response_model=RatingResultResponse, summary="Submit a delivery rating")
def submit_endpoint(
    payload: RatingSubmitRequest,
    storage: TwoTierStore = Depends(get_storage),
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
) -> RatingResultResponse:
    order = orders_service.submit_rating(
        storage,
        registry,
        code=payload.code,
        rating=payload.rating,
        feedback=payload.feedback,
        order_id=payload.order_id,
    )
    return RatingResultResponse.model_validate(order)
