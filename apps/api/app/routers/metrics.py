from fastapi import APIRouter, Depends

from app.auth.dependencies import AuthContext, require_admin
from app.dependencies import get_rating_code_registry
from app.observability import metrics_store
from app.schemas.metrics import MetricsResponse, RatingCodeUsage, TimingMetricStats
from app.services.rating_codes import CODE_SPACE_SIZE, RatingCodeRegistry

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get(
    "",
    summary="Counters, request timings and rating code usage",
    response_model=MetricsResponse,
)
def metrics_endpoint(
    registry: RatingCodeRegistry = Depends(get_rating_code_registry),
    _auth: AuthContext = Depends(require_admin),
) -> MetricsResponse:
    snapshot = metrics_store.snapshot()
    return MetricsResponse(
        counters=snapshot.counters,
        timings={
            name: TimingMetricStats.model_validate(stats)
            for name, stats in snapshot.timings.items()
        },
        rating_codes=RatingCodeUsage(live=len(registry.live_codes()), capacity=CODE_SPACE_SIZE),
    )
