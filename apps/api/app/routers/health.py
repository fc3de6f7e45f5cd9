from fastapi import APIRouter, Depends, Response, status

from app.dependencies import get_storage
from app.schemas.health import HealthResponse, ReadinessDependency, ReadinessResponse
from app.services.readiness_service import (
    local_mirror_dependency_status,
    remote_store_dependency_status,
    safe_dependency_status,
)
from app.services.storage import TwoTierStore

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    summary="Readiness check",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(response: Response, storage: TwoTierStore = Depends(get_storage)) -> ReadinessResponse:
    dependencies = [
        ReadinessDependency(
            name="remote_store",
            status=safe_dependency_status(
                "remote_store", lambda: remote_store_dependency_status(storage)
            ),
        ),
        ReadinessDependency(
            name="local_mirror",
            status=safe_dependency_status(
                "local_mirror", lambda: local_mirror_dependency_status(storage.local)
            ),
        ),
    ]

    readiness_status = "ok" if all(dep.status == "ok" for dep in dependencies) else "degraded"
    if readiness_status != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(
        status=readiness_status,
        remote_backend=storage.remote.service,
        dependencies=dependencies,
    )
