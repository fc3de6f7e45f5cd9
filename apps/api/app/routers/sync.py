from fastapi import APIRouter, Depends

from app.auth.dependencies import AuthContext, require_admin
from app.dependencies import get_storage
from app.observability import observe_timing
from app.schemas.sync import SyncResponse
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])


@router.post("/push", response_model=SyncResponse, summary="Push the local mirror to the remote")
def push_endpoint(
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> SyncResponse:
    with observe_timing("sync_push_seconds"):
        report = storage.push_local_to_remote()
    return SyncResponse.model_validate(report)


@router.post("/pull", response_model=SyncResponse, summary="Refresh the local mirror from the remote")
def pull_endpoint(
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> SyncResponse:
    with observe_timing("sync_pull_seconds"):
        report = storage.pull_remote_to_local()
    return SyncResponse.model_validate(report)
