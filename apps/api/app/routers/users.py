from fastapi import APIRouter, Depends, Query, Response, status

from app.auth.dependencies import AuthContext, get_auth_context, require_admin
from app.dependencies import get_storage
from app.models.user import UserRole
from app.schemas.order import DeleteConfirmation
from app.schemas.user import (
    CourierStatsResponse,
    ProfileUpdate,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services import users_service
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/users", tags=["users"])
profile_router = APIRouter(prefix="/api/v1/profile", tags=["users"])


@router.get("", response_model=UserListResponse, summary="List users")
def list_users_endpoint(
    role: UserRole | None = Query(default=None),
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> UserListResponse:
    users = users_service.list_users(storage, role)
    return UserListResponse(items=[UserResponse.model_validate(user) for user in users])


@router.get("/couriers", response_model=UserListResponse, summary="List couriers")
def list_couriers_endpoint(
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> UserListResponse:
    users = users_service.list_users(storage, UserRole.COURIER)
    return UserListResponse(items=[UserResponse.model_validate(user) for user in users])


@router.post("", response_model=UserResponse, summary="Create user", status_code=201)
def create_user_endpoint(
    payload: UserCreate,
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> UserResponse:
    return UserResponse.model_validate(users_service.create_user(storage, payload))


@router.get("/{user_id}", response_model=UserResponse, summary="Get user")
def get_user_endpoint(
    user_id: str,
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> UserResponse:
    return UserResponse.model_validate(users_service.get_user(storage, user_id))


@router.patch("/{user_id}", response_model=UserResponse, summary="Update user")
def update_user_endpoint(
    user_id: str,
    payload: UserUpdate,
    storage: TwoTierStore = Depends(get_storage),
    auth: AuthContext = Depends(require_admin),
) -> UserResponse:
    return UserResponse.model_validate(users_service.update_user(storage, user_id, payload, auth))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete user",
)
def delete_user_endpoint(
    user_id: str,
    payload: DeleteConfirmation,
    storage: TwoTierStore = Depends(get_storage),
    auth: AuthContext = Depends(require_admin),
) -> Response:
    users_service.confirm_password(storage, auth, payload.password)
    users_service.delete_user(storage, user_id, auth)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{user_id}/stats", response_model=CourierStatsResponse, summary="Courier rating stats")
def courier_stats_endpoint(
    user_id: str,
    storage: TwoTierStore = Depends(get_storage),
    _auth: AuthContext = Depends(require_admin),
) -> CourierStatsResponse:
    return users_service.courier_stats(storage, user_id)


@profile_router.patch("", response_model=UserResponse, summary="Update own profile")
def update_profile_endpoint(
    payload: ProfileUpdate,
    storage: TwoTierStore = Depends(get_storage),
    auth: AuthContext = Depends(get_auth_context),
) -> UserResponse:
    return UserResponse.model_validate(users_service.update_profile(storage, auth, payload))
