from fastapi import APIRouter, Depends

from app.auth.dependencies import AuthContext, get_auth_context, issue_access_token
from app.dependencies import get_storage
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.user import UserResponse
from app.services import users_service
from app.services.storage import TwoTierStore

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse, summary="Exchange credentials for a token")
def login_endpoint(
    payload: LoginRequest,
    storage: TwoTierStore = Depends(get_storage),
) -> TokenResponse:
    user = users_service.authenticate(storage, payload.username, payload.password)
    return TokenResponse(
        access_token=issue_access_token(user),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse, summary="Current user")
def me_endpoint(
    storage: TwoTierStore = Depends(get_storage),
    auth: AuthContext = Depends(get_auth_context),
) -> UserResponse:
    return UserResponse.model_validate(users_service.get_user(storage, auth.user_id))
