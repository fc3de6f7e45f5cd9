from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.order import (
    AssignCourierRequest,
    DeleteConfirmation,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderUpdate,
    RatingLinkResponse,
)
from app.schemas.rating import RatableOrderResponse, RatingResultResponse, RatingSubmitRequest
from app.schemas.sync import SyncResponse
from app.schemas.user import (
    CourierStatsResponse,
    ProfileUpdate,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "OrderCreate",
    "OrderUpdate",
    "OrderResponse",
    "OrderListResponse",
    "AssignCourierRequest",
    "DeleteConfirmation",
    "RatingLinkResponse",
    "RatingSubmitRequest",
    "RatableOrderResponse",
    "RatingResultResponse",
    "SyncResponse",
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "UserResponse",
    "UserListResponse",
    "CourierStatsResponse",
]
