from fastapi import HTTPException, status

from app.auth.dependencies import AuthContext
from app.config import settings
from app.models.domain import User, new_id, now_utc
from app.models.order import OrderStatus
from app.models.user import UserRole
from app.observability import log_event, metrics_store
from app.schemas.user import (
    CourierStatsResponse,
    ProfileUpdate,
    UserCreate,
    UserUpdate,
)
from app.services.storage import TwoTierStore

ACTIVE_ORDER_STATUSES = {OrderStatus.ASSIGNED, OrderStatus.IN_PROGRESS}


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


def _ensure_username_available(
    storage: TwoTierStore,
    username: str,
    exclude_user_id: str | None = None,
) -> None:
    existing = storage.find_user_by_username(username)
    if existing is not None and existing.id != exclude_user_id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")


def ensure_bootstrap_admin(storage: TwoTierStore) -> User | None:
    if storage.list_users():
        return None

    admin = storage.insert_user(
        User(
            id=new_id(),
            username=settings.bootstrap_admin_username,
            password=settings.bootstrap_admin_password,
            role=UserRole.ADMIN,
            name=settings.bootstrap_admin_name,
            created_at=now_utc(),
        )
    )
    log_event("bootstrap_admin_created", user_id=admin.id)
    return admin


def authenticate(storage: TwoTierStore, username: str, password: str) -> User:
    user = storage.find_user_by_username(username)
    if user is None or user.password != password:
        metrics_store.increment("login_failed_total")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    metrics_store.increment("login_succeeded_total")
    log_event("user_logged_in", user_id=user.id)
    return user


def confirm_password(storage: TwoTierStore, actor: AuthContext, password: str) -> None:
    """Destructive actions require the acting user to re-enter their password."""
    user = storage.get_user(actor.user_id)
    if user is None or user.password != password:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Password confirmation failed",
        )


def list_users(storage: TwoTierStore, role: UserRole | None = None) -> list[User]:
    return storage.list_users(role)


def get_user(storage: TwoTierStore, user_id: str) -> User:
    user = storage.get_user(user_id)
    if user is None:
        raise _not_found()
    return user


def create_user(storage: TwoTierStore, payload: UserCreate) -> User:
    _ensure_username_available(storage, payload.username)
    user = storage.insert_user(
        User(
            id=new_id(),
            username=payload.username,
            password=payload.password,
            role=payload.role,
            name=payload.name,
            created_at=now_utc(),
        )
    )
    metrics_store.increment("user_created_total")
    log_event(f"user_created:{user.role.value}", user_id=user.id)
    return user


def _apply_user_changes(storage: TwoTierStore, user: User, changes: dict) -> User:
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        return user
    if "username" in changes and changes["username"].casefold() != user.username.casefold():
        _ensure_username_available(storage, changes["username"], exclude_user_id=user.id)

    saved = storage.save_user(user.model_copy(update=changes))
    log_event("user_updated", user_id=saved.id)
    return saved


def update_user(
    storage: TwoTierStore,
    user_id: str,
    payload: UserUpdate,
    actor: AuthContext,
) -> User:
    user = get_user(storage, user_id)
    if (
        user.id == actor.user_id
        and payload.role is not None
        and payload.role != user.role
    ):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You cannot change your own role",
        )
    return _apply_user_changes(storage, user, payload.model_dump(exclude_unset=True))


def update_profile(storage: TwoTierStore, actor: AuthContext, payload: ProfileUpdate) -> User:
    user = get_user(storage, actor.user_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"current_password"})

    if changes.get("password") is not None and payload.current_password != user.password:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Current password is incorrect",
        )
    return _apply_user_changes(storage, user, changes)


def delete_user(storage: TwoTierStore, user_id: str, actor: AuthContext) -> None:
    user = get_user(storage, user_id)
    if user.id == actor.user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You cannot delete your own account",
        )

    if user.role == UserRole.COURIER:
        active = [
            order
            for order in storage.orders_for_courier(user.id)
            if order.status in ACTIVE_ORDER_STATUSES
        ]
        if active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Courier has active orders",
            )

    storage.delete_user(user.id)
    metrics_store.increment("user_deleted_total")
    log_event("user_deleted", user_id=user.id)


def courier_stats(storage: TwoTierStore, courier_id: str) -> CourierStatsResponse:
    courier = get_user(storage, courier_id)
    orders = storage.orders_for_courier(courier.id)

    ratings = [order.rating for order in orders if order.rating is not None]
    positive = sum(1 for order in orders if order.rating is not None and order.is_positive)
    return CourierStatsResponse(
        courier_id=courier.id,
        total_orders=len(orders),
        completed_orders=sum(1 for order in orders if order.status == OrderStatus.COMPLETED),
        rated_orders=len(ratings),
        positive_ratings=positive,
        negative_ratings=len(ratings) - positive,
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else None,
    )
