from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from app.models.order import OrderStatus
from app.models.user import UserRole


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive timestamps
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Order(BaseModel):
    id: str
    address: str
    phone_number: str
    delivery_time: str
    comments: str | None = None
    courier_id: str | None = None
    courier_name: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    code: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
    rating: int | None = Field(default=None, ge=1, le=5)
    is_positive: bool | None = None
    feedback: str | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None

    @field_validator("created_at", "completed_at")
    @classmethod
    def ensure_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class User(BaseModel):
    id: str
    username: str
    password: str
    role: UserRole
    name: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def order_to_row(order: Order) -> dict[str, Any]:
    row = order.model_dump()
    row["status"] = order.status.value
    return row


def user_to_row(user: User) -> dict[str, Any]:
    row = user.model_dump()
    row["role"] = user.role.value
    return row
