from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.order import OrderStatus


def _strip(value: str | None) -> str | None:
    if value is None:
        return value
    return value.strip()


class OrderCreate(BaseModel):
    address: str = Field(min_length=1, max_length=500)
    phone_number: str = Field(min_length=1, max_length=50)
    delivery_time: str = Field(min_length=1, max_length=64)
    comments: str | None = Field(default=None, max_length=2000)
    courier_id: str | None = None
    code: str | None = Field(default=None, max_length=8)
    status: OrderStatus = OrderStatus.PENDING

    @field_validator("address", "phone_number", "delivery_time", "comments")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        return _strip(value)


class OrderUpdate(BaseModel):
    address: str | None = Field(default=None, min_length=1, max_length=500)
    phone_number: str | None = Field(default=None, min_length=1, max_length=50)
    delivery_time: str | None = Field(default=None, min_length=1, max_length=64)
    comments: str | None = Field(default=None, max_length=2000)
    status: OrderStatus | None = None

    @field_validator("address", "phone_number", "delivery_time", "comments")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        return _strip(value)


class AssignCourierRequest(BaseModel):
    courier_id: str = Field(min_length=1)


class DeleteConfirmation(BaseModel):
    password: str = Field(min_length=1)


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    address: str
    phone_number: str
    delivery_time: str
    comments: str | None
    courier_id: str | None
    courier_name: str | None
    status: OrderStatus
    code: str | None
    created_at: datetime
    completed_at: datetime | None
    rating: int | None
    is_positive: bool | None
    feedback: str | None


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class RatingLinkResponse(BaseModel):
    order_id: str
    code: str
    path: str
