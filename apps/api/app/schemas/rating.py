from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.order import OrderStatus


class RatingSubmitRequest(BaseModel):
    code: str = Field(min_length=1, max_length=8)
    rating: int = Field(ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=2000)
    order_id: str | None = None


class RatableOrderResponse(BaseModel):
    """What a customer sees after redeeming a code; no contact details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    address: str
    delivery_time: str
    courier_name: str | None
    status: OrderStatus


class RatingResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: OrderStatus
    rating: int
    is_positive: bool
    feedback: str | None
    completed_at: datetime
