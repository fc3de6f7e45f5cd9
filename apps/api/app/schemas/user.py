from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.user import UserRole


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.COURIER

    @field_validator("username", "name")
    @classmethod
    def strip_strings(cls, value: str) -> str:
        return value.strip()


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=150)
    password: str | None = Field(default=None, min_length=1, max_length=255)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: UserRole | None = None

    @field_validator("username", "name")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else value


class ProfileUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=1, max_length=150)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    password: str | None = Field(default=None, min_length=1, max_length=255)
    current_password: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    role: UserRole
    name: str
    created_at: datetime


class UserListResponse(BaseModel):
    items: list[UserResponse]


class CourierStatsResponse(BaseModel):
    courier_id: str
    total_orders: int
    completed_orders: int
    rated_orders: int
    positive_ratings: int
    negative_ratings: int
    average_rating: float | None
