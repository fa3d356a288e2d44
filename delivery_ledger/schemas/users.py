from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from delivery_ledger.core.enums import UserRole
from delivery_ledger.schemas.orders import _check_coordinate, normalize_phone


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole
    full_name: str = Field(..., min_length=2, max_length=100)
    phone_number: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone_number")
    @classmethod
    def _phone(cls, value: Optional[str]) -> Optional[str]:
        return normalize_phone(value) if value is not None else None


class LocationUpdate(BaseModel):
    lat: str
    lng: str

    @field_validator("lat")
    @classmethod
    def _lat(cls, value: str) -> str:
        return _check_coordinate(value, 90, "latitude")

    @field_validator("lng")
    @classmethod
    def _lng(cls, value: str) -> str:
        return _check_coordinate(value, 180, "longitude")


class PushTokenUpdate(BaseModel):
    push_token: str = Field(..., min_length=1, max_length=255)


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    full_name: str
    phone_number: Optional[str] = None
    balance: int
    current_lat: Optional[str] = None
    current_lng: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
