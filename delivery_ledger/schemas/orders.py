import re
from datetime import date as date_type, datetime, timezone
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from delivery_ledger.core.enums import OrderStatus

MOBILE_PHONE_PATTERN = re.compile(r"^01[0125][0-9]{8}$")
MAX_AMOUNT = 100_000_000

Amount = Annotated[int, Field(gt=0, le=MAX_AMOUNT, strict=True)]


def normalize_phone(value: str) -> str:
    cleaned = re.sub(r"[\s-]", "", value)
    if not MOBILE_PHONE_PATTERN.match(cleaned):
        raise ValueError("Invalid mobile phone number")
    return cleaned


def _check_coordinate(value: Optional[str], bound: float, name: str) -> Optional[str]:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"Invalid {name}") from None
    if not -bound <= number <= bound:
        raise ValueError(f"Invalid {name}")
    return value


class OrderCreate(BaseModel):
    restaurant_id: int = Field(..., gt=0)
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_phone: str
    delivery_address: str = Field(..., min_length=10, max_length=500)
    delivery_lat: Optional[str] = None
    delivery_lng: Optional[str] = None
    collection_amount: Amount
    delivery_fee: Amount
    delivery_window: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, value: str) -> str:
        return normalize_phone(value)

    @field_validator("delivery_lat")
    @classmethod
    def _lat(cls, value: Optional[str]) -> Optional[str]:
        return _check_coordinate(value, 90, "latitude")

    @field_validator("delivery_lng")
    @classmethod
    def _lng(cls, value: Optional[str]) -> Optional[str]:
        return _check_coordinate(value, 180, "longitude")


# Status transition requests: one closed variant per target status.
class AssignOrder(BaseModel):
    status: Literal["assigned"]
    driver_id: Optional[int] = Field(default=None, gt=0)
    dispatcher_notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class PickUpOrder(BaseModel):
    status: Literal["picked_up"]
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class DeliverOrder(BaseModel):
    status: Literal["delivered"]
    proof_image_url: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class CancelOrder(BaseModel):
    status: Literal["cancelled"]
    reason: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(extra="forbid")


class ReopenOrder(BaseModel):
    """Request to move back to pending. Never a valid edge; kept so the state
    machine can reject it with a descriptive transition error."""

    status: Literal["pending"]

    model_config = ConfigDict(extra="forbid")


OrderTransition = Annotated[
    Union[AssignOrder, PickUpOrder, DeliverOrder, CancelOrder, ReopenOrder],
    Field(discriminator="status"),
]


class OrderDetailsUpdate(BaseModel):
    """Non-status edits. Unknown fields, including `status`, are rejected."""

    notes: Optional[str] = None
    dispatcher_notes: Optional[str] = None
    delivery_window: Optional[str] = Field(default=None, max_length=100)
    delivery_address: Optional[str] = Field(default=None, min_length=10, max_length=500)
    delivery_lat: Optional[str] = None
    delivery_lng: Optional[str] = None

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    @field_validator("delivery_lat")
    @classmethod
    def _lat(cls, value: Optional[str]) -> Optional[str]:
        return _check_coordinate(value, 90, "latitude")

    @field_validator("delivery_lng")
    @classmethod
    def _lng(cls, value: Optional[str]) -> Optional[str]:
        return _check_coordinate(value, 180, "longitude")

    @model_validator(mode="after")
    def _not_empty(self) -> "OrderDetailsUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class OrderFilters(BaseModel):
    restaurant_id: Optional[int] = Field(default=None, gt=0)
    driver_id: Optional[int] = Field(default=None, gt=0)
    status: Optional[OrderStatus] = None
    date: Optional[date_type] = None


class OrderResponse(BaseModel):
    id: int
    customer_name: str
    customer_phone: str
    delivery_address: str
    delivery_lat: Optional[str] = None
    delivery_lng: Optional[str] = None
    restaurant_id: int
    driver_id: Optional[int] = None
    status: OrderStatus
    collection_amount: int
    delivery_fee: int
    delivery_window: Optional[str] = None
    picked_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    proof_image_url: Optional[str] = None
    notes: Optional[str] = None
    dispatcher_notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    meta: dict = Field(
        default_factory=lambda: {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": str(uuid4()),
        }
    )

    model_config = ConfigDict(from_attributes=True)


# PATCH /orders/{id} body: a status transition or a details-only edit.
OrderPatch = Union[OrderTransition, OrderDetailsUpdate]
