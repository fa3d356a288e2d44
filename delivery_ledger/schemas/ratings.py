from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RatingCreate(BaseModel):
    order_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=1000)


class RatingResponse(BaseModel):
    id: int
    order_id: int
    driver_id: int
    restaurant_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DriverRatingSummary(BaseModel):
    driver_id: int
    average_rating: float
    rating_count: int
    ratings: list[RatingResponse] = Field(default_factory=list)
