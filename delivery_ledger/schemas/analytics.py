from datetime import date as date_type, datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field

from delivery_ledger.core.enums import RevenuePeriod


def _meta() -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": str(uuid4()),
    }


class DailyStats(BaseModel):
    date: date_type
    collections: int
    commissions: int
    active_drivers: int
    pending_orders: int
    meta: dict = Field(default_factory=_meta)


class LeaderboardEntry(BaseModel):
    driver_id: int
    name: str
    total_deliveries: int
    average_rating: float
    total_earnings: int
    completion_percentage: float


class Leaderboard(BaseModel):
    drivers: list[LeaderboardEntry]
    meta: dict = Field(default_factory=_meta)


class RevenueBucket(BaseModel):
    period_start: date_type
    revenue: int
    orders: int


class RevenueReport(BaseModel):
    period: RevenuePeriod
    buckets: list[RevenueBucket]
    meta: dict = Field(default_factory=_meta)


class StatusDistribution(BaseModel):
    counts: dict[str, int]
    meta: dict = Field(default_factory=_meta)


class RestaurantStats(BaseModel):
    restaurant_id: int
    today_orders: int
    total_collection: int
    active_deliveries: int
    meta: dict = Field(default_factory=_meta)
