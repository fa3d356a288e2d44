from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Query

from delivery_ledger.api.dependencies import CacheDep, SessionDep
from delivery_ledger.core.enums import RevenuePeriod
from delivery_ledger.schemas.analytics import (
    DailyStats,
    Leaderboard,
    RestaurantStats,
    RevenueReport,
    StatusDistribution,
)
from delivery_ledger.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/daily", response_model=DailyStats)
async def get_daily_stats(
    session: SessionDep,
    cache: CacheDep,
    day: Annotated[Optional[date], Query(alias="date")] = None,
) -> DailyStats:
    return await AnalyticsService(session, cache).get_daily_stats(day)


@router.get("/drivers/leaderboard", response_model=Leaderboard)
async def get_driver_leaderboard(
    session: SessionDep,
    cache: CacheDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> Leaderboard:
    return await AnalyticsService(session, cache).get_driver_leaderboard(limit)


@router.get("/orders/distribution", response_model=StatusDistribution)
async def get_status_distribution(
    session: SessionDep, cache: CacheDep
) -> StatusDistribution:
    return await AnalyticsService(session, cache).get_status_distribution()


@router.get("/revenue", response_model=RevenueReport)
async def get_revenue(
    session: SessionDep,
    cache: CacheDep,
    period: RevenuePeriod = RevenuePeriod.DAILY,
) -> RevenueReport:
    return await AnalyticsService(session, cache).get_revenue(period)


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantStats)
async def get_restaurant_stats(
    restaurant_id: int,
    session: SessionDep,
    cache: CacheDep,
    day: Annotated[Optional[date], Query(alias="date")] = None,
) -> RestaurantStats:
    return await AnalyticsService(session, cache).get_restaurant_stats(
        restaurant_id, day
    )
