from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.config import settings
from delivery_ledger.core.enums import OrderStatus, RevenuePeriod, TransactionType
from delivery_ledger.core.timeutils import day_bounds, today
from delivery_ledger.db.repositories import (
    AnalyticsRepository,
    OrderRepository,
    TransactionRepository,
    UserRepository,
)
from delivery_ledger.metrics import pending_orders
from delivery_ledger.schemas.analytics import (
    DailyStats,
    Leaderboard,
    LeaderboardEntry,
    RestaurantStats,
    RevenueBucket,
    RevenueReport,
    StatusDistribution,
)
from delivery_ledger.services.cache import CacheKeys, CacheTTL, MemoryCache

REVENUE_LOOKBACK = {
    RevenuePeriod.DAILY: timedelta(days=7),
    RevenuePeriod.WEEKLY: timedelta(weeks=8),
    RevenuePeriod.MONTHLY: timedelta(days=366),
}


class AnalyticsService:
    def __init__(
        self,
        session: AsyncSession,
        cache: MemoryCache,
        business_timezone: str = settings.business_timezone,
        ttl_seconds: int = settings.stats_cache_ttl_seconds,
    ) -> None:
        self.analytics_repo = AnalyticsRepository(session)
        self.order_repo = OrderRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)
        self.cache = cache
        self.business_timezone = business_timezone
        self.ttl_seconds = ttl_seconds

    async def get_daily_stats(self, day: Optional[date] = None) -> DailyStats:
        """
        Collections and commissions posted on `day`, plus live counters.

        The window is [00:00:00.000000, 23:59:59.999999] of `day` in the
        business timezone, compared against UTC-stored `created_at`.
        """
        day = day or today(self.business_timezone)

        async def compute() -> DailyStats:
            start, end = day_bounds(day, self.business_timezone)
            totals = await self.transaction_repo.sum_by_type_between(start, end)
            pending = await self.order_repo.count_with_status(OrderStatus.PENDING)
            pending_orders.set(pending)
            return DailyStats(
                date=day,
                collections=totals.get(TransactionType.PAYMENT, 0),
                commissions=totals.get(TransactionType.COMMISSION, 0),
                active_drivers=await self.user_repo.count_active_drivers(),
                pending_orders=pending,
            )

        return await self.cache.get_or_set(
            CacheKeys.daily_stats(day.isoformat()), compute, self.ttl_seconds
        )

    async def get_driver_leaderboard(self, limit: int = 10) -> Leaderboard:
        async def compute() -> Leaderboard:
            rows = await self.analytics_repo.get_driver_leaderboard(limit)
            return Leaderboard(drivers=[LeaderboardEntry(**row) for row in rows])

        return await self.cache.get_or_set(
            CacheKeys.leaderboard(limit), compute, CacheTTL.LONG
        )

    async def get_status_distribution(self) -> StatusDistribution:
        counts = await self.order_repo.count_by_status()
        return StatusDistribution(
            counts={status.value: counts.get(status.value, 0) for status in OrderStatus}
        )

    async def get_restaurant_stats(
        self, restaurant_id: int, day: Optional[date] = None
    ) -> RestaurantStats:
        day = day or today(self.business_timezone)

        async def compute() -> RestaurantStats:
            start, end = day_bounds(day, self.business_timezone)
            stats = await self.analytics_repo.get_restaurant_stats(
                restaurant_id, start, end
            )
            return RestaurantStats(restaurant_id=restaurant_id, **stats)

        return await self.cache.get_or_set(
            CacheKeys.restaurant_stats(restaurant_id, day.isoformat()),
            compute,
            CacheTTL.SHORT,
        )

    async def get_revenue(
        self, period: RevenuePeriod, now: Optional[datetime] = None
    ) -> RevenueReport:
        """Delivery-fee revenue bucketed by day, ISO week or month.

        Orders are placed on the calendar day of the business timezone, the
        same day `get_daily_stats` and the order date filter use.
        """
        tz = ZoneInfo(self.business_timezone)
        now = now or datetime.now(timezone.utc)
        since_day = now.astimezone(tz).date() - REVENUE_LOOKBACK[period]
        since, _ = day_bounds(since_day, self.business_timezone)

        buckets: dict[date, RevenueBucket] = {}
        for created_at, fee in await self.analytics_repo.get_fee_postings(since):
            start = self._bucket_start(created_at.astimezone(tz).date(), period)
            bucket = buckets.setdefault(
                start, RevenueBucket(period_start=start, revenue=0, orders=0)
            )
            bucket.revenue += fee
            bucket.orders += 1

        return RevenueReport(
            period=period, buckets=[buckets[k] for k in sorted(buckets)]
        )

    @staticmethod
    def _bucket_start(day: date, period: RevenuePeriod) -> date:
        if period == RevenuePeriod.WEEKLY:
            return day - timedelta(days=day.weekday())
        if period == RevenuePeriod.MONTHLY:
            return day.replace(day=1)
        return day
