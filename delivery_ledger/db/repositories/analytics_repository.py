from datetime import datetime
from typing import Any

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import OrderStatus, UserRole
from delivery_ledger.db.models import Order, Rating, User
from delivery_ledger.db.repositories.order_repository import ACTIVE_STATUSES


class AnalyticsRepository:
    """Read-only aggregate queries over orders, ratings and users."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_driver_leaderboard(self, limit: int = 10) -> list[dict[str, Any]]:
        """
        Per-driver delivery performance in a single query.

        Orders and ratings are pre-aggregated in subqueries so the joins
        never multiply rows.
        """
        is_delivered = Order.status == OrderStatus.DELIVERED
        order_stats = (
            select(
                Order.driver_id.label("driver_id"),
                func.count(Order.id).label("assigned"),
                func.count(Order.delivered_at).label("completed"),
                func.sum(case((is_delivered, 1), else_=0)).label("delivered"),
                func.sum(case((is_delivered, Order.delivery_fee), else_=0)).label(
                    "earnings"
                ),
            )
            .where(Order.driver_id.isnot(None))
            .group_by(Order.driver_id)
            .subquery()
        )
        rating_stats = (
            select(
                Rating.driver_id.label("driver_id"),
                func.avg(Rating.rating).label("average_rating"),
            )
            .group_by(Rating.driver_id)
            .subquery()
        )

        total_deliveries = func.coalesce(order_stats.c.delivered, 0)
        stmt = (
            select(
                User.id,
                User.full_name,
                total_deliveries.label("total_deliveries"),
                func.coalesce(rating_stats.c.average_rating, 0).label(
                    "average_rating"
                ),
                func.coalesce(order_stats.c.earnings, 0).label("total_earnings"),
                case(
                    (
                        order_stats.c.assigned > 0,
                        order_stats.c.completed * 100.0 / order_stats.c.assigned,
                    ),
                    else_=0,
                ).label("completion_percentage"),
            )
            .select_from(User)
            .outerjoin(order_stats, order_stats.c.driver_id == User.id)
            .outerjoin(rating_stats, rating_stats.c.driver_id == User.id)
            .where(User.role == UserRole.DRIVER)
            .order_by(total_deliveries.desc(), User.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "driver_id": row.id,
                "name": row.full_name,
                "total_deliveries": int(row.total_deliveries),
                "average_rating": round(float(row.average_rating), 2),
                "total_earnings": int(row.total_earnings),
                "completion_percentage": round(float(row.completion_percentage), 2),
            }
            for row in result.all()
        ]

    async def get_fee_postings(self, since: datetime) -> list[tuple[datetime, int]]:
        """(created_at, delivery_fee) of every order created since `since`.

        Bucketing is left to the caller, which knows the business calendar.
        """
        stmt = (
            select(Order.created_at, Order.delivery_fee)
            .where(Order.created_at >= since)
            .order_by(Order.created_at)
        )
        result = await self.session.execute(stmt)
        return [(row.created_at, int(row.delivery_fee)) for row in result.all()]

    async def get_restaurant_stats(
        self, restaurant_id: int, start: datetime, end: datetime
    ) -> dict[str, int]:
        in_window = and_(Order.created_at >= start, Order.created_at <= end)
        stmt = select(
            func.coalesce(func.sum(case((in_window, 1), else_=0)), 0).label(
                "today_orders"
            ),
            func.coalesce(
                func.sum(
                    case(
                        (
                            and_(in_window, Order.status == OrderStatus.DELIVERED),
                            Order.collection_amount,
                        ),
                        else_=0,
                    )
                ),
                0,
            ).label("total_collection"),
            func.coalesce(
                func.sum(case((Order.status.in_(ACTIVE_STATUSES), 1), else_=0)), 0
            ).label("active_deliveries"),
        ).where(Order.restaurant_id == restaurant_id)
        result = await self.session.execute(stmt)
        row = result.one()
        return {
            "today_orders": int(row.today_orders),
            "total_collection": int(row.total_collection),
            "active_deliveries": int(row.active_deliveries),
        }
