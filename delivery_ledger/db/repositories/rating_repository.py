from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.db.models import Rating


class RatingRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_rating(
        self,
        order_id: int,
        driver_id: int,
        restaurant_id: int,
        rating: int,
        comment: Optional[str] = None,
    ) -> Rating:
        entity = Rating(
            order_id=order_id,
            driver_id=driver_id,
            restaurant_id=restaurant_id,
            rating=rating,
            comment=comment,
        )
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def get_for_order(self, order_id: int) -> Optional[Rating]:
        stmt = select(Rating).where(Rating.order_id == order_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_driver(self, driver_id: int) -> list[Rating]:
        stmt = (
            select(Rating)
            .where(Rating.driver_id == driver_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_driver_summary(self, driver_id: int) -> tuple[float, int]:
        """Returns: (average_rating, rating_count). Average is 0 without ratings."""
        stmt = select(
            func.coalesce(func.avg(Rating.rating), 0).label("average"),
            func.count(Rating.id).label("count"),
        ).where(Rating.driver_id == driver_id)
        result = await self.session.execute(stmt)
        row = result.one()
        return float(row.average), int(row.count)
