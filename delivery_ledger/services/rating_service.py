import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import OrderStatus
from delivery_ledger.db.models import Rating
from delivery_ledger.db.repositories import OrderRepository, RatingRepository
from delivery_ledger.exceptions import (
    DuplicateRatingException,
    OrderNotFoundException,
    RatingNotAllowedException,
    TransitionForbiddenException,
)
from delivery_ledger.schemas.ratings import (
    DriverRatingSummary,
    RatingCreate,
    RatingResponse,
)
from delivery_ledger.services.cache import CacheKeys, CacheTTL, MemoryCache
from delivery_ledger.services.order_state_machine import Actor

logger = logging.getLogger(__name__)


class RatingService:
    def __init__(self, session: AsyncSession, cache: MemoryCache) -> None:
        self.order_repo = OrderRepository(session)
        self.rating_repo = RatingRepository(session)
        self.cache = cache

    async def rate_order(
        self, rating_data: RatingCreate, actor: Optional[Actor] = None
    ) -> Rating:
        """Must be called within transaction context."""
        order = await self.order_repo.get_by_id(rating_data.order_id)
        if order is None:
            raise OrderNotFoundException(rating_data.order_id)
        if order.status != OrderStatus.DELIVERED or order.driver_id is None:
            raise RatingNotAllowedException(order.id, "order has not been delivered")
        if actor is not None and actor.user_id != order.restaurant_id:
            raise TransitionForbiddenException(
                order.id, actor.user_id, actor.role.value, "rate"
            )
        if await self.rating_repo.get_for_order(order.id) is not None:
            raise DuplicateRatingException(order.id)

        rating = await self.rating_repo.create_rating(
            order_id=order.id,
            driver_id=order.driver_id,
            restaurant_id=order.restaurant_id,
            rating=rating_data.rating,
            comment=rating_data.comment,
        )
        self.cache.invalidate(CacheKeys.driver_ratings(order.driver_id))
        self.cache.invalidate("stats:leaderboard:*")
        logger.info(
            "Driver rated order_id=%s driver_id=%s rating=%s",
            order.id,
            order.driver_id,
            rating.rating,
            extra={"order_id": order.id, "driver_id": order.driver_id},
        )
        return rating

    async def get_driver_summary(self, driver_id: int) -> DriverRatingSummary:
        async def compute() -> DriverRatingSummary:
            average, count = await self.rating_repo.get_driver_summary(driver_id)
            ratings = await self.rating_repo.list_for_driver(driver_id)
            return DriverRatingSummary(
                driver_id=driver_id,
                average_rating=round(average, 2),
                rating_count=count,
                ratings=[RatingResponse.model_validate(r) for r in ratings],
            )

        return await self.cache.get_or_set(
            CacheKeys.driver_ratings(driver_id), compute, CacheTTL.MEDIUM
        )
