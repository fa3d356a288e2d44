from fastapi import APIRouter, status

from delivery_ledger.api.dependencies import ActorDep, CacheDep, SessionDep
from delivery_ledger.schemas.ratings import (
    DriverRatingSummary,
    RatingCreate,
    RatingResponse,
)
from delivery_ledger.services.rating_service import RatingService

router = APIRouter()


@router.post("", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def rate_order(
    rating_data: RatingCreate, session: SessionDep, cache: CacheDep, actor: ActorDep
) -> RatingResponse:
    async with session.begin():
        rating = await RatingService(session, cache).rate_order(rating_data, actor)
        return RatingResponse.model_validate(rating)


@router.get("/drivers/{driver_id}", response_model=DriverRatingSummary)
async def get_driver_ratings(
    driver_id: int, session: SessionDep, cache: CacheDep
) -> DriverRatingSummary:
    return await RatingService(session, cache).get_driver_summary(driver_id)
