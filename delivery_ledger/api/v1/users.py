from typing import Annotated, Optional

from fastapi import APIRouter, Query, status

from delivery_ledger.api.dependencies import SessionDep
from delivery_ledger.core.enums import UserRole
from delivery_ledger.schemas.transactions import AdjustmentCreate, TransactionResponse
from delivery_ledger.schemas.users import (
    LocationUpdate,
    PushTokenUpdate,
    UserCreate,
    UserResponse,
)
from delivery_ledger.services.ledger_service import LedgerService
from delivery_ledger.services.user_service import UserService

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user_data: UserCreate, session: SessionDep) -> UserResponse:
    async with session.begin():
        user = await UserService(session).register(user_data)
        return UserResponse.model_validate(user)


@router.get("", response_model=list[UserResponse])
async def list_users(
    session: SessionDep, role: Optional[UserRole] = None
) -> list[UserResponse]:
    users = await UserService(session).list_users(role)
    return [UserResponse.model_validate(user) for user in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, session: SessionDep) -> UserResponse:
    user = await UserService(session).get_user(user_id)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/location", response_model=UserResponse)
async def update_location(
    user_id: int, location: LocationUpdate, session: SessionDep
) -> UserResponse:
    async with session.begin():
        user = await UserService(session).update_location(
            user_id, location.lat, location.lng
        )
        return UserResponse.model_validate(user)


@router.patch("/{user_id}/push-token", response_model=UserResponse)
async def update_push_token(
    user_id: int, token: PushTokenUpdate, session: SessionDep
) -> UserResponse:
    async with session.begin():
        user = await UserService(session).update_push_token(user_id, token.push_token)
        return UserResponse.model_validate(user)


@router.get("/{user_id}/transactions", response_model=list[TransactionResponse])
async def list_transactions(
    user_id: int,
    session: SessionDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[TransactionResponse]:
    transactions = await LedgerService(session).get_history(user_id, limit)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post(
    "/{user_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_adjustment(
    user_id: int, adjustment: AdjustmentCreate, session: SessionDep
) -> TransactionResponse:
    async with session.begin():
        transaction = await LedgerService(session).post_adjustment(
            user_id=user_id,
            amount=adjustment.amount,
            type=adjustment.type,
            description=adjustment.description,
        )
        return TransactionResponse.model_validate(transaction)
