from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Query, status

from delivery_ledger.api.dependencies import (
    ActorDep,
    CacheDep,
    NotifierDep,
    SessionDep,
)
from delivery_ledger.core.enums import OrderStatus
from delivery_ledger.exceptions import NotFoundException
from delivery_ledger.schemas.orders import (
    OrderCreate,
    OrderDetailsUpdate,
    OrderFilters,
    OrderPatch,
    OrderResponse,
)
from delivery_ledger.services.order_service import OrderService
from delivery_ledger.services.order_state_machine import OrderStateMachine

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate, session: SessionDep, cache: CacheDep
) -> OrderResponse:
    async with session.begin():
        service = OrderService(session, cache)
        order = await service.create_order(order_data)
        return OrderResponse.model_validate(order)


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    session: SessionDep,
    cache: CacheDep,
    restaurant_id: Annotated[Optional[int], Query(alias="restaurantId", gt=0)] = None,
    driver_id: Annotated[Optional[int], Query(alias="driverId", gt=0)] = None,
    order_status: Annotated[Optional[OrderStatus], Query(alias="status")] = None,
    created_on: Annotated[Optional[date], Query(alias="date")] = None,
) -> list[OrderResponse]:
    filters = OrderFilters(
        restaurant_id=restaurant_id,
        driver_id=driver_id,
        status=order_status,
        date=created_on,
    )
    orders = await OrderService(session, cache).list_orders(filters)
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/pending", response_model=list[OrderResponse])
async def list_pending_orders(
    session: SessionDep, cache: CacheDep
) -> list[OrderResponse]:
    orders = await OrderService(session, cache).list_pending()
    return [OrderResponse.model_validate(order) for order in orders]


@router.get("/lookup", response_model=OrderResponse)
async def find_last_order(
    session: SessionDep,
    cache: CacheDep,
    phone: Annotated[str, Query(min_length=5, max_length=20)],
) -> OrderResponse:
    order = await OrderService(session, cache).find_last_order(phone)
    if not order:
        raise NotFoundException(
            message="No previous order for this phone", details={"phone": phone}
        )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, session: SessionDep, cache: CacheDep) -> OrderResponse:
    order = await OrderService(session, cache).get_order(order_id)
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    payload: Annotated[OrderPatch, Body()],
    session: SessionDep,
    cache: CacheDep,
    notifier: NotifierDep,
    actor: ActorDep,
) -> OrderResponse:
    if isinstance(payload, OrderDetailsUpdate):
        async with session.begin():
            service = OrderService(session, cache)
            order = await service.update_details(order_id, payload, actor)
            return OrderResponse.model_validate(order)

    state_machine = OrderStateMachine(session, notifier, cache)
    order = await state_machine.transition(order_id, payload, actor)
    return OrderResponse.model_validate(order)
