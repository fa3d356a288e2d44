import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.config import settings
from delivery_ledger.core.enums import OrderStatus, UserRole
from delivery_ledger.core.timeutils import day_bounds
from delivery_ledger.db.base import utcnow
from delivery_ledger.db.models import Order
from delivery_ledger.db.repositories import OrderRepository, UserRepository
from delivery_ledger.exceptions import (
    InvalidRestaurantException,
    OrderClosedException,
    OrderNotFoundException,
    TransitionForbiddenException,
    UserNotFoundException,
)
from delivery_ledger.schemas.orders import OrderCreate, OrderDetailsUpdate, OrderFilters
from delivery_ledger.services.cache import MemoryCache
from delivery_ledger.services.order_state_machine import Actor

logger = logging.getLogger(__name__)


class OrderService:
    """Order creation, reads and non-status edits.

    Status changes go through OrderStateMachine.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: MemoryCache,
        business_timezone: str = settings.business_timezone,
    ) -> None:
        self.session = session
        self.order_repo = OrderRepository(session)
        self.user_repo = UserRepository(session)
        self.cache = cache
        self.business_timezone = business_timezone

    async def create_order(self, order_data: OrderCreate) -> Order:
        """Must be called within transaction context."""
        restaurant = await self.user_repo.get_by_id(order_data.restaurant_id)
        if restaurant is None:
            raise UserNotFoundException(order_data.restaurant_id)
        if restaurant.role != UserRole.RESTAURANT:
            raise InvalidRestaurantException(order_data.restaurant_id)

        order = await self.order_repo.create_order(**order_data.model_dump())
        self.cache.invalidate("stats:*")

        logger.info(
            "Order created order_id=%s restaurant_id=%s collection_amount=%s delivery_fee=%s",
            order.id,
            order.restaurant_id,
            order.collection_amount,
            order.delivery_fee,
            extra={"order_id": order.id, "restaurant_id": order.restaurant_id},
        )
        return order

    async def get_order(self, order_id: int) -> Order:
        order = await self.order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    async def list_orders(self, filters: OrderFilters) -> list[Order]:
        created_from = created_to = None
        if filters.date is not None:
            created_from, created_to = day_bounds(filters.date, self.business_timezone)
        return await self.order_repo.list_orders(
            restaurant_id=filters.restaurant_id,
            driver_id=filters.driver_id,
            status=filters.status,
            created_from=created_from,
            created_to=created_to,
        )

    async def list_pending(self) -> list[Order]:
        return await self.order_repo.list_pending()

    async def find_last_order(self, phone: str) -> Optional[Order]:
        return await self.order_repo.find_last_by_phone(phone)

    async def update_details(
        self,
        order_id: int,
        update: OrderDetailsUpdate,
        actor: Optional[Actor] = None,
    ) -> Order:
        """Must be called within transaction context."""
        order = await self.order_repo.get_by_id_for_update(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)

        status = OrderStatus(order.status)
        if status.is_terminal:
            raise OrderClosedException(order.id, status.value)

        if actor is not None and not self._may_edit(order, actor):
            raise TransitionForbiddenException(
                order.id, actor.user_id, actor.role.value, "edit"
            )

        values = update.model_dump(exclude_unset=True)
        values["updated_at"] = utcnow()
        await self.order_repo.update_details(order, values)
        logger.info(
            "Order details updated order_id=%s fields=%s",
            order.id,
            sorted(values),
            extra={"order_id": order.id},
        )
        return order

    def _may_edit(self, order: Order, actor: Actor) -> bool:
        if actor.role in (UserRole.ADMIN, UserRole.DISPATCHER):
            return True
        if actor.role == UserRole.RESTAURANT:
            return order.restaurant_id == actor.user_id
        return actor.role == UserRole.DRIVER and order.driver_id == actor.user_id
