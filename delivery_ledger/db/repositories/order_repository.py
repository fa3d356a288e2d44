from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import OrderStatus
from delivery_ledger.db.models import Order

ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.ASSIGNED, OrderStatus.PICKED_UP)


class OrderRepository:
    """Order persistence. Every listing is ordered newest first
    (`created_at DESC, id DESC`)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _newest_first(self, stmt):
        return stmt.order_by(Order.created_at.desc(), Order.id.desc())

    async def create_order(
        self,
        restaurant_id: int,
        customer_name: str,
        customer_phone: str,
        delivery_address: str,
        collection_amount: int,
        delivery_fee: int,
        delivery_lat: Optional[str] = None,
        delivery_lng: Optional[str] = None,
        delivery_window: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        order = Order(
            restaurant_id=restaurant_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            delivery_address=delivery_address,
            delivery_lat=delivery_lat,
            delivery_lng=delivery_lng,
            collection_amount=collection_amount,
            delivery_fee=delivery_fee,
            delivery_window=delivery_window,
            notes=notes,
            status=OrderStatus.PENDING,
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id_for_update(self, order_id: int) -> Optional[Order]:
        """Fresh read of the order row under a row lock (no-op on SQLite)."""
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_orders(
        self,
        restaurant_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[OrderStatus] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[Order]:
        stmt = select(Order)
        if restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == restaurant_id)
        if driver_id is not None:
            stmt = stmt.where(Order.driver_id == driver_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if created_from is not None:
            stmt = stmt.where(Order.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(Order.created_at <= created_to)
        stmt = self._newest_first(stmt)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_restaurant(self, restaurant_id: int) -> list[Order]:
        return await self.list_orders(restaurant_id=restaurant_id)

    async def list_by_driver(self, driver_id: int) -> list[Order]:
        return await self.list_orders(driver_id=driver_id)

    async def list_pending(self) -> list[Order]:
        return await self.list_orders(status=OrderStatus.PENDING)

    async def find_last_by_phone(self, phone: str) -> Optional[Order]:
        stmt = self._newest_first(
            select(Order).where(Order.customer_phone == phone)
        ).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def count_with_status(self, status: OrderStatus) -> int:
        stmt = select(func.count(Order.id)).where(Order.status == status)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def transition_status(
        self,
        order_id: int,
        expected_status: OrderStatus,
        values: dict[str, Any],
    ) -> bool:
        """Compare-and-set the order's status.

        Writes `values` only if the row still has `expected_status`. Returns
        True when exactly one row was updated.
        """
        stmt = (
            update(Order)
            .where(Order.id == order_id)
            .where(Order.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_details(self, order: Order, values: dict[str, Any]) -> Order:
        for field, value in values.items():
            setattr(order, field, value)
        await self.session.flush()
        return order

    async def refresh(self, order: Order) -> Order:
        await self.session.refresh(order)
        return order
