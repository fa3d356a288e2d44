import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import OrderStatus, TransactionType
from delivery_ledger.db.models import Order, Transaction
from delivery_ledger.db.repositories import TransactionRepository, UserRepository
from delivery_ledger.exceptions import (
    InsufficientBalanceException,
    InvalidAdjustmentTypeException,
    UserNotFoundException,
)
from delivery_ledger.metrics import ledger_transactions_total

logger = logging.getLogger(__name__)

MANUAL_TYPES = (
    TransactionType.DEPOSIT,
    TransactionType.WITHDRAWAL,
    TransactionType.REFUND,
)


class LedgerService:
    """Balance movements. Every balance change is paired with a transaction row.

    All methods must run inside the caller's database transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.user_repo = UserRepository(session)
        self.transaction_repo = TransactionRepository(session)

    async def post(
        self,
        user_id: int,
        amount: int,
        type: TransactionType,
        description: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> Transaction:
        await self.user_repo.increment_balance(user_id, type.sign * amount)
        transaction = await self.transaction_repo.create_transaction(
            user_id=user_id,
            amount=amount,
            type=type,
            description=description,
            order_id=order_id,
        )
        ledger_transactions_total.labels(type=type.value).inc()
        return transaction

    async def settle_delivery(self, order: Order) -> list[Transaction]:
        """Credit the driver's fee and the restaurant's collection for `order`."""
        postings = []
        if order.driver_id is not None:
            postings.append(
                await self.post(
                    user_id=order.driver_id,
                    amount=order.delivery_fee,
                    type=TransactionType.COMMISSION,
                    description=f"Delivery fee for order #{order.id}",
                    order_id=order.id,
                )
            )

        postings.append(
            await self.post(
                user_id=order.restaurant_id,
                amount=order.collection_amount,
                type=TransactionType.PAYMENT,
                description=f"Collection for order #{order.id}",
                order_id=order.id,
            )
        )

        logger.info(
            "Order settled order_id=%s restaurant_id=%s driver_id=%s collection=%s fee=%s",
            order.id,
            order.restaurant_id,
            order.driver_id,
            order.collection_amount,
            order.delivery_fee,
            extra={
                "order_id": order.id,
                "restaurant_id": order.restaurant_id,
                "driver_id": order.driver_id,
            },
        )
        return postings

    async def settle_cancellation(
        self, order: Order, previous_status: OrderStatus
    ) -> list[Transaction]:
        """Financial side of a cancellation.

        Collection is cash on delivery and nothing is credited before
        delivery, so there is nothing to reverse. Drivers receive no fee for
        orders cancelled after pickup.
        """
        if previous_status == OrderStatus.PICKED_UP and order.driver_id is not None:
            logger.info(
                "Order cancelled after pickup, no driver fee posted order_id=%s driver_id=%s",
                order.id,
                order.driver_id,
                extra={"order_id": order.id, "driver_id": order.driver_id},
            )
        return []

    async def post_adjustment(
        self,
        user_id: int,
        amount: int,
        type: TransactionType,
        description: Optional[str] = None,
    ) -> Transaction:
        """Manual deposit, withdrawal or refund outside the order flow."""
        if type not in MANUAL_TYPES:
            raise InvalidAdjustmentTypeException(type.value)

        balance = await self.user_repo.get_balance_for_update(user_id)
        if balance is None:
            raise UserNotFoundException(user_id)

        if type == TransactionType.WITHDRAWAL and balance < amount:
            logger.warning(
                "Insufficient balance for withdrawal user_id=%s balance=%s amount=%s",
                user_id,
                balance,
                amount,
                extra={"user_id": user_id, "balance": balance, "amount": amount},
            )
            raise InsufficientBalanceException(user_id, balance, amount)

        transaction = await self.post(
            user_id=user_id,
            amount=amount,
            type=type,
            description=description or f"Manual {type.value}",
        )
        logger.info(
            "Manual adjustment posted user_id=%s type=%s amount=%s",
            user_id,
            type.value,
            amount,
            extra={"user_id": user_id, "type": type.value, "amount": amount},
        )
        return transaction

    async def get_history(self, user_id: int, limit: int = 100) -> list[Transaction]:
        if await self.user_repo.get_by_id(user_id) is None:
            raise UserNotFoundException(user_id)
        return await self.transaction_repo.list_transactions(user_id, limit=limit)
