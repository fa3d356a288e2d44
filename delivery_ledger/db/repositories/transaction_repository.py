from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import TransactionType
from delivery_ledger.db.models import Transaction


class TransactionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_transaction(
        self,
        user_id: int,
        amount: int,
        type: TransactionType,
        description: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            amount=amount,
            type=type,
            description=description,
            order_id=order_id,
        )
        self.session.add(transaction)
        await self.session.flush()
        return transaction

    async def list_transactions(
        self, user_id: Optional[int] = None, limit: int = 100
    ) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
        )
        if user_id is not None:
            stmt = stmt.where(Transaction.user_id == user_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_order(self, order_id: int) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.order_id == order_id)
            .order_by(Transaction.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_by_type_between(
        self, start: datetime, end: datetime
    ) -> dict[TransactionType, int]:
        """Totals per transaction type for `start <= created_at <= end`."""
        stmt = (
            select(
                Transaction.type,
                func.coalesce(func.sum(Transaction.amount), 0).label("total"),
            )
            .where(Transaction.created_at >= start)
            .where(Transaction.created_at <= end)
            .group_by(Transaction.type)
        )
        result = await self.session.execute(stmt)
        return {
            TransactionType(row.type): int(row.total) for row in result.fetchall()
        }
