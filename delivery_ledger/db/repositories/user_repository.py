import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import UserRole
from delivery_ledger.db.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_user(
        self,
        email: str,
        password_hash: str,
        role: UserRole,
        full_name: str,
        phone_number: Optional[str] = None,
    ) -> User:
        user = User(
            email=email,
            password_hash=password_hash,
            role=role,
            full_name=full_name,
            phone_number=phone_number,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        stmt = select(User).order_by(User.id)
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_drivers(self) -> int:
        stmt = (
            select(func.count(User.id))
            .where(User.role == UserRole.DRIVER)
            .where(User.is_active.is_(True))
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def update_location(self, user: User, lat: str, lng: str) -> User:
        user.current_lat = lat
        user.current_lng = lng
        await self.session.flush()
        return user

    async def update_push_token(self, user: User, token: str) -> User:
        user.push_token = token
        await self.session.flush()
        return user

    async def increment_balance(self, user_id: int, delta: int) -> int:
        """Apply `delta` with SQL-level arithmetic and return the new balance.

        Must only be called by the ledger, inside the caller's transaction.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(balance=User.balance + delta)
            .returning(User.balance)
        )
        result = await self.session.execute(stmt)
        new_balance = result.scalar_one()
        logger.debug(
            "Balance incremented user_id=%s delta=%s balance=%s",
            user_id,
            delta,
            new_balance,
            extra={"user_id": user_id, "delta": delta},
        )
        return new_balance

    async def get_balance_for_update(self, user_id: int) -> Optional[int]:
        stmt = select(User.balance).where(User.id == user_id).with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
