import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import UserRole
from delivery_ledger.core.security import get_password_hash
from delivery_ledger.db.models import User
from delivery_ledger.db.repositories import UserRepository
from delivery_ledger.exceptions import DuplicateEmailException, UserNotFoundException
from delivery_ledger.schemas.users import UserCreate

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.user_repo = UserRepository(session)

    async def register(self, user_data: UserCreate) -> User:
        """Must be called within transaction context."""
        if await self.user_repo.get_by_email(user_data.email) is not None:
            raise DuplicateEmailException(user_data.email)

        user = await self.user_repo.create_user(
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
            full_name=user_data.full_name,
            phone_number=user_data.phone_number,
        )
        logger.info(
            "User registered user_id=%s role=%s",
            user.id,
            user_data.role.value,
            extra={"user_id": user.id, "role": user_data.role.value},
        )
        return user

    async def get_user(self, user_id: int) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundException(user_id)
        return user

    async def list_users(self, role: Optional[UserRole] = None) -> list[User]:
        return await self.user_repo.list_users(role)

    async def update_location(self, user_id: int, lat: str, lng: str) -> User:
        user = await self.get_user(user_id)
        return await self.user_repo.update_location(user, lat, lng)

    async def update_push_token(self, user_id: int, token: str) -> User:
        user = await self.get_user(user_id)
        return await self.user_repo.update_push_token(user, token)
