from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.core.enums import UserRole
from delivery_ledger.exceptions import ValidationException
from delivery_ledger.services.cache import MemoryCache
from delivery_ledger.services.notifications import NotificationDispatcher
from delivery_ledger.services.order_state_machine import Actor


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.sessionmaker() as session:
        yield session


def get_cache(request: Request) -> MemoryCache:
    return request.app.state.cache


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


def get_actor(
    x_actor_id: Annotated[Optional[int], Header()] = None,
    x_actor_role: Annotated[Optional[UserRole], Header()] = None,
) -> Optional[Actor]:
    """Caller identity as resolved upstream; absent for trusted internal calls."""
    if x_actor_id is None and x_actor_role is None:
        return None
    if x_actor_id is None or x_actor_role is None:
        raise ValidationException(
            message="X-Actor-Id and X-Actor-Role must be sent together",
            error_code="ACTOR_INCOMPLETE",
        )
    return Actor(user_id=x_actor_id, role=x_actor_role)


SessionDep = Annotated[AsyncSession, Depends(get_session)]
CacheDep = Annotated[MemoryCache, Depends(get_cache)]
NotifierDep = Annotated[NotificationDispatcher, Depends(get_notifier)]
ActorDep = Annotated[Optional[Actor], Depends(get_actor)]
