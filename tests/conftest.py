from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from delivery_ledger.db.base import Base
from delivery_ledger.exceptions import NotificationFailure
from delivery_ledger.main import create_app
from delivery_ledger.services.cache import MemoryCache
from tests.utils.fakes import FakeClock, RecordingSender


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def notification_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def failing_sender(notification_sender: RecordingSender) -> RecordingSender:
    notification_sender.fail_with = NotificationFailure("push service unavailable")
    return notification_sender


@pytest_asyncio.fixture(scope="function")
async def app(
    tmp_path, notification_sender: RecordingSender, cache: MemoryCache
) -> AsyncGenerator[FastAPI, None]:
    """Application wired to a fresh file-backed SQLite database per test."""
    application = create_app(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'delivery_ledger.db'}",
        notification_sender=notification_sender,
        cache=cache,
    )
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    async with app.state.sessionmaker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def session_factory(app: FastAPI):
    return app.state.sessionmaker
