import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from delivery_ledger.api.middlewares import register_exception_handlers
from delivery_ledger.api.v1 import api_router
from delivery_ledger.core.config import settings
from delivery_ledger.db.session import build_engine, build_sessionmaker
from delivery_ledger.services.cache import MemoryCache
from delivery_ledger.services.notifications import (
    ExpoPushSender,
    NotificationDispatcher,
    NotificationSender,
    NullNotificationSender,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler()],
)


def _default_sender() -> NotificationSender:
    if not settings.push_notifications_enabled:
        return NullNotificationSender()
    return ExpoPushSender(
        url=settings.expo_push_url,
        access_token=settings.expo_access_token,
        timeout=settings.notification_timeout_seconds,
    )


def create_app(
    database_url: Optional[str] = None,
    notification_sender: Optional[NotificationSender] = None,
    cache: Optional[MemoryCache] = None,
) -> FastAPI:
    engine = build_engine(database_url or settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await engine.dispose()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        debug=settings.api_debug,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.cache = cache if cache is not None else MemoryCache()
    app.state.notifier = NotificationDispatcher(
        notification_sender or _default_sender()
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/v1")
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health_check() -> dict:
        return {"status": "healthy"}

    return app


app = create_app()
