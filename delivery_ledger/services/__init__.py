from delivery_ledger.services.analytics_service import AnalyticsService
from delivery_ledger.services.cache import MemoryCache, NullCache
from delivery_ledger.services.ledger_service import LedgerService
from delivery_ledger.services.notifications import (
    ExpoPushSender,
    NotificationDispatcher,
    NullNotificationSender,
)
from delivery_ledger.services.order_service import OrderService
from delivery_ledger.services.order_state_machine import Actor, OrderStateMachine
from delivery_ledger.services.rating_service import RatingService
from delivery_ledger.services.user_service import UserService

__all__ = [
    "Actor",
    "AnalyticsService",
    "ExpoPushSender",
    "LedgerService",
    "MemoryCache",
    "NotificationDispatcher",
    "NullCache",
    "NullNotificationSender",
    "OrderService",
    "OrderStateMachine",
    "RatingService",
    "UserService",
]
