from delivery_ledger.db.repositories.analytics_repository import AnalyticsRepository
from delivery_ledger.db.repositories.order_repository import OrderRepository
from delivery_ledger.db.repositories.rating_repository import RatingRepository
from delivery_ledger.db.repositories.transaction_repository import (
    TransactionRepository,
)
from delivery_ledger.db.repositories.user_repository import UserRepository

__all__ = [
    "AnalyticsRepository",
    "OrderRepository",
    "RatingRepository",
    "TransactionRepository",
    "UserRepository",
]
