from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    DISPATCHER = "dispatcher"
    RESTAURANT = "restaurant"
    DRIVER = "driver"


class OrderStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class TransactionType(str, Enum):
    PAYMENT = "payment"
    COMMISSION = "commission"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"

    @property
    def sign(self) -> int:
        """Direction applied to the user's balance; amounts are stored positive."""
        return -1 if self is TransactionType.WITHDRAWAL else 1


class RevenuePeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
