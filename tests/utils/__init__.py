from tests.utils.factories import OrderFactory, UserFactory
from tests.utils.helpers import (
    actor_headers,
    create_order,
    create_user,
    deliver_order,
    get_balance,
    get_transactions,
    patch_order,
    patch_order_concurrent,
)

__all__ = [
    "OrderFactory",
    "UserFactory",
    "actor_headers",
    "create_order",
    "create_user",
    "deliver_order",
    "get_balance",
    "get_transactions",
    "patch_order",
    "patch_order_concurrent",
]
