from delivery_ledger.db.models.order import Order
from delivery_ledger.db.models.rating import Rating
from delivery_ledger.db.models.transaction import Transaction
from delivery_ledger.db.models.user import User

__all__ = ["User", "Order", "Transaction", "Rating"]
