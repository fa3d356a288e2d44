from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from delivery_ledger.core.enums import TransactionType
from delivery_ledger.db.base import Base, BigIntPK, UTCDateTime, utcnow


class Transaction(Base):
    """Immutable ledger entry. Amount always positive, direction given by type."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    order_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=True
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[TransactionType] = mapped_column(String(20), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="positive_transaction_amount"),
        CheckConstraint(
            "type IN ('payment', 'commission', 'deposit', 'withdrawal', 'refund')",
            name="valid_transaction_type",
        ),
        # One settlement posting of each kind per order.
        Index(
            "uq_transactions_order_type",
            "order_id",
            "type",
            unique=True,
            postgresql_where=text("order_id IS NOT NULL"),
            sqlite_where=text("order_id IS NOT NULL"),
        ),
        Index("idx_transactions_user_created", "user_id", "created_at"),
        Index("idx_transactions_type_created", "type", "created_at"),
    )
