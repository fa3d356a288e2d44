from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from delivery_ledger.core.enums import UserRole
from delivery_ledger.db.base import Base, BigIntPK, UTCDateTime, utcnow


class User(Base):
    """Platform account. `balance` is in minor units and only moved by the ledger."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[UserRole] = mapped_column(String(20), nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    balance: Mapped[int] = mapped_column(
        BigInteger, server_default="0", default=0, nullable=False
    )
    current_lat: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    current_lng: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    push_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, server_default=text("true"), default=True, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'dispatcher', 'restaurant', 'driver')",
            name="valid_user_role",
        ),
        Index("idx_users_role_active", "role", "is_active"),
    )
