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
)
from sqlalchemy.orm import Mapped, mapped_column

from delivery_ledger.core.enums import OrderStatus
from delivery_ledger.db.base import Base, BigIntPK, UTCDateTime, utcnow


class Order(Base):
    """Delivery order. Status lifecycle: pending → assigned → picked_up → delivered,
    with cancelled reachable from any non-terminal status."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    customer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(20), nullable=False)
    delivery_address: Mapped[str] = mapped_column(String(500), nullable=False)
    delivery_lat: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    delivery_lng: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    restaurant_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    driver_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        String(20),
        server_default="pending",
        default=OrderStatus.PENDING,
        nullable=False,
    )
    collection_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivery_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivery_window: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    picked_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    proof_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dispatcher_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, server_default=func.now(), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'assigned', 'picked_up', 'delivered', 'cancelled')",
            name="valid_order_status",
        ),
        CheckConstraint("collection_amount > 0", name="positive_collection_amount"),
        CheckConstraint("delivery_fee > 0", name="positive_delivery_fee"),
        CheckConstraint(
            "(status = 'delivered' AND delivered_at IS NOT NULL) "
            "OR (status != 'delivered' AND delivered_at IS NULL)",
            name="delivered_at_consistency",
        ),
        CheckConstraint(
            "status NOT IN ('picked_up', 'delivered') OR picked_at IS NOT NULL",
            name="picked_at_consistency",
        ),
        CheckConstraint(
            "status NOT IN ('pending', 'assigned') OR picked_at IS NULL",
            name="picked_at_not_before_pickup",
        ),
        CheckConstraint(
            "status IN ('pending', 'cancelled') OR driver_id IS NOT NULL",
            name="driver_required_after_assignment",
        ),
        Index("idx_orders_restaurant_created", "restaurant_id", "created_at"),
        Index("idx_orders_driver_created", "driver_id", "created_at"),
        Index("idx_orders_status_created", "status", "created_at"),
        Index("idx_orders_customer_phone", "customer_phone"),
    )
