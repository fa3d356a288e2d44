"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column(
            "balance", sa.BigInteger(), server_default=sa.text("0"), nullable=False
        ),
        sa.Column("current_lat", sa.String(length=32), nullable=True),
        sa.Column("current_lng", sa.String(length=32), nullable=True),
        sa.Column("push_token", sa.Text(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        _created_at(),
        sa.CheckConstraint(
            "role IN ('admin', 'dispatcher', 'restaurant', 'driver')",
            name="valid_user_role",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_role_active", "users", ["role", "is_active"])

    op.create_table(
        "orders",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_phone", sa.String(length=20), nullable=False),
        sa.Column("delivery_address", sa.String(length=500), nullable=False),
        sa.Column("delivery_lat", sa.String(length=32), nullable=True),
        sa.Column("delivery_lng", sa.String(length=32), nullable=True),
        sa.Column("restaurant_id", sa.BigInteger(), nullable=False),
        sa.Column("driver_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "status",
            sa.String(length=20),
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("collection_amount", sa.BigInteger(), nullable=False),
        sa.Column("delivery_fee", sa.BigInteger(), nullable=False),
        sa.Column("delivery_window", sa.String(length=100), nullable=True),
        sa.Column("picked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proof_image_url", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("dispatcher_notes", sa.Text(), nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'assigned', 'picked_up', 'delivered', 'cancelled')",
            name="valid_order_status",
        ),
        sa.CheckConstraint("collection_amount > 0", name="positive_collection_amount"),
        sa.CheckConstraint("delivery_fee > 0", name="positive_delivery_fee"),
        sa.CheckConstraint(
            "(status = 'delivered' AND delivered_at IS NOT NULL) "
            "OR (status != 'delivered' AND delivered_at IS NULL)",
            name="delivered_at_consistency",
        ),
        sa.CheckConstraint(
            "status NOT IN ('picked_up', 'delivered') OR picked_at IS NOT NULL",
            name="picked_at_consistency",
        ),
        sa.CheckConstraint(
            "status NOT IN ('pending', 'assigned') OR picked_at IS NULL",
            name="picked_at_not_before_pickup",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'cancelled') OR driver_id IS NOT NULL",
            name="driver_required_after_assignment",
        ),
        sa.ForeignKeyConstraint(["restaurant_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["driver_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_orders_restaurant_created", "orders", ["restaurant_id", "created_at"]
    )
    op.create_index("idx_orders_driver_created", "orders", ["driver_id", "created_at"])
    op.create_index("idx_orders_status_created", "orders", ["status", "created_at"])
    op.create_index("idx_orders_customer_phone", "orders", ["customer_phone"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("order_id", sa.BigInteger(), nullable=True),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint("amount > 0", name="positive_transaction_amount"),
        sa.CheckConstraint(
            "type IN ('payment', 'commission', 'deposit', 'withdrawal', 'refund')",
            name="valid_transaction_type",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_transactions_order_type",
        "transactions",
        ["order_id", "type"],
        unique=True,
        postgresql_where=sa.text("order_id IS NOT NULL"),
    )
    op.create_index(
        "idx_transactions_user_created", "transactions", ["user_id", "created_at"]
    )
    op.create_index(
        "idx_transactions_type_created", "transactions", ["type", "created_at"]
    )

    op.create_table(
        "ratings",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        sa.Column("order_id", sa.BigInteger(), nullable=False),
        sa.Column("driver_id", sa.BigInteger(), nullable=False),
        sa.Column("restaurant_id", sa.BigInteger(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        _created_at(),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="rating_range"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["driver_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["restaurant_id"], ["users.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
    )
    op.create_index("idx_ratings_driver", "ratings", ["driver_id"])


def downgrade() -> None:
    op.drop_index("idx_ratings_driver", table_name="ratings")
    op.drop_table("ratings")

    op.drop_index("idx_transactions_type_created", table_name="transactions")
    op.drop_index("idx_transactions_user_created", table_name="transactions")
    op.drop_index("uq_transactions_order_type", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("idx_orders_customer_phone", table_name="orders")
    op.drop_index("idx_orders_status_created", table_name="orders")
    op.drop_index("idx_orders_driver_created", table_name="orders")
    op.drop_index("idx_orders_restaurant_created", table_name="orders")
    op.drop_table("orders")

    op.drop_index("idx_users_role_active", table_name="users")
    op.drop_table("users")
