"""Create products, orders, order_items and order_logs tables

Revision ID: 20261018_create_order_tables
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_create_order_tables"
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_STATUS_FILTER = "status IN ('OPEN', 'CONFIRMED')"


def upgrade() -> None:
    # products
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("price", sa.BigInteger, nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_products_category", "products", ["category"])
    op.create_index("idx_products_is_active", "products", ["is_active"])

    # orders
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("table_number", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum("OPEN", "CONFIRMED", "PAID", "CANCELLED", name="order_status_enum"),
            nullable=False,
            server_default="OPEN",
        ),
        sa.Column("subtotal", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("discount_type", sa.Enum("PERCENT", "FIXED", name="discount_type_enum"), nullable=True),
        sa.Column("discount_value", sa.BigInteger, nullable=True),
        sa.Column("grand_total", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("table_number > 0", name="chk_orders_table_number"),
        sa.CheckConstraint("subtotal >= 0 AND grand_total >= 0", name="chk_orders_totals"),
    )
    op.create_index("idx_orders_status", "orders", ["status"])
    op.create_index("idx_orders_table_number", "orders", ["table_number"])
    op.create_index("idx_orders_created_at", "orders", ["created_at"])
    # No máximo um pedido ativo por mesa
    op.create_index(
        "uq_orders_active_table",
        "orders",
        ["table_number"],
        unique=True,
        postgresql_where=sa.text(ACTIVE_STATUS_FILTER),
        sqlite_where=sa.text(ACTIVE_STATUS_FILTER),
    )

    # order_items
    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", sa.Integer, nullable=False),
        sa.Column("product_name", sa.String(200), nullable=False),
        sa.Column("price_per_unit", sa.BigInteger, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("batch_sequence", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "VOIDED", name="order_item_status_enum"),
            nullable=False,
            server_default="ACTIVE",
        ),
        sa.Column("void_reason", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="chk_order_items_quantity"),
        sa.CheckConstraint("batch_sequence >= 1", name="chk_order_items_batch_sequence"),
        sa.CheckConstraint(
            "(status = 'VOIDED' AND void_reason IS NOT NULL) OR "
            "(status = 'ACTIVE' AND void_reason IS NULL)",
            name="chk_order_items_void_reason",
        ),
    )
    op.create_index("idx_order_items_order", "order_items", ["order_id"])
    op.create_index("idx_order_items_status", "order_items", ["status"])
    op.create_index("idx_order_items_batch_sequence", "order_items", ["batch_sequence"])

    # order_logs (append-only)
    op.create_table(
        "order_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("order_id", sa.Integer, sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("details", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_order_logs_order", "order_logs", ["order_id"])
    op.create_index("idx_order_logs_action", "order_logs", ["action"])
    op.create_index("idx_order_logs_created_at", "order_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("order_logs")
    op.drop_table("order_items")
    op.drop_index("uq_orders_active_table", table_name="orders")
    op.drop_table("orders")
    op.drop_table("products")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS order_item_status_enum")
        op.execute("DROP TYPE IF EXISTS discount_type_enum")
        op.execute("DROP TYPE IF EXISTS order_status_enum")
