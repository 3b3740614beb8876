"""create products, suppliers, orders, order_items

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f1c9a2b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

ORDER_STATUS = sa.Enum(
    "Pending",
    "Processing",
    "Shipped",
    "Delivered",
    "Cancelled",
    name="order_status",
)


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", BigId, primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("stock >= 0", name="ck_product_stock_nonneg"),
        sa.CheckConstraint("price >= 0", name="ck_product_price_nonneg"),
    )

    op.create_table(
        "suppliers",
        sa.Column("id", BigId, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("contact", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "orders",
        sa.Column("id", BigId, primary_key=True),
        sa.Column(
            "supplier_id",
            BigId,
            sa.ForeignKey("suppliers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("status", ORDER_STATUS, nullable=False, server_default="Pending"),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_amount >= 0", name="ck_order_total_nonneg"),
    )
    op.create_index("ix_orders_supplier_id", "orders", ["supplier_id"])
    op.create_index("ix_orders_status_created", "orders", ["status", "created_at"])

    op.create_table(
        "order_items",
        sa.Column(
            "order_id",
            BigId,
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("line_no", sa.Integer(), primary_key=True),
        sa.Column("product_id", BigId, sa.ForeignKey("products.id"), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint("qty > 0", name="ck_order_item_qty_pos"),
        sa.CheckConstraint("unit_price >= 0", name="ck_order_item_unit_price_nonneg"),
    )
    op.create_index("ix_order_items_product_id", "order_items", ["product_id"])


def downgrade() -> None:
    op.drop_index("ix_order_items_product_id", table_name="order_items")
    op.drop_table("order_items")
    op.drop_index("ix_orders_status_created", table_name="orders")
    op.drop_index("ix_orders_supplier_id", table_name="orders")
    op.drop_table("orders")
    op.drop_table("suppliers")
    op.drop_table("products")
    # Postgres keeps the enum type after the table is gone
    ORDER_STATUS.drop(op.get_bind(), checkfirst=True)
