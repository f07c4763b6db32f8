"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Branches table
    op.create_table(
        "branches",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("marketplace_config", sa.JSON(), nullable=True),
        sa.Column("default_staff_id", sa.String(64), nullable=True),
        *_timestamps(),
    )

    # Tables table
    op.create_table(
        "tables",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("branch_id", sa.String(32), sa.ForeignKey("branches.id"), nullable=False, index=True),
        sa.Column("number", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Menu items (catalog lookup only)
    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("branch_id", sa.String(32), sa.ForeignKey("branches.id"), nullable=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("size_prices", sa.JSON(), nullable=True),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Deferred-debt accounts
    op.create_table(
        "debts",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=False, unique=True),
        sa.Column("total_debt", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("paid_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("remaining_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="PENDING"),
        *_timestamps(),
    )

    # Orders table
    op.create_table(
        "orders",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_number", sa.String(100), nullable=False, unique=True),
        sa.Column("origin", sa.String(20), nullable=False),
        sa.Column("branch_id", sa.String(32), sa.ForeignKey("branches.id"), nullable=False, index=True),
        sa.Column("table_id", sa.String(32), sa.ForeignKey("tables.id"), nullable=True, index=True),
        # At most one open order per table
        sa.Column("occupied_table_id", sa.String(32), nullable=True, unique=True),
        sa.Column("staff_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, index=True, server_default="PENDING"),
        sa.Column("subtotal", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("discount_coupon", sa.String(50), nullable=True),
        sa.Column("tax_primary", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("tax_secondary", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("delivery_charges", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("grand_total", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("bill_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ticket_seq", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("customer_name", sa.String(200), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("kot_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )

    # Order lines
    op.create_table(
        "order_items",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("menu_item_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("size", sa.String(50), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(10, 2), nullable=False),
        sa.Column("dispatched_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("kot_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    # Kitchen tickets
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id"), nullable=False, index=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("ticket_number", sa.String(100), nullable=False, index=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, index=True, server_default="PENDING"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("order_id", "sequence", name="uq_tickets_order_sequence"),
    )

    # Marketplace overlay
    op.create_table(
        "marketplace_orders",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("platform_order_id", sa.String(200), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("delivery_address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="RECEIVED"),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ready_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("platform", "platform_order_id", name="uq_marketplace_platform_order"),
    )

    # Payments
    op.create_table(
        "payments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("payment_mode", sa.String(20), nullable=False),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("tip_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("balance_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column("debt_id", sa.String(32), sa.ForeignKey("debts.id"), nullable=True),
        sa.Column("settled_by", sa.String(64), nullable=False),
        *_timestamps(),
    )

    # Tips
    op.create_table(
        "tips",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("order_id", sa.String(32), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("staff_id", sa.String(64), nullable=False, index=True),
        sa.Column("branch_id", sa.String(32), sa.ForeignKey("branches.id"), nullable=False, index=True),
        sa.Column("table_label", sa.String(100), nullable=False, server_default="N/A"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_mode", sa.String(20), nullable=False),
        sa.Column("is_settled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settled_by", sa.String(64), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("tips")
    op.drop_table("payments")
    op.drop_table("marketplace_orders")
    op.drop_table("tickets")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("debts")
    op.drop_table("menu_items")
    op.drop_table("tables")
    op.drop_table("branches")
