"""promotion engine schema

Revision ID: 0001_promotion_engine
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the ordering schema:
- products: catalog with explicit category and qualifying-family flag
- businesses: member businesses keyed by digits-only business number
- orders / order_items: immutable order snapshots (paid and free lines)
- monthly_free_box_usage: per-(business_number, year_month) free-box counter
- apron_entitlements: one-time apron grant, unique per business
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_promotion_engine'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("is_qualifying_family", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id", name="pk_products"),
        sa.UniqueConstraint("sku", name="uq_products_sku"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_category", ["category"], unique=False)
        batch_op.create_index("ix_products_is_active", ["is_active"], unique=False)

    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_number", sa.String(32), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("verification_status", sa.String(32), nullable=False, server_default="unverified"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id", name="pk_businesses"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("businesses", schema=None) as batch_op:
        batch_op.create_index("ix_businesses_business_number", ["business_number"], unique=False)
        batch_op.create_index("ix_businesses_verification_status", ["verification_status"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("business_number", sa.String(32), nullable=False),
        sa.Column("business_name", sa.String(255), nullable=False),
        sa.Column("delivery_address", sa.String(512), nullable=False),
        sa.Column("total_boxes", sa.Integer(), nullable=False),
        sa.Column("water_boxes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("free_boxes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("promotion_month", sa.String(7), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="unpaid"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_orders_business_id_businesses"),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_orders_business_created", ["business_id", "created_at"], unique=False)
        batch_op.create_index("ix_orders_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("line_total", sa.Integer(), nullable=False),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], name="fk_order_items_order_id_orders"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], name="fk_order_items_product_id_products"),
        sa.PrimaryKeyConstraint("id", name="pk_order_items"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_id", ["order_id"], unique=False)

    op.create_table(
        "monthly_free_box_usage",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_number", sa.String(32), nullable=False),
        sa.Column("year_month", sa.String(7), nullable=False),
        sa.Column("used_free_boxes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("used_free_boxes >= 0", name="ck_monthly_free_box_usage_used_non_negative"),
        sa.PrimaryKeyConstraint("id", name="pk_monthly_free_box_usage"),
        sa.UniqueConstraint("business_number", "year_month", name="uq_usage_business_month"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("monthly_free_box_usage", schema=None) as batch_op:
        batch_op.create_index("ix_monthly_free_box_usage_business_number", ["business_number"], unique=False)

    op.create_table(
        "apron_entitlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("source", sa.String(32), nullable=False, server_default="first_order"),
        sa.Column("delivery_method", sa.String(16), nullable=True),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("business_number", sa.String(32), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("delivery_address", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_apron_entitlements_business_id_businesses"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], name="fk_apron_entitlements_order_id_orders"),
        sa.PrimaryKeyConstraint("id", name="pk_apron_entitlements"),
        sa.UniqueConstraint("business_id", name="uq_apron_entitlements_business"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("apron_entitlements", schema=None) as batch_op:
        batch_op.create_index("ix_apron_entitlements_status", ["status"], unique=False)


def downgrade():
    op.drop_table("apron_entitlements")
    op.drop_table("monthly_free_box_usage")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("businesses")
    op.drop_table("products")
