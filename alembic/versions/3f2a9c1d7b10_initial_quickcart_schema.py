"""initial quickcart schema

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

order_status = sa.Enum(
    "pending",
    "confirmed",
    "packing",
    "ready_for_pickup",
    "out_for_delivery",
    "delivered",
    "cancelled",
    name="store_order_status_enum",
)
payment_method = sa.Enum("cod", "wallet", "upi", name="store_payment_method_enum")
substitution = sa.Enum("refund", "replace", name="store_substitution_enum")
movement_type = sa.Enum(
    "sale", "release", "adjustment", name="store_inventory_movement_type_enum"
)
discount_type = sa.Enum("percentage", "fixed", name="store_discount_type_enum")
audit_entity_type = sa.Enum(
    "order", "inventory", "dark_store", name="store_audit_entity_type_enum"
)
transaction_type = sa.Enum(
    "topup",
    "purchase",
    "refund",
    "admin_adjustment",
    name="wallet_transaction_type_enum",
)
transaction_direction = sa.Enum(
    "credit", "debit", name="wallet_transaction_direction_enum"
)


def upgrade() -> None:
    """Upgrade schema - Create catalog, fulfilment, order and wallet tables."""

    # Catalog
    op.create_table(
        "store_categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("parent_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["store_categories.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "store_products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category_id", sa.Uuid(), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("price >= 0", name="ck_product_price"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["store_categories.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
    )

    # Locations
    op.create_table(
        "store_dark_stores",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("lat", sa.Float(), nullable=False),
        sa.Column("lng", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "store_addresses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("label", sa.String(50), nullable=True),
        sa.Column("street", sa.String(255), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("zip_code", sa.String(20), nullable=False),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_store_addresses_user_id", "store_addresses", ["user_id"])

    # Inventory
    op.create_table(
        "store_stock_items",
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("dark_store_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_non_negative"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["store_products.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["dark_store_id"], ["store_dark_stores.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("product_id", "dark_store_id"),
    )
    op.create_table(
        "store_inventory_movements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("dark_store_id", sa.Uuid(), nullable=False),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(30), nullable=True),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_store_inventory_movements_stock",
        "store_inventory_movements",
        ["product_id", "dark_store_id"],
    )

    # Orders
    op.create_table(
        "store_coupons",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_type", discount_type, nullable=False),
        sa.Column("min_order", sa.Numeric(12, 2), nullable=False),
        sa.Column("expiry", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_table(
        "store_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(20), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("dark_store_id", sa.Uuid(), nullable=False),
        sa.Column("address_id", sa.Uuid(), nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column(
            "status", order_status, server_default="pending", nullable=False
        ),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("coupon_id", sa.Uuid(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("total_price >= 0", name="ck_order_total_non_negative"),
        sa.ForeignKeyConstraint(["dark_store_id"], ["store_dark_stores.id"]),
        sa.ForeignKeyConstraint(["address_id"], ["store_addresses.id"]),
        sa.ForeignKeyConstraint(
            ["coupon_id"], ["store_coupons.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_store_orders_order_number", "store_orders", ["order_number"], unique=True
    )
    op.create_index("ix_store_orders_user_id", "store_orders", ["user_id"])
    op.create_index("ix_store_orders_created_at", "store_orders", ["created_at"])
    op.create_index(
        "ix_store_orders_status_created", "store_orders", ["status", "created_at"]
    )
    op.create_table(
        "store_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("substitution", substitution, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_positive_quantity"),
        sa.ForeignKeyConstraint(
            ["order_id"], ["store_orders.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["product_id"], ["store_products.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_store_order_items_order_id", "store_order_items", ["order_id"]
    )
    op.create_table(
        "store_deliveries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("driver_id", sa.String(255), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("picked_up_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["order_id"], ["store_orders.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
    )
    op.create_index(
        "ix_store_deliveries_driver_id", "store_deliveries", ["driver_id"]
    )
    op.create_table(
        "store_audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", audit_entity_type, nullable=False),
        sa.Column("entity_id", sa.String(100), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("performed_by", sa.String(255), nullable=False),
        sa.Column("performed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_store_audit_logs_entity",
        "store_audit_logs",
        ["entity_type", "entity_id"],
    )

    # Wallet
    op.create_table(
        "wallets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("lifetime_credited", sa.Numeric(12, 2), nullable=False),
        sa.Column("lifetime_debited", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"], unique=True)
    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("idempotency_key", sa.String(100), nullable=True),
        sa.Column("transaction_type", transaction_type, nullable=False),
        sa.Column("direction", transaction_direction, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("reference_type", sa.String(30), nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("initiated_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transaction_amount_positive"),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index(
        "ix_wallet_transactions_wallet_id", "wallet_transactions", ["wallet_id"]
    )
    op.create_index(
        "ix_wallet_transactions_user_id", "wallet_transactions", ["user_id"]
    )
    op.create_index(
        "ix_wallet_transactions_wallet_created",
        "wallet_transactions",
        ["wallet_id", "created_at"],
    )


def downgrade() -> None:
    """Downgrade schema - Drop everything created above."""
    op.drop_table("wallet_transactions")
    op.drop_table("wallets")
    op.drop_table("store_audit_logs")
    op.drop_table("store_deliveries")
    op.drop_table("store_order_items")
    op.drop_table("store_orders")
    op.drop_table("store_coupons")
    op.drop_table("store_inventory_movements")
    op.drop_table("store_stock_items")
    op.drop_table("store_addresses")
    op.drop_table("store_dark_stores")
    op.drop_table("store_products")
    op.drop_table("store_categories")

    bind = op.get_bind()
    for enum_type in (
        transaction_direction,
        transaction_type,
        audit_entity_type,
        discount_type,
        movement_type,
        substitution,
        payment_method,
        order_status,
    ):
        enum_type.drop(bind, checkfirst=True)
