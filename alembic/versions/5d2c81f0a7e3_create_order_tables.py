"""create product, address, order, payment and order event tables

Revision ID: 5d2c81f0a7e3
Revises:
Create Date: 2026-10-19 10:12:44.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5d2c81f0a7e3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


order_status = sa.Enum(
    "pending", "processing", "shipped", "delivered", "cancelled", "returned",
    name="orderstatus",
)
payment_method = sa.Enum(
    "credit_card", "paypal", "bank_transfer", "cash_on_delivery",
    name="paymentmethod",
)
payment_status = sa.Enum(
    "none", "pending", "completed", "failed", "refunded",
    name="paymentstatus",
)


def upgrade():
    op.create_table(
        "product",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("price", sa.Numeric(18, 2), nullable=False),
        sa.Column("discount_price", sa.Numeric(18, 2), nullable=True),
        sa.Column("stock_quantity", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_product_stock_non_negative"),
    )
    op.create_index("ix_product_sku", "product", ["sku"])

    op.create_table(
        "shippingaddress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("address_line", sa.String(length=200), nullable=False),
        sa.Column("address_line2", sa.String(length=200), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shippingaddress_customer_id", "shippingaddress", ["customer_id"])

    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_number", sa.String(length=50), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("shipping_address_id", sa.Integer(), sa.ForeignKey("shippingaddress.id"), nullable=False),
        sa.Column("subtotal", sa.Numeric(18, 2), nullable=False),
        sa.Column("shipping", sa.Numeric(18, 2), nullable=False),
        sa.Column("tax", sa.Numeric(18, 2), nullable=False),
        sa.Column("total", sa.Numeric(18, 2), nullable=False),
        sa.Column("discount_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("status", order_status, nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("order_date", sa.DateTime(), nullable=False),
        sa.Column("shipped_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_order_order_number", "order", ["order_number"], unique=True)
    op.create_index("ix_order_customer_id", "order", ["customer_id"])
    op.create_index("ix_order_shipping_address_id", "order", ["shipping_address_id"])
    op.create_index("ix_order_status", "order", ["status"])
    op.create_index("ix_order_tracking_number", "order", ["tracking_number"])
    op.create_index("ix_order_order_date", "order", ["order_date"])

    op.create_table(
        "orderitem",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("product.id"), nullable=False),
        sa.Column("product_name", sa.String(length=200), nullable=False),
        sa.Column("product_sku", sa.String(length=100), nullable=True),
        sa.Column("unit_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("discount_amount", sa.Numeric(18, 2), nullable=True),
        sa.CheckConstraint("quantity >= 1", name="ck_orderitem_quantity_positive"),
    )
    op.create_index("ix_orderitem_order_id", "orderitem", ["order_id"])
    op.create_index("ix_orderitem_product_id", "orderitem", ["product_id"])

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("method", payment_method, nullable=False),
        sa.Column("status", payment_status, nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("gateway", sa.String(length=100), nullable=True),
        sa.Column("details", sa.String(length=500), nullable=True),
        sa.Column("failure_reason", sa.String(length=500), nullable=True),
        sa.Column("refund_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("payment_date", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("refunded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )
    # one payment per order, transaction ids never reused
    op.create_index("ix_payment_order_id", "payment", ["order_id"], unique=True)
    op.create_index("ix_payment_transaction_id", "payment", ["transaction_id"], unique=True)
    op.create_index("ix_payment_method", "payment", ["method"])
    op.create_index("ix_payment_status", "payment", ["status"])
    op.create_index("ix_payment_payment_date", "payment", ["payment_date"])

    op.create_table(
        "order_event",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("label", sa.String(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(length=50), nullable=False, server_default="system"),
    )

    # indexes for fast timeline queries
    op.create_index("ix_order_event_order_id", "order_event", ["order_id"])
    op.create_index("ix_order_event_event_type", "order_event", ["event_type"])
    op.create_index("ix_order_event_order_created", "order_event", ["order_id", "created_at"])


def downgrade():
    op.drop_index("ix_order_event_order_created", table_name="order_event")
    op.drop_index("ix_order_event_event_type", table_name="order_event")
    op.drop_index("ix_order_event_order_id", table_name="order_event")
    op.drop_table("order_event")

    op.drop_table("payment")
    op.drop_table("orderitem")
    op.drop_table("order")
    op.drop_table("shippingaddress")
    op.drop_table("product")

    bind = op.get_bind()
    payment_status.drop(bind, checkfirst=True)
    payment_method.drop(bind, checkfirst=True)
    order_status.drop(bind, checkfirst=True)
