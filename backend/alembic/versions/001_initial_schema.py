"""Initial database schema - users, stock items, customers, invoices, activity log

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("role", sa.Enum("ADMIN", "USER", name="roletype"), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_email", "users", ["email"])

    # --- Stock items ---
    op.create_table(
        "stock_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("brand", sa.String(255)),
        sa.Column("dosage", sa.String(100)),
        sa.Column("low_stock_threshold", sa.Integer, nullable=False, server_default="10"),
        sa.Column("is_low_stock", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        sa.CheckConstraint("price >= 0", name="ck_stock_items_price_non_negative"),
    )
    op.create_index("ix_stock_items_name", "stock_items", ["name"])
    op.create_index("ix_stock_items_is_low_stock", "stock_items", ["is_low_stock"])

    # --- Customers ---
    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contacts", sa.String(50), unique=True),
        sa.Column("email", sa.String(255)),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_customers_contacts", "customers", ["contacts"])

    op.create_table(
        "customer_invoice_refs",
        sa.Column("position", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True), nullable=False),
    )
    op.create_index("ix_customer_invoice_refs_customer_id", "customer_invoice_refs", ["customer_id"])
    op.create_index("ix_customer_invoice_refs_invoice_id", "customer_invoice_refs", ["invoice_id"])

    # --- Invoices ---
    op.create_table(
        "invoices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("sn", sa.String(50), nullable=False),
        sa.Column("status", sa.Enum("DUE", "PAID", name="invoicestatus"), nullable=False),
        sa.Column("discount", sa.Numeric(6, 2), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 4), nullable=False),
        sa.Column("due_date", sa.Date),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_invoices_sn", "invoices", ["sn"])
    op.create_index("ix_invoices_user_id", "invoices", ["user_id"])
    op.create_index("ix_invoices_customer_id", "invoices", ["customer_id"])
    op.create_index("ix_invoices_status_created", "invoices", ["status", "created_at"])

    op.create_table(
        "invoice_lines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("invoice_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_invoice_lines_quantity_positive"),
        sa.CheckConstraint("price >= 0", name="ck_invoice_lines_price_non_negative"),
    )
    op.create_index("ix_invoice_lines_product_id", "invoice_lines", ["product_id"])
    op.create_index("ix_invoice_lines_invoice_id", "invoice_lines", ["invoice_id"])

    # --- Activity log ---
    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "entity_type",
            sa.Enum("STOCK_ITEM", "CUSTOMER", "INVOICE", "USER", name="entitytype"),
            nullable=False,
        ),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "CREATE", "UPDATE", "DELETE", "STOCK_UPDATE", "SALE", "RETURN", "ROLE_CHANGE",
                name="activityaction",
            ),
            nullable=False,
        ),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("quantity_before", sa.Integer),
        sa.Column("quantity_after", sa.Integer),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activity_log_entity", "activity_log", ["entity_type", "entity_id", "id"])


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("invoice_lines")
    op.drop_table("invoices")
    op.drop_table("customer_invoice_refs")
    op.drop_table("customers")
    op.drop_table("stock_items")
    op.drop_table("users")
    for enum_name in ("activityaction", "entitytype", "invoicestatus", "roletype"):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
