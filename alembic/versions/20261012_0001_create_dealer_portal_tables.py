"""create dealer portal catalog, dealer and import tables

Revision ID: 20261012_0001
Revises:
Create Date: 2026-10-12 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261012_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _staging_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("raw_row", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("parse_errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=True),
        sa.Column("validation_errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    ]


def _create_staging_table(name: str, *columns: sa.Column) -> None:
    op.create_table(
        name,
        *_staging_columns(),
        *columns,
        sa.ForeignKeyConstraint(["batch_id"], ["import_batches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("batch_id", "row_number", name=f"uq_{name}_batch_row"),
    )
    op.create_index(f"ix_{name}_batch_id", name, ["batch_id"], unique=False)


def upgrade() -> None:
    # --- Catalog ----------------------------------------------------------
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("part_type", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("superseded_by_code", sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_code", name="uq_products_product_code"),
    )
    op.create_index("ix_products_part_type", "products", ["part_type"], unique=False)
    op.create_index("ix_products_is_active", "products", ["is_active"], unique=False)

    op.create_table(
        "product_stock",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("free_stock", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id"),
    )

    op.create_table(
        "product_price_references",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("retail_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("trade_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("list_price", sa.Numeric(12, 2), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id"),
    )

    op.create_table(
        "product_price_bands",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("band_code", sa.String(length=8), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "band_code", name="uq_product_price_bands_product_band"),
    )
    op.create_index("ix_product_price_bands_band_code", "product_price_bands", ["band_code"], unique=False)

    op.create_table(
        "product_aliases",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("alias_code", sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("alias_code", name="uq_product_aliases_alias_code"),
    )
    op.create_index("ix_product_aliases_product_id", "product_aliases", ["product_id"], unique=False)

    # --- Dealers and orders -----------------------------------------------
    op.create_table(
        "dealer_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("entitlement", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("account_number", name="uq_dealer_accounts_account_number"),
    )
    op.create_index("ix_dealer_accounts_status", "dealer_accounts", ["status"], unique=False)

    op.create_table(
        "dealer_band_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("dealer_account_id", sa.Uuid(), nullable=False),
        sa.Column("part_type", sa.String(length=32), nullable=False),
        sa.Column("band_code", sa.String(length=8), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dealer_account_id"], ["dealer_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "dealer_account_id",
            "part_type",
            name="uq_dealer_band_assignments_dealer_part_type",
        ),
    )

    op.create_table(
        "order_headers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=False),
        sa.Column("dealer_account_id", sa.Uuid(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("tracking_number", sa.String(length=128), nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["dealer_account_id"], ["dealer_accounts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number", name="uq_order_headers_order_number"),
    )
    op.create_index("ix_order_headers_status", "order_headers", ["status"], unique=False)

    # --- Import pipeline --------------------------------------------------
    op.create_table(
        "import_batches",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("import_type", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("valid_rows", sa.Integer(), nullable=True),
        sa.Column("invalid_rows", sa.Integer(), nullable=True),
        sa.Column("commit_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("summary", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_import_batches_import_type", "import_batches", ["import_type"], unique=False)
    op.create_index("ix_import_batches_status", "import_batches", ["status"], unique=False)
    op.create_index("ix_import_batches_created_at", "import_batches", ["created_at"], unique=False)
    op.create_index(
        "ix_import_batches_import_type_status",
        "import_batches",
        ["import_type", "status"],
        unique=False,
    )

    op.create_table(
        "import_errors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("raw_row", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["batch_id"], ["import_batches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_import_errors_batch_id_row_number",
        "import_errors",
        ["batch_id", "row_number"],
        unique=False,
    )

    _create_staging_table(
        "staging_product_rows",
        sa.Column("product_code", sa.String(length=64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("part_type", sa.String(length=32), nullable=True),
        sa.Column("free_stock", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("band_level", sa.String(length=8), nullable=True),
        sa.Column("band_1", sa.Numeric(12, 2), nullable=True),
        sa.Column("band_2", sa.Numeric(12, 2), nullable=True),
        sa.Column("band_3", sa.Numeric(12, 2), nullable=True),
        sa.Column("band_4", sa.Numeric(12, 2), nullable=True),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("retail_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("trade_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
    )
    _create_staging_table(
        "staging_backorder_rows",
        sa.Column("account_number", sa.String(length=64), nullable=True),
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("product_code", sa.String(length=64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity_ordered", sa.Integer(), nullable=True),
        sa.Column("quantity_outstanding", sa.Integer(), nullable=True),
    )
    _create_staging_table(
        "staging_supersession_rows",
        sa.Column("product_code", sa.String(length=64), nullable=True),
        sa.Column("superseded_by", sa.String(length=64), nullable=True),
    )
    _create_staging_table(
        "staging_fulfillment_rows",
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("tracking_number", sa.String(length=128), nullable=True),
    )

    # --- Backorder snapshots ----------------------------------------------
    op.create_table(
        "backorder_datasets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("batch_id", sa.Uuid(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False),
        sa.Column("line_count", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["batch_id"], ["import_batches.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_backorder_datasets_single_current",
        "backorder_datasets",
        ["is_current"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "backorder_lines",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("dataset_id", sa.Uuid(), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("product_code", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity_ordered", sa.Integer(), nullable=False),
        sa.Column("quantity_outstanding", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["dataset_id"], ["backorder_datasets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_backorder_lines_dataset_id", "backorder_lines", ["dataset_id"], unique=False)
    op.create_index("ix_backorder_lines_account_number", "backorder_lines", ["account_number"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_backorder_lines_account_number", table_name="backorder_lines")
    op.drop_index("ix_backorder_lines_dataset_id", table_name="backorder_lines")
    op.drop_table("backorder_lines")
    op.drop_index("uq_backorder_datasets_single_current", table_name="backorder_datasets")
    op.drop_table("backorder_datasets")

    for name in (
        "staging_fulfillment_rows",
        "staging_supersession_rows",
        "staging_backorder_rows",
        "staging_product_rows",
    ):
        op.drop_index(f"ix_{name}_batch_id", table_name=name)
        op.drop_table(name)

    op.drop_index("ix_import_errors_batch_id_row_number", table_name="import_errors")
    op.drop_table("import_errors")
    op.drop_index("ix_import_batches_import_type_status", table_name="import_batches")
    op.drop_index("ix_import_batches_created_at", table_name="import_batches")
    op.drop_index("ix_import_batches_status", table_name="import_batches")
    op.drop_index("ix_import_batches_import_type", table_name="import_batches")
    op.drop_table("import_batches")

    op.drop_index("ix_order_headers_status", table_name="order_headers")
    op.drop_table("order_headers")
    op.drop_table("dealer_band_assignments")
    op.drop_index("ix_dealer_accounts_status", table_name="dealer_accounts")
    op.drop_table("dealer_accounts")

    op.drop_index("ix_product_aliases_product_id", table_name="product_aliases")
    op.drop_table("product_aliases")
    op.drop_index("ix_product_price_bands_band_code", table_name="product_price_bands")
    op.drop_table("product_price_bands")
    op.drop_table("product_price_references")
    op.drop_table("product_stock")
    op.drop_index("ix_products_is_active", table_name="products")
    op.drop_index("ix_products_part_type", table_name="products")
    op.drop_table("products")
