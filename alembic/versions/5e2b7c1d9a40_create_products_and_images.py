"""create products and product_images

Revision ID: 5e2b7c1d9a40
Revises:
Create Date: 2026-01-12 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "5e2b7c1d9a40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=24), primary_key=True),
        sa.Column("slug", sa.Text(), nullable=True),
        # import-tool owned: content
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("name_mn", sa.Text(), nullable=True),
        sa.Column("name_original", sa.Text(), nullable=True),
        sa.Column("description_mn", sa.Text(), nullable=True),
        sa.Column("description_original", sa.Text(), nullable=True),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("detailed_description", sa.Text(), nullable=True),
        sa.Column("brand", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("sub_category", sa.Text(), nullable=True),
        sa.Column("category_id", sa.String(length=24), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("colors", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("sizes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.Column("custom_specifications", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("custom_properties", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("import_meta", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("images_original", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("images_final", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        # import-tool owned: source tracking
        sa.Column("source_store", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("source_product_id", sa.Text(), nullable=True),
        sa.Column("price_krw", sa.Integer(), nullable=True),
        sa.Column("price_mnt", sa.Integer(), nullable=True),
        sa.Column("source_baseline_price_krw", sa.Integer(), nullable=True),
        sa.Column("source_last_checked_price_krw", sa.Integer(), nullable=True),
        sa.Column("source_last_checked_in_stock", sa.Boolean(), nullable=True),
        sa.Column("source_last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_price_changed", sa.Boolean(), nullable=True),
        sa.Column("source_out_of_stock", sa.Boolean(), nullable=True),
        # lifecycle / visibility / soft delete
        sa.Column("lifecycle_status", sa.Text(), nullable=False, server_default="RAW", comment="RAW → DRAFT → READY → PUSHED"),
        sa.Column("visibility", sa.Text(), nullable=False, server_default="public"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        # storefront owned
        sa.Column("status", sa.Text(), nullable=True),
        sa.Column("shop_id", sa.String(length=24), nullable=True),
        sa.Column("sale_price", sa.Float(), nullable=True),
        sa.Column("regular_price", sa.Float(), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=True),
        sa.Column("ratings", sa.Float(), nullable=True),
        sa.Column("total_sales", sa.Integer(), nullable=True),
        sa.Column("discount_codes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("slug", name="uq_products_slug"),
    )
    op.create_index("ix_products_lifecycle_status", "products", ["lifecycle_status"])
    op.create_index("ix_products_source_url", "products", ["source_url"])

    op.create_table(
        "product_images",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.String(length=24), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("file_id", sa.Text(), nullable=False),
        sa.Column("provider", sa.Text(), nullable=False, server_default="gmarket"),
        sa.Column("sort", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"])


def downgrade() -> None:
    op.drop_index("ix_product_images_product_id", table_name="product_images")
    op.drop_table("product_images")
    op.drop_index("ix_products_source_url", table_name="products")
    op.drop_index("ix_products_lifecycle_status", table_name="products")
    op.drop_table("products")
