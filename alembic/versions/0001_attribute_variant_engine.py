"""attribute templates, product attributes and variants

Revision ID: 0001_attribute_variant_engine
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_attribute_variant_engine"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PLATFORM_TABLES = ("products", "categories", "product_categories")

ATTRIBUTE_TYPES = ("TEXT", "NUMBER", "SELECT", "MULTI_SELECT", "BOOLEAN", "DATE", "URL", "EMAIL")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    missing = [t for t in PLATFORM_TABLES if not inspector.has_table(t)]
    if missing:
        raise RuntimeError(f"Missing platform tables: {', '.join(missing)}")

    product_columns = {c["name"] for c in inspector.get_columns("products")}
    if "has_variants" not in product_columns:
        op.add_column(
            "products",
            sa.Column("has_variants", sa.Boolean(), nullable=False, server_default=sa.false()),
        )
        op.create_index("ix_products_has_variants", "products", ["has_variants"], unique=False)

    attribute_type = postgresql.ENUM(*ATTRIBUTE_TYPES, name="attribute_type", create_type=False)
    attribute_type.create(conn, checkfirst=True)

    op.create_table(
        "category_attribute_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", attribute_type, nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_variant", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("options", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("unit", sa.String(length=10), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("category_id", "key", name="uq_category_attribute_templates_category_key"),
    )
    op.create_index(
        "ix_category_attribute_templates_category_id",
        "category_attribute_templates",
        ["category_id"],
        unique=False,
    )
    op.create_index(
        "ix_category_attribute_templates_is_variant",
        "category_attribute_templates",
        ["is_variant"],
        unique=False,
    )

    op.create_table(
        "custom_attribute_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("seller_id", sa.String(length=64), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", attribute_type, nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("options", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("unit", sa.String(length=10), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("seller_id", "key", name="uq_custom_attribute_templates_seller_key"),
    )
    op.create_index(
        "ix_custom_attribute_templates_seller_id",
        "custom_attribute_templates",
        ["seller_id"],
        unique=False,
    )

    op.create_table(
        "product_attributes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("type", attribute_type, nullable=False),
        sa.Column("unit", sa.String(length=10), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "key", "value", name="uq_product_attributes_product_key_value"),
    )
    op.create_index("ix_product_attributes_product_id", "product_attributes", ["product_id"], unique=False)
    op.create_index("ix_product_attributes_key", "product_attributes", ["key"], unique=False)

    op.create_table(
        "product_variants",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("discount_price", sa.Float(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("images", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("dimensions", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku", name="uq_product_variants_sku"),
    )
    op.create_index("ix_product_variants_product_id", "product_variants", ["product_id"], unique=False)
    op.create_index("ix_product_variants_is_active", "product_variants", ["is_active"], unique=False)

    op.create_table(
        "product_variant_attributes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("variant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["variant_id"], ["product_variants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("variant_id", "key", name="uq_product_variant_attributes_variant_key"),
    )
    op.create_index(
        "ix_product_variant_attributes_variant_id",
        "product_variant_attributes",
        ["variant_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_product_variant_attributes_variant_id", table_name="product_variant_attributes")
    op.drop_table("product_variant_attributes")

    op.drop_index("ix_product_variants_is_active", table_name="product_variants")
    op.drop_index("ix_product_variants_product_id", table_name="product_variants")
    op.drop_table("product_variants")

    op.drop_index("ix_product_attributes_key", table_name="product_attributes")
    op.drop_index("ix_product_attributes_product_id", table_name="product_attributes")
    op.drop_table("product_attributes")

    op.drop_index("ix_custom_attribute_templates_seller_id", table_name="custom_attribute_templates")
    op.drop_table("custom_attribute_templates")

    op.drop_index("ix_category_attribute_templates_is_variant", table_name="category_attribute_templates")
    op.drop_index("ix_category_attribute_templates_category_id", table_name="category_attribute_templates")
    op.drop_table("category_attribute_templates")

    postgresql.ENUM(name="attribute_type").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_products_has_variants", table_name="products")
    op.drop_column("products", "has_variants")
