"""Create product catalog and marketplace mapping tables.

Revision ID: 001_product_tables
Revises:
Create Date: 2026-10-17

Creates:
- products: one row per internal product, lookup columns plus the JSON document
- product_marketplace_mappings: marketplace identity per (product, marketplace
  type) with a unique (marketplace_type, marketplace_id) constraint
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_product_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── products table ──────────────────────────────────────────────────

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("external_id", sa.String(200), nullable=False, server_default=""),
        sa.Column("name", sa.String(500), nullable=False, server_default=""),
        sa.Column("sku", sa.String(200), nullable=True),
        sa.Column("marketplace_type", sa.String(50), nullable=True),
        sa.Column("marketplace_id", sa.String(100), nullable=True),
        sa.Column("parent_product_id", sa.String(36), nullable=True),
        sa.Column(
            "document",
            sa.JSON(),
            server_default=sa.text("'{}'::json"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_products_sku", "products", ["sku"])
    op.create_index("ix_products_marketplace_type", "products", ["marketplace_type"])

    # ── product_marketplace_mappings table ──────────────────────────────

    op.create_table(
        "product_marketplace_mappings",
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("marketplace_type", sa.String(50), primary_key=True),
        sa.Column("marketplace_id", sa.String(100), nullable=False),
        sa.UniqueConstraint(
            "marketplace_type",
            "marketplace_id",
            name="uq_mapping_marketplace_type_id",
        ),
    )


def downgrade() -> None:
    op.drop_table("product_marketplace_mappings")
    op.drop_index("ix_products_marketplace_type", table_name="products")
    op.drop_index("ix_products_sku", table_name="products")
    op.drop_table("products")
