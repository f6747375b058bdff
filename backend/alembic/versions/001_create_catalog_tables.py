"""Create categories and products tables

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the catalog schema: `categories` and `products`.
How:   products.category_id is a foreign key to categories.id without
       ON DELETE CASCADE; CategoryService refuses to delete referenced rows.
       The CHECK constraints mirror Product.__table_args__.

Rollback: downgrade() drops both tables (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("icon", sa.String(255), nullable=True),
        # Hash color string, e.g. "#ff8800"
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("image", sa.String(1024), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("rich_description", sa.Text(), nullable=False, server_default=sa.text("''")),
        # Absolute URL of the primary image
        sa.Column("image", sa.String(1024), nullable=False, server_default=sa.text("''")),
        # Ordered list of gallery image URLs
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("brand", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("category_id", sa.Uuid(), nullable=False),
        sa.Column("count_in_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("num_reviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        sa.CheckConstraint(
            "count_in_stock >= 0 AND count_in_stock <= 255",
            name="ck_products_count_in_stock_range",
        ),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_products_rating_range"),
        sa.CheckConstraint("num_reviews >= 0", name="ck_products_num_reviews_non_negative"),
    )

    op.create_index("idx_products_category_id", "products", ["category_id"])
    op.create_index("idx_products_is_featured", "products", ["is_featured"])


def downgrade() -> None:
    op.drop_index("idx_products_is_featured", table_name="products")
    op.drop_index("idx_products_category_id", table_name="products")
    op.drop_table("products")
    op.drop_table("categories")
