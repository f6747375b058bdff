"""
Storefront Backend — Product SQLAlchemy Model
===============================================

What:  ORM model representing the `products` table.
Who:   Used by ProductService and by Alembic for schema management.

Table Design:
    - category_id: foreign key to categories.id; ProductService also checks
      the referenced row exists before every create/update
    - image: absolute URL of the primary image (built from the request host)
    - images: ordered JSON list of gallery URLs, replaced as a whole
    - price / rating: floats; count_in_stock / num_reviews: integers

Query Patterns:
    - Filter by category: WHERE category_id IN (...)  → idx_products_category_id
    - Featured list:      WHERE is_featured LIMIT n   → idx_products_is_featured
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base
from storefront.models.category import Category
from storefront.models.types import UTCDateTime, utcnow


class Product(Base):
    """
    The primary sellable entity with pricing, inventory, and media.

    Async sessions cannot lazy-load, so every query that serializes a
    product eager-loads it with `selectinload(Product.category)`.
    """

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    rich_description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    image: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    brand: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("categories.id"),
        nullable=False,
    )
    category: Mapped[Category] = relationship()

    count_in_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    num_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint(
            "count_in_stock >= 0 AND count_in_stock <= 255",
            name="ck_products_count_in_stock_range",
        ),
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_products_rating_range"),
        CheckConstraint("num_reviews >= 0", name="ck_products_num_reviews_non_negative"),
        Index("idx_products_category_id", "category_id"),
        Index("idx_products_is_featured", "is_featured"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', category_id={self.category_id})>"
