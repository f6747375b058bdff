"""
Storefront Backend — Category SQLAlchemy Model
================================================

What:  ORM model representing the `categories` table.
Who:   Used by CategoryService for CRUD and by ProductService for the
       write-time category reference check.

Table Design:
    - UUID primary key, generated in Python so the id is known after flush
    - name: required, everything else optional display metadata
    - color: stored as a hash string (e.g. "#ff8800"), not validated further
    - created_at / updated_at: UTC (UTCDateTime), maintained by the ORM
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from storefront.database import Base
from storefront.models.types import UTCDateTime, utcnow


class Category(Base):
    """
    A named grouping that products reference.

    Lifecycle:
        1. Created by an admin (POST /categories)
        2. Referenced by zero or more products (products.category_id)
        3. Deleted only while no product references it
    """

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

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

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
