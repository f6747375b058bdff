"""
Storefront Backend — ORM Models
=================================

Importing this package registers every table on `Base.metadata`
(required by Alembic autogenerate and by `create_all` in tests).
"""

from storefront.models.category import Category
from storefront.models.product import Product

__all__ = ["Category", "Product"]
