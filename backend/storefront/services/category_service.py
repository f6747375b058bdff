"""
Storefront Backend — Category Service
=======================================

What:  CRUD for categories plus the reference check products rely on.
Who:   Called by the /categories routes and by ProductService.

Referential integrity:
    - require_category() is called on every product create/update; an id
      that is malformed or points to no row is a client error ("Invalid category").
    - delete_category() refuses (409) while any product references the
      category, so product.category never dangles.
"""

import logging
import uuid
from typing import List

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from storefront.models import Category, Product
from storefront.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
)
from storefront.services.identifiers import parse_id

logger = logging.getLogger(__name__)


class CategoryService:
    """
    Stateless business logic for categories; every method receives the
    request's session.
    """

    async def _load(self, db: AsyncSession, category_id: uuid.UUID) -> Category:
        try:
            category = await db.get(Category, category_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching category %s: %s", category_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the category. Please try again.",
                context={"category_id": str(category_id)},
            )
        if category is None:
            raise NotFoundError(resource="category", resource_id=str(category_id))
        return category

    async def require_category(self, db: AsyncSession, raw_id: str | None) -> Category:
        """
        Resolve a category reference sent with a product write.

        Raises:
            ValidationError("Invalid category") for a missing, malformed or
            unknown id; the caller must not persist anything in that case.
        """
        category_id = parse_id(raw_id, message="Invalid category", field="category")
        try:
            category = await db.get(Category, category_id)
        except SQLAlchemyError as e:
            logger.error("Database error checking category %s: %s", category_id, str(e))
            raise DatabaseError(context={"category_id": str(category_id)})
        if category is None:
            raise ValidationError(
                message="Invalid category",
                field="category",
                context={"category_id": str(category_id)},
            )
        return category

    async def list_categories(self, db: AsyncSession) -> List[CategoryResponse]:
        try:
            result = await db.execute(select(Category).order_by(desc(Category.created_at)))
        except SQLAlchemyError as e:
            logger.error("Database error listing categories: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve categories. Please try again.")
        return [CategoryResponse.model_validate(c) for c in result.scalars().all()]

    async def get_category(self, db: AsyncSession, raw_id: str) -> CategoryResponse:
        category = await self._load(db, parse_id(raw_id))
        return CategoryResponse.model_validate(category)

    async def create_category(self, db: AsyncSession, data: CategoryCreate) -> CategoryResponse:
        category = Category(**data.model_dump())
        try:
            db.add(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating category: %s", str(e), exc_info=True)
            raise DatabaseError(message="The category could not be created.")
        logger.info("Category created: %s (%s)", category.id, category.name)
        return CategoryResponse.model_validate(category)

    async def update_category(
        self, db: AsyncSession, raw_id: str, data: CategoryUpdate
    ) -> CategoryResponse:
        """Apply only the fields present in the request body."""
        category = await self._load(db, parse_id(raw_id))
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name", ...) is None:
            raise ValidationError(message="Category name cannot be empty", field="name")
        for key, value in changes.items():
            setattr(category, key, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating category %s: %s", category.id, str(e))
            raise DatabaseError(message="The category could not be updated.")
        logger.info("Category updated: %s (fields=%s)", category.id, sorted(changes))
        return CategoryResponse.model_validate(category)

    async def delete_category(self, db: AsyncSession, raw_id: str) -> None:
        """
        Delete a category that no product references.

        Raises:
            NotFoundError if it does not exist
            ConflictError while products still reference it
        """
        category = await self._load(db, parse_id(raw_id))
        try:
            in_use = (
                await db.execute(
                    select(func.count(Product.id)).where(Product.category_id == category.id)
                )
            ).scalar_one()
            if in_use:
                raise ConflictError(
                    message=(
                        f"Category is referenced by {in_use} product(s) "
                        "and cannot be deleted"
                    ),
                    context={"category_id": str(category.id), "product_count": in_use},
                )
            await db.delete(category)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting category %s: %s", category.id, str(e))
            raise DatabaseError(message="The category could not be deleted.")
        logger.info("Category deleted: %s", category.id)
