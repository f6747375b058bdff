"""
Storefront Backend — Product Service (Business Logic Orchestrator)
====================================================================

What:  Product CRUD, listing, counting, featured list and gallery updates.
How:   Composes CategoryService (reference check), FileService (uploads)
       and single-row SQLAlchemy reads/writes.
Who:   Called by the /products route handlers.

Create/Update Flow:
    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────┐
    │ Category ref │───▶│ Image check  │───▶│ Store file   │───▶│ DB write │
    │ (400 if bad) │    │ (400 if bad) │    │ (FileService)│    │ (flush)  │
    └──────────────┘    └──────────────┘    └──────────────┘    └──────────┘

    Nothing is written to disk before the category and image checks pass;
    files stored for a write that then fails are removed again.

Decisions:
    - Update merges only the fields in ProductUpdate; image is replaced
      only when a new file is attached.
    - Featured count 0 means `featured_default_limit`; larger values are
      capped at `featured_max_limit`.
    - Gallery updates replace the list; old files stay on disk.
"""

import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.exceptions import DatabaseError, NotFoundError, ValidationError
from storefront.models import Product
from storefront.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductSummary,
    ProductUpdate,
)
from storefront.services.category_service import CategoryService
from storefront.services.file_service import FileService, IncomingFile, StoredFile
from storefront.services.identifiers import parse_id, parse_id_list

logger = logging.getLogger(__name__)


class ProductService:
    """
    Business logic layer for product operations.

    Holds no per-request state: the session is passed to every method,
    collaborators and limits are fixed at construction by create_app().
    """

    def __init__(
        self,
        file_service: FileService,
        category_service: CategoryService,
        featured_default_limit: int = 10,
        featured_max_limit: int = 100,
        gallery_max_images: int = 10,
    ):
        self.file_service = file_service
        self.category_service = category_service
        self.featured_default_limit = featured_default_limit
        self.featured_max_limit = featured_max_limit
        self.gallery_max_images = gallery_max_images

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, product_id: uuid.UUID) -> Product:
        try:
            result = await db.execute(
                select(Product)
                .options(selectinload(Product.category))
                .where(Product.id == product_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error fetching product %s: %s", product_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the product. Please try again.",
                context={"product_id": str(product_id)},
            )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError(resource="product", resource_id=str(product_id))
        return product

    async def _flush(self, db: AsyncSession, stored: Sequence[StoredFile], action: str) -> None:
        """Flush pending changes; on failure remove this request's files."""
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error while trying to %s: %s", action, str(e), exc_info=True)
            await self.file_service.cleanup_files(item.path for item in stored)
            raise DatabaseError(
                message=f"Could not {action}. Please try again.",
                context={"error_type": type(e).__name__},
            )

    # ── Create ────────────────────────────────────────────────────────────

    async def create_product(
        self,
        db: AsyncSession,
        data: ProductCreate,
        image: Optional[IncomingFile],
        base_url: str,
    ) -> ProductResponse:
        """
        Create a product with its primary image.

        Raises:
            ValidationError: invalid category, no image, rejected image
            FileStorageError / DatabaseError: server-side failures
        """
        category = await self.category_service.require_category(db, data.category)
        if image is None:
            raise ValidationError(message="No image attached", field="image")

        stored = await self.file_service.store(image, field="image")

        fields = data.model_dump(exclude={"category"})
        product = Product(
            **fields,
            image=self.file_service.public_url(base_url, stored.filename),
            images=[],
            category=category,
        )
        db.add(product)
        await self._flush(db, [stored], "create the product")

        logger.info("Product created: %s (%s)", product.id, product.name)
        return ProductResponse.model_validate(product)

    # ── Update ────────────────────────────────────────────────────────────

    async def update_product(
        self,
        db: AsyncSession,
        raw_id: str,
        data: ProductUpdate,
        image: Optional[IncomingFile],
        base_url: str,
    ) -> ProductResponse:
        """
        Merge the provided fields into an existing product.

        The category reference is required and re-checked. Without a new
        image the stored image URL is kept unchanged.
        """
        product_id = parse_id(raw_id)
        category = await self.category_service.require_category(db, data.category)
        product = await self._load(db, product_id)

        stored: List[StoredFile] = []
        if image is not None:
            stored.append(await self.file_service.store(image, field="image"))

        changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"category"})
        for key, value in changes.items():
            setattr(product, key, value)
        product.category = category
        if stored:
            product.image = self.file_service.public_url(base_url, stored[0].filename)

        await self._flush(db, stored, "update the product")

        logger.info(
            "Product updated: %s (fields=%s, new_image=%s)",
            product.id, sorted(changes), bool(stored),
        )
        return ProductResponse.model_validate(product)

    # ── Read ──────────────────────────────────────────────────────────────

    async def list_products(
        self, db: AsyncSession, categories: Optional[str] = None
    ) -> List[ProductSummary]:
        """
        List products, optionally only those in the given categories.

        Args:
            categories: comma-separated category ids ("id1,id2"); blank or
                        None means no filter
        """
        query = select(Product).options(selectinload(Product.category))
        if categories:
            category_ids = parse_id_list(categories)
            if category_ids:
                query = query.where(Product.category_id.in_(category_ids))
        query = query.order_by(Product.created_at)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing products: %s", str(e), exc_info=True)
            raise DatabaseError(message="Could not retrieve products. Please try again.")
        return [ProductSummary.model_validate(p) for p in result.scalars().all()]

    async def get_product(self, db: AsyncSession, raw_id: str) -> ProductResponse:
        product = await self._load(db, parse_id(raw_id))
        return ProductResponse.model_validate(product)

    async def count_products(self, db: AsyncSession) -> str:
        """Total number of products as a human-readable sentence."""
        try:
            total = (await db.execute(select(func.count(Product.id)))).scalar_one()
        except SQLAlchemyError as e:
            logger.error("Database error counting products: %s", str(e))
            raise DatabaseError(message="Could not count products. Please try again.")
        return f"Product count is : {total}"

    def featured_limit(self, count: int) -> int:
        """0 → default limit; anything above the maximum is capped."""
        if count <= 0:
            return self.featured_default_limit
        return min(count, self.featured_max_limit)

    async def list_featured(self, db: AsyncSession, count: int = 0) -> List[ProductResponse]:
        limit = self.featured_limit(count)
        query = (
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.is_featured.is_(True))
            .order_by(Product.created_at)
            .limit(limit)
        )
        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing featured products: %s", str(e))
            raise DatabaseError(message="Could not retrieve featured products. Please try again.")
        return [ProductResponse.model_validate(p) for p in result.scalars().all()]

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_product(self, db: AsyncSession, raw_id: str) -> None:
        product = await self._load(db, parse_id(raw_id))
        try:
            await db.delete(product)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting product %s: %s", product.id, str(e))
            raise DatabaseError(message="Could not delete the product. Please try again.")
        logger.info("Product deleted: %s", product.id)

    # ── Gallery ───────────────────────────────────────────────────────────

    async def update_gallery(
        self,
        db: AsyncSession,
        raw_id: str,
        images: Sequence[IncomingFile],
        base_url: str,
    ) -> ProductResponse:
        """
        Replace the product's gallery with the uploaded images, in order.

        Raises:
            ValidationError: malformed id, no files, more than the allowed
                             number of files, any rejected file
            NotFoundError: product does not exist
        """
        product_id = parse_id(raw_id)
        if not images:
            raise ValidationError(message="No images attached", field="images")
        if len(images) > self.gallery_max_images:
            raise ValidationError(
                message=f"Too many images. At most {self.gallery_max_images} are allowed.",
                field="images",
                context={"max_images": self.gallery_max_images, "received": len(images)},
            )

        product = await self._load(db, product_id)
        stored = await self.file_service.store_many(images, field="images")

        product.images = [
            self.file_service.public_url(base_url, item.filename) for item in stored
        ]
        await self._flush(db, stored, "update the product gallery")

        logger.info("Product gallery replaced: %s (%d images)", product.id, len(stored))
        return ProductResponse.model_validate(product)
