"""
Storefront Backend — Product Service Unit Tests
=================================================

What:  Tests for ProductService business logic against an in-memory
       SQLite session, plus a mocked session for database failures.

Test Strategy:
    ✅ Create requires a valid category and an image; nothing stored otherwise
    ✅ Update merges provided fields, keeps the image without a new upload
    ✅ Featured limit: 0 → default, capped at the maximum
    ✅ Gallery replace, bounds, and unknown product
    ✅ Database failure after a file write removes the file (DatabaseError)
"""

import uuid

import pytest
from sqlalchemy.exc import SQLAlchemyError

from storefront.exceptions import DatabaseError, NotFoundError, ValidationError
from storefront.models import Category
from storefront.schemas.category import CategoryCreate
from storefront.schemas.product import ProductCreate, ProductUpdate
from storefront.services.file_service import IncomingFile

BASE_URL = "http://shop.test/"


def png(name="shoe.png", content=b"\x89PNG data"):
    return IncomingFile(filename=name, content_type="image/png", content=content)


async def new_category(category_service, db, name="Shoes"):
    return await category_service.create_category(db, CategoryCreate(name=name))


def stored_files(upload_dir):
    return sorted(p.name for p in upload_dir.iterdir())


class TestCreateProduct:

    @pytest.mark.asyncio
    async def test_create_stores_image_and_populates_category(
        self, db_session, product_service, category_service, upload_dir
    ):
        category = await new_category(category_service, db_session)
        data = ProductCreate(name="Runner", count_in_stock=3, category=str(category.id), price=20)

        product = await product_service.create_product(db_session, data, png("Red Shoe.png"), BASE_URL)

        assert product.category.id == category.id
        assert product.images == []
        assert product.image.startswith("http://shop.test/public/uploads/Red-Shoe-")
        assert product.image.endswith(".png")
        assert stored_files(upload_dir) == [product.image.rsplit("/", 1)[1]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("category", [None, "not-a-uuid", str(uuid.uuid4())])
    async def test_invalid_category_rejected_before_upload(
        self, db_session, product_service, upload_dir, category
    ):
        data = ProductCreate(name="Runner", count_in_stock=1, category=category)
        with pytest.raises(ValidationError, match="Invalid category"):
            await product_service.create_product(db_session, data, png(), BASE_URL)
        assert stored_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_missing_image_rejected(self, db_session, product_service, category_service):
        category = await new_category(category_service, db_session)
        data = ProductCreate(name="Runner", count_in_stock=1, category=str(category.id))
        with pytest.raises(ValidationError, match="No image attached"):
            await product_service.create_product(db_session, data, None, BASE_URL)

    @pytest.mark.asyncio
    async def test_database_failure_removes_stored_image(
        self, mock_db_session, product_service, upload_dir
    ):
        """The file written for a failed insert must not be left behind."""
        mock_db_session.get.return_value = Category(name="Shoes")
        mock_db_session.flush.side_effect = SQLAlchemyError("disk full")
        data = ProductCreate(name="Runner", count_in_stock=1, category=str(uuid.uuid4()))

        with pytest.raises(DatabaseError):
            await product_service.create_product(mock_db_session, data, png(), BASE_URL)
        assert stored_files(upload_dir) == []


class TestUpdateProduct:

    @pytest.mark.asyncio
    async def test_update_without_image_keeps_url(
        self, db_session, product_service, category_service
    ):
        category = await new_category(category_service, db_session)
        created = await product_service.create_product(
            db_session,
            ProductCreate(name="Runner", count_in_stock=3, category=str(category.id), brand="Acme"),
            png(),
            BASE_URL,
        )

        updated = await product_service.update_product(
            db_session,
            str(created.id),
            ProductUpdate(category=str(category.id), price=9.5),
            None,
            BASE_URL,
        )

        assert updated.image == created.image
        assert updated.price == 9.5
        assert updated.brand == "Acme"
        assert updated.name == "Runner"

    @pytest.mark.asyncio
    async def test_update_with_image_replaces_url_and_category(
        self, db_session, product_service, category_service
    ):
        shoes = await new_category(category_service, db_session, "Shoes")
        boots = await new_category(category_service, db_session, "Boots")
        created = await product_service.create_product(
            db_session,
            ProductCreate(name="Runner", count_in_stock=3, category=str(shoes.id)),
            png("old.png"),
            BASE_URL,
        )

        updated = await product_service.update_product(
            db_session, str(created.id), ProductUpdate(category=str(boots.id)), png("new.png"), BASE_URL
        )

        assert "/new-" in updated.image
        assert updated.category.name == "Boots"

    @pytest.mark.asyncio
    async def test_update_requires_category(self, db_session, product_service):
        with pytest.raises(ValidationError, match="Invalid category"):
            await product_service.update_product(
                db_session, str(uuid.uuid4()), ProductUpdate(name="x"), None, BASE_URL
            )

    @pytest.mark.asyncio
    async def test_update_unknown_product(self, db_session, product_service, category_service):
        category = await new_category(category_service, db_session)
        with pytest.raises(NotFoundError):
            await product_service.update_product(
                db_session, str(uuid.uuid4()), ProductUpdate(category=str(category.id)), None, BASE_URL
            )

    @pytest.mark.asyncio
    async def test_update_malformed_id(self, db_session, product_service):
        with pytest.raises(ValidationError, match="Invalid id"):
            await product_service.update_product(
                db_session, "42", ProductUpdate(), None, BASE_URL
            )


class TestFeatured:

    @pytest.mark.parametrize("count, expected", [(0, 2), (1, 1), (3, 3), (50, 3)])
    def test_featured_limit(self, product_service, count, expected):
        """Fixture settings: default 2, maximum 3."""
        assert product_service.featured_limit(count) == expected

    @pytest.mark.asyncio
    async def test_only_featured_products_listed(
        self, db_session, product_service, category_service
    ):
        category = await new_category(category_service, db_session)
        for name, featured in [("a", True), ("b", False), ("c", True)]:
            await product_service.create_product(
                db_session,
                ProductCreate(
                    name=name, count_in_stock=1, category=str(category.id), is_featured=featured
                ),
                png(),
                BASE_URL,
            )

        featured = await product_service.list_featured(db_session, 10)
        assert sorted(p.name for p in featured) == ["a", "c"]
        assert await product_service.count_products(db_session) == "Product count is : 3"


class TestGallery:

    @pytest.mark.asyncio
    async def test_gallery_replaced_in_upload_order(
        self, db_session, product_service, category_service
    ):
        category = await new_category(category_service, db_session)
        created = await product_service.create_product(
            db_session,
            ProductCreate(name="Runner", count_in_stock=1, category=str(category.id)),
            png(),
            BASE_URL,
        )

        first = await product_service.update_gallery(
            db_session, str(created.id), [png("one.png"), png("two.png")], BASE_URL
        )
        second = await product_service.update_gallery(
            db_session, str(created.id), [png("three.png")], BASE_URL
        )

        assert ["/one-" in first.images[0], "/two-" in first.images[1]] == [True, True]
        assert len(second.images) == 1 and "/three-" in second.images[0]
        assert second.image == created.image

    @pytest.mark.asyncio
    async def test_gallery_requires_images(self, db_session, product_service):
        with pytest.raises(ValidationError, match="No images attached"):
            await product_service.update_gallery(db_session, str(uuid.uuid4()), [], BASE_URL)

    @pytest.mark.asyncio
    async def test_gallery_bounded(self, db_session, product_service, upload_dir):
        uploads = [png(f"{i}.png") for i in range(4)]
        with pytest.raises(ValidationError, match="Too many images"):
            await product_service.update_gallery(db_session, str(uuid.uuid4()), uploads, BASE_URL)
        assert stored_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_gallery_unknown_product_stores_nothing(
        self, db_session, product_service, upload_dir
    ):
        with pytest.raises(NotFoundError):
            await product_service.update_gallery(db_session, str(uuid.uuid4()), [png()], BASE_URL)
        assert stored_files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_gallery_malformed_id(self, db_session, product_service):
        with pytest.raises(ValidationError, match="Invalid id"):
            await product_service.update_gallery(db_session, "abc", [png()], BASE_URL)
