"""
Storefront Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    app_settings          Settings with a temp upload dir and small limits
    db_engine             In-memory aiosqlite engine with all tables created
    session_factory       async_sessionmaker bound to db_engine
    db_session            One AsyncSession for service-level tests
    mock_db_session       AsyncMock session for failure injection
    file_service          FileService writing into the temp upload dir
    category_service / product_service
    test_app / test_client  App from create_app(app_settings) over httpx
    admin_headers / user_headers  Bearer tokens with/without the admin claim
    make_category / make_product  Seed rows through a committed session
"""

import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

# Environment for the module-level app in storefront.main, set before
# anything from storefront is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="storefront_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.config import Settings
from storefront.database import Base, get_db_session
from storefront.models import Category, Product
from storefront.security import create_access_token
from storefront.services.category_service import CategoryService
from storefront.services.file_service import FileService
from storefront.services.product_service import ProductService



# ══════════════════════════════════════════════════════════════════════════
# Configuration & Sample Data
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app_settings(tmp_path) -> Settings:
    """Settings isolated per test: own upload dir, small upload and catalog limits."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        max_file_size=10_000,
        gallery_max_images=3,
        featured_default_limit=2,
        featured_max_limit=3,
        log_level="WARNING",
    )


@pytest.fixture
def upload_dir(app_settings):
    return app_settings.upload_config().upload_dir.resolve()


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an IHDR-sized tail; only the declared type is checked."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def sample_jpeg_bytes():
    """Minimal JPEG: SOI marker + JFIF header + EOI marker."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite shared by every session of the test (StaticPool keeps
    the single connection, and with it the data, alive).
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Mock async session for injecting database failures.

    Usage:
        mock_db_session.flush.side_effect = SQLAlchemyError("boom")
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_category(session_factory):
    """Insert and commit a category; returns the detached instance."""

    async def _make(name: str = "Shoes", **fields) -> Category:
        async with session_factory() as session:
            category = Category(name=name, **fields)
            session.add(category)
            await session.commit()
            return category

    return _make


@pytest.fixture
def make_product(session_factory):
    """Insert and commit a product in the given category."""

    async def _make(category: Category, name: str = "Runner", **fields) -> Product:
        values = {
            "image": f"http://test/public/uploads/{name}.png",
            "images": [],
            "count_in_stock": 5,
        }
        values.update(fields)
        async with session_factory() as session:
            product = Product(name=name, category_id=category.id, **values)
            session.add(product)
            await session.commit()
            return product

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def file_service(app_settings) -> FileService:
    return FileService(app_settings.upload_config())


@pytest.fixture
def category_service() -> CategoryService:
    return CategoryService()


@pytest.fixture
def product_service(app_settings, file_service, category_service) -> ProductService:
    return ProductService(
        file_service=file_service,
        category_service=category_service,
        featured_default_limit=app_settings.featured_default_limit,
        featured_max_limit=app_settings.featured_max_limit,
        gallery_max_images=app_settings.gallery_max_images,
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_app(app_settings, session_factory):
    """App built from app_settings with sessions bound to the test engine."""
    from storefront.main import create_app

    app = create_app(app_settings)

    async def _test_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_session
    return app


@pytest_asyncio.fixture
async def test_client(test_app):
    """HTTPX AsyncClient routed directly to the app via ASGITransport."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers(app_settings):
    token = create_access_token({"sub": "admin@example.com", "is_admin": True}, app_settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(app_settings):
    token = create_access_token({"sub": "user@example.com", "is_admin": False}, app_settings)
    return {"Authorization": f"Bearer {token}"}
