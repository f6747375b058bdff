"""
Storefront Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app(settings) returns a configured FastAPI
       instance with its services built from those settings.
Who:   Called by uvicorn to start the server (uvicorn storefront.main:app)
       and by the test suite with per-test settings.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────┐ ┌──────┐ │
    │  │ Req ID   │→│  Logging        │→│ GZip │→│ CORS │ │
    │  └──────────┘ └─────────────────┘ └──────┘ └──────┘ │
    │                                                     │
    │  Routes (under settings.api_prefix):                │
    │  ┌──────────────┐ ┌──────────────┐                  │
    │  │ /products    │ │ /categories  │                  │
    │  └──────────────┘ └──────────────┘                  │
    │  /health, /public/uploads (static)                  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ StorefrontError → its status │ other → 500   │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

State on app.state:
    settings, engine, session_factory,
    file_service, category_service, product_service
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront import __version__
from storefront.config import Settings, settings as default_settings
from storefront.database import build_engine, build_session_factory
from storefront.exceptions import StorefrontError
from storefront.middleware.logging import RequestLoggingMiddleware
from storefront.middleware.request_id import RequestIDMiddleware, request_id_var
from storefront.routes import categories, health, products
from storefront.services.category_service import CategoryService
from storefront.services.file_service import FileService
from storefront.services.product_service import ProductService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] storefront.services.product_service: ...
    When:   Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every operation at DEBUG/INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  logging, configuration check, banner.
    Shutdown: dispose the app's database engine.
    """
    config: Settings = app.state.settings
    setup_logging(config)
    logger.info("=" * 60)
    logger.info("Storefront Backend starting up...")

    try:
        config.validate_required_for_production()
    except ValueError as e:
        # Keep serving: reads work, and /health still reports status
        logger.error("Configuration error: %s", str(e))

    logger.info("Upload directory: %s", app.state.file_service.upload_dir)
    logger.info("API prefix: %s", config.api_prefix or "/")
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Storefront Backend shutting down...")
    # Closes pooled connections
    await app.state.engine.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the StorefrontError hierarchy to JSON error responses.

        ValidationError        → 400
        AuthenticationError    → 401 (+ WWW-Authenticate: Bearer)
        PermissionDeniedError  → 403
        NotFoundError          → 404
        ConflictError          → 409
        FileStorageError       → 500
        DatabaseError          → 500
        Exception (fallback)   → 500

    Client errors (4xx) include `details`; server errors return only the
    generic message and log the context server-side.
    """

    @app.exception_handler(StorefrontError)
    async def handle_storefront_error(request: Request, exc: StorefrontError):
        rid = request_id_var.get("")
        content = {
            "error": exc.error_code,
            "message": exc.message,
            "request_id": rid,
        }
        headers = {}
        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid, type(exc).__name__, exc.message, exc.context,
            )
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            content["details"] = exc.context
        if exc.status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500, stack trace logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to build the app from; the environment-loaded
                module settings when omitted.

    Returns:
        Fully configured FastAPI instance ready to receive requests.
    """
    config = config or default_settings

    app = FastAPI(
        title="Storefront API",
        description=(
            "Product and category catalog with image uploads. "
            "Write operations require an admin bearer token."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Database ──────────────────────────────────────────────────────────
    engine = build_engine(config)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # ── Services ──────────────────────────────────────────────────────────
    file_service = FileService(config.upload_config())
    category_service = CategoryService()
    app.state.settings = config
    app.state.file_service = file_service
    app.state.category_service = category_service
    app.state.product_service = ProductService(
        file_service=file_service,
        category_service=category_service,
        featured_default_limit=config.featured_default_limit,
        featured_max_limit=config.featured_max_limit,
        gallery_max_images=config.gallery_max_images,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added = first to execute: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(products.router, prefix=config.api_prefix)
    app.include_router(categories.router, prefix=config.api_prefix)
    app.include_router(health.router)

    # Uploaded images, addressed by the absolute URLs stored on products
    app.mount(
        file_service.config.public_path,
        StaticFiles(directory=str(file_service.upload_dir)),
        name="uploads",
    )

    return app


# uvicorn expects `storefront.main:app` to be importable
app = create_app()
