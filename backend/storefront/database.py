"""
Storefront Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine/session factory builders, the declarative
       Base, and the per-request session dependency.
How:   create_app() builds one engine and one session factory from its
       Settings and keeps them on `app.state`; get_db_session() opens a
       session from `request.app.state.session_factory`, commits on success
       and rolls back on error.
When:  Engine is created with the app and disposed in the lifespan shutdown;
       sessions are created per-request.

Connection Pooling Strategy:
    pool_size=20:     Persistent connections for normal load
    max_overflow=10:  Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:    Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (local development, tests) use SQLAlchemy's default pool and
    ignore the sizing options, which the SQLite pools do not accept.
"""

from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.config import Settings


def engine_options(config: Settings) -> Dict[str, Any]:
    """Pool keyword arguments for create_async_engine, per backend."""
    options: Dict[str, Any] = {"echo": config.log_level == "DEBUG"}
    if config.database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_pre_ping=config.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


# ── Engine & Session Factory ──────────────────────────────────────────────
def build_engine(config: Settings) -> AsyncEngine:
    """Engine for `config.database_url`; no connection is opened until first use."""
    return create_async_engine(config.database_url, **engine_options(config))


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: ORM objects stay readable after commit, outside
    # the session context (response serialization happens after commit)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared metadata
    used by Alembic and by `Base.metadata.create_all` in tests.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's session factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)

    Raises:
        Any exception from the handler is propagated to the global error
        handlers after the rollback.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
