"""Database session management with psycopg3 async driver.

The engine and session factory are created on first use so that importing
this module never opens a connection pool (CLI commands and tests construct
their own factories).
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from eventlane_service.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first call."""
    global _engine
    if _engine is None:
        db_settings = get_db_settings()
        _engine = create_async_engine(
            db_settings.url,
            **db_settings.sqlalchemy_engine_kwargs(),
        )
        logger.debug(
            "Database engine created",
            extra={"host": db_settings.host, "database": db_settings.name},
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to ``get_engine()``."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(WebhookSubscription))
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database() -> None:
    """Verify database connectivity.

    Raises:
        ConnectionError: If the database cannot be reached.
    """
    db_settings = get_db_settings()
    logger.info("Initializing database connection", extra={"host": db_settings.host})
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("Failed to connect to database", extra={"error": str(e)})
        raise ConnectionError(f"Database connection failed: {e}") from e
    logger.info("Database connection established")


async def close_database() -> None:
    """Dispose of the engine and forget the cached factory.

    This should be called during worker or CLI shutdown.
    """
    global _engine, _session_factory
    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None


__all__ = [
    "close_database",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
