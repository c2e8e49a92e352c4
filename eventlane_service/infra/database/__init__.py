"""Database infrastructure package.

Example:
    from eventlane_service.infra.database import get_async_session

    async with get_async_session() as session:
        result = await session.execute(...)
"""

from eventlane_service.infra.database.session import (
    close_database,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "close_database",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
