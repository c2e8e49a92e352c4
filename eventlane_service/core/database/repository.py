"""Generic repository for SQLAlchemy models.

Session is always passed explicitly. Repositories flush but never commit;
transaction boundaries belong to the caller (a service or a worker).

Example:
    from eventlane_service.core.database import BaseRepository

    class SubscriptionRepository(BaseRepository[WebhookSubscription]):
        async def for_vendor(self, session: AsyncSession, vendor_id: int):
            stmt = select(WebhookSubscription).where(WebhookSubscription.vendor_id == vendor_id)
            result = await session.execute(stmt)
            return result.scalars().all()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Select, func, select

from eventlane_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """One page of rows plus the unpaginated total."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total


class BaseRepository(Generic[T]):
    """Primary-key lookup, insert, delete and paginated search for one model."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # DEBUG messages are built only when DEBUG is enabled
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Get entity by primary key, or None."""
        instance = await session.get(self.model, id)
        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Run a pre-filtered statement with pagination and a total count.

        Args:
            session: Database session
            statement: Select with filters and ordering already applied
            limit: Page size
            offset: Rows to skip

        Returns:
            SearchResult with the page and the total across all pages
        """
        count_stmt = select(func.count()).select_from(statement.subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        result = await session.execute(statement.limit(limit).offset(offset))
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.search: {self.model.__name__}(limit={limit}, offset={offset}) -> {len(items)}/{total} items"
        )
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add, flush and refresh so generated columns are populated."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        self._lazy.debug(
            lambda: f"db.create: {self.model.__name__}(id={getattr(instance, 'id', None)})"
        )
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        entity_id = getattr(instance, "id", None)
        await session.delete(instance)
        await session.flush()

        self._logger.info(
            "Entity deleted",
            extra={"entity": self.model.__name__, "id": str(entity_id), "operation": "db.delete"},
        )


__all__ = [
    "BaseRepository",
    "SearchResult",
]
