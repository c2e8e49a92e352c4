"""Repositories for the webhooks feature.

Delivery state transitions are single guarded UPDATE statements so that a
terminal record can never be mutated, regardless of how many workers see
the same task.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, func, or_, select, update

from eventlane_service.core.database.repository import BaseRepository, SearchResult
from eventlane_service.features.webhooks.models import WebhookDelivery, WebhookSubscription
from eventlane_service.features.webhooks.schemas import (
    ACTIVE_STATUSES,
    DeliveryStatus,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class WebhookSubscriptionRepository(BaseRepository[WebhookSubscription]):
    """Repository for WebhookSubscription model.

    Inherits from BaseRepository:
        - get(session, id) -> WebhookSubscription | None
        - create(session, instance) -> WebhookSubscription
        - delete(session, instance) -> None

    Feature-specific methods below.
    """

    def __init__(self) -> None:
        """Initialize with WebhookSubscription model."""
        super().__init__(WebhookSubscription)

    async def list_for_vendor(
        self,
        session: AsyncSession,
        vendor_id: int,
        *,
        enabled_only: bool = False,
    ) -> Sequence[WebhookSubscription]:
        """List a vendor's subscriptions, newest first.

        Args:
            session: Database session
            vendor_id: Owning vendor
            enabled_only: Exclude disabled subscriptions

        Returns:
            Sequence of subscriptions ordered by created_at desc
        """
        stmt = select(WebhookSubscription).where(WebhookSubscription.vendor_id == vendor_id)
        if enabled_only:
            stmt = stmt.where(WebhookSubscription.enabled == True)  # noqa: E712
        stmt = stmt.order_by(WebhookSubscription.created_at.desc())

        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.list_for_vendor: vendor_id={vendor_id}, enabled_only={enabled_only} -> {len(items)} items"
        )
        return items

    async def find_matching(
        self,
        session: AsyncSession,
        event_type: str,
        vendor_id: int,
    ) -> list[WebhookSubscription]:
        """Enabled subscriptions of ``vendor_id`` that receive ``event_type``.

        The array membership test runs in Python so that the query is the
        same on PostgreSQL and SQLite.
        """
        candidates = await self.list_for_vendor(session, vendor_id, enabled_only=True)
        items = [s for s in candidates if event_type in (s.event_types or [])]

        self._lazy.debug(
            lambda: f"db.find_matching: event_type={event_type!r}, vendor_id={vendor_id} -> {len(items)}/{len(candidates)}"
        )
        return items


class WebhookDeliveryRepository(BaseRepository[WebhookDelivery]):
    """Repository for WebhookDelivery model.

    Inherits from BaseRepository:
        - get(session, id) -> WebhookDelivery | None
        - search(session, statement, limit, offset) -> SearchResult[WebhookDelivery]
        - create(session, instance) -> WebhookDelivery

    State transitions (mark_outcome, schedule_retry, finalize_failed) never
    commit; the caller groups them into one transaction.
    """

    def __init__(self) -> None:
        """Initialize with WebhookDelivery model."""
        super().__init__(WebhookDelivery)

    async def create_pending(
        self,
        session: AsyncSession,
        *,
        subscription_id: UUID,
        event_type: str,
        vendor_id: int,
        correlation_id: int | None,
        payload: dict[str, Any],
    ) -> WebhookDelivery:
        """Create a pending delivery with no attempts."""
        delivery = WebhookDelivery(
            subscription_id=subscription_id,
            event_type=event_type,
            vendor_id=vendor_id,
            event_correlation_id=correlation_id,
            payload=payload,
            status=DeliveryStatus.PENDING.value,
            attempt_count=0,
        )
        return await self.create(session, delivery)

    async def mark_outcome(
        self,
        session: AsyncSession,
        delivery_id: UUID,
        status: DeliveryStatus,
        response_code: int | None,
        response_body: str | None,
        *,
        now: datetime | None = None,
    ) -> int | None:
        """Record one attempt and its outcome.

        Increments ``attempt_count`` in the database, only for records that
        are still pending or retrying.

        Args:
            session: Database session
            delivery_id: Delivery UUID
            status: Status after this attempt
            response_code: HTTP status code, or 0 when none was received
            response_body: Response body or error text
            now: Reference time for ``delivered_at``

        Returns:
            The attempt count after increment, or None when the record is
            missing or already terminal.
        """
        values: dict[str, Any] = {
            "status": status.value,
            "attempt_count": WebhookDelivery.attempt_count + 1,
            "response_code": response_code,
            "response_body": response_body,
        }
        if status.is_terminal:
            values["next_retry_at"] = None
        if status is DeliveryStatus.SUCCESS:
            values["delivered_at"] = now or datetime.now(UTC)

        stmt = (
            update(WebhookDelivery)
            .where(
                WebhookDelivery.id == delivery_id,
                WebhookDelivery.status.in_(ACTIVE_STATUSES),
            )
            .values(**values)
            .returning(WebhookDelivery.attempt_count)
        )
        result = await session.execute(stmt)
        attempt_count = result.scalar_one_or_none()

        self._lazy.debug(
            lambda: f"db.mark_outcome({delivery_id}, {status.value}, code={response_code}) -> attempt_count={attempt_count}"
        )
        return attempt_count

    async def schedule_retry(
        self,
        session: AsyncSession,
        delivery_id: UUID,
        next_retry_at: datetime,
    ) -> bool:
        """Move a non-terminal record to ``retrying`` at ``next_retry_at``."""
        stmt = (
            update(WebhookDelivery)
            .where(
                WebhookDelivery.id == delivery_id,
                WebhookDelivery.status.in_(ACTIVE_STATUSES),
            )
            .values(status=DeliveryStatus.RETRYING.value, next_retry_at=next_retry_at)
        )
        result = await session.execute(stmt)
        scheduled = result.rowcount > 0

        self._lazy.debug(
            lambda: f"db.schedule_retry({delivery_id}, {next_retry_at.isoformat()}) -> {scheduled}"
        )
        return scheduled

    async def finalize_failed(self, session: AsyncSession, delivery_id: UUID) -> bool:
        """Mark a record permanently failed; successful records are left alone."""
        stmt = (
            update(WebhookDelivery)
            .where(
                WebhookDelivery.id == delivery_id,
                WebhookDelivery.status != DeliveryStatus.SUCCESS.value,
            )
            .values(status=DeliveryStatus.FAILED.value, next_retry_at=None)
        )
        result = await session.execute(stmt)
        finalized = result.rowcount > 0

        self._lazy.debug(lambda: f"db.finalize_failed({delivery_id}) -> {finalized}")
        return finalized

    async def due_for_retry(
        self,
        session: AsyncSession,
        now: datetime,
        *,
        limit: int = 500,
        stale_before: datetime | None = None,
    ) -> Sequence[WebhookDelivery]:
        """Retrying deliveries whose next attempt is due, oldest first.

        When ``stale_before`` is given, pending deliveries created before it
        are included too; their task was lost before any attempt was made.

        Args:
            session: Database session
            now: Reference time
            limit: Maximum results
            stale_before: Cut-off for pending deliveries (None excludes them)

        Returns:
            Sequence of deliveries that should be enqueued again
        """
        due = and_(
            WebhookDelivery.status == DeliveryStatus.RETRYING.value,
            WebhookDelivery.next_retry_at.is_not(None),
            WebhookDelivery.next_retry_at <= now,
        )
        if stale_before is not None:
            due = or_(
                due,
                and_(
                    WebhookDelivery.status == DeliveryStatus.PENDING.value,
                    WebhookDelivery.created_at <= stale_before,
                ),
            )

        stmt = (
            select(WebhookDelivery)
            .where(due)
            .order_by(
                func.coalesce(WebhookDelivery.next_retry_at, WebhookDelivery.created_at).asc()
            )
            .limit(limit)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        if items:
            self._logger.info(
                "Found deliveries due for retry",
                extra={
                    "count": len(items),
                    "as_of": now.isoformat(),
                    "operation": "db.due_for_retry",
                },
            )
        else:
            self._lazy.debug(lambda: f"db.due_for_retry: no retries due as of {now}")
        return items

    async def find_by_subscription(
        self,
        session: AsyncSession,
        subscription_id: UUID,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> SearchResult[WebhookDelivery]:
        """Deliveries for one subscription, newest first."""
        stmt = (
            select(WebhookDelivery)
            .where(WebhookDelivery.subscription_id == subscription_id)
            .order_by(WebhookDelivery.created_at.desc())
        )
        search_result = await self.search(session, stmt, limit=limit, offset=offset)

        self._lazy.debug(
            lambda: f"db.find_by_subscription: subscription_id={subscription_id} -> {len(search_result.items)}/{search_result.total}"
        )
        return search_result


# Factory functions for dependency injection
_subscription_repository: WebhookSubscriptionRepository | None = None
_delivery_repository: WebhookDeliveryRepository | None = None


def get_webhook_subscription_repository() -> WebhookSubscriptionRepository:
    """Get the shared WebhookSubscriptionRepository instance."""
    global _subscription_repository
    if _subscription_repository is None:
        _subscription_repository = WebhookSubscriptionRepository()
    return _subscription_repository


def get_webhook_delivery_repository() -> WebhookDeliveryRepository:
    """Get the shared WebhookDeliveryRepository instance."""
    global _delivery_repository
    if _delivery_repository is None:
        _delivery_repository = WebhookDeliveryRepository()
    return _delivery_repository


__all__ = [
    "WebhookDeliveryRepository",
    "WebhookSubscriptionRepository",
    "get_webhook_delivery_repository",
    "get_webhook_subscription_repository",
]
