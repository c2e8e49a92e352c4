"""Retry sweep: re-enqueue deliveries whose backoff has elapsed.

The sweep only reads delivery state. The worker performs every transition
and skips records that are already terminal, so an overlapping sweep costs
at most one extra HTTP attempt.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from eventlane_service.core.services.base import BaseService
from eventlane_service.core.settings import get_webhook_settings
from eventlane_service.features.webhooks.repository import (
    WebhookDeliveryRepository,
    get_webhook_delivery_repository,
)
from eventlane_service.features.webhooks.schemas import WebhookTask

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventlane_service.core.settings import WebhookSettings
    from eventlane_service.features.webhooks.models import WebhookDelivery
    from eventlane_service.features.webhooks.queue import TaskQueue


class WebhookRetryScheduler(BaseService):
    """Finds due retries and pushes them back onto the task queue."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        task_queue: TaskQueue,
        settings: WebhookSettings | None = None,
        delivery_repository: WebhookDeliveryRepository | None = None,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._task_queue = task_queue
        self._settings = settings or get_webhook_settings()
        self._delivery_repo = delivery_repository or get_webhook_delivery_repository()

    @staticmethod
    def task_for(delivery: WebhookDelivery) -> WebhookTask:
        """Rebuild the queue task from a stored delivery."""
        return WebhookTask(
            delivery_id=delivery.id,
            subscription_id=delivery.subscription_id,
            event_type=delivery.event_type,
            vendor_id=delivery.vendor_id,
            correlation_id=delivery.event_correlation_id,
            data=delivery.payload or {},
        )

    async def sweep(self, now: datetime | None = None, limit: int | None = None) -> int:
        """Re-enqueue every retrying delivery due at ``now``.

        Pending deliveries older than ``stale_pending_seconds`` are picked up
        as well, so a task lost between dispatch and the broker is not
        dropped.

        Args:
            now: Reference time (defaults to the current UTC time)
            limit: Maximum deliveries per sweep (defaults to the configured batch size)

        Returns:
            Number of tasks enqueued
        """
        now = now or datetime.now(UTC)
        limit = limit or self._settings.retry_sweep_batch_size

        async with self._session_factory() as session:
            due = await self._delivery_repo.due_for_retry(
                session,
                now,
                limit=limit,
                stale_before=now - timedelta(seconds=self._settings.stale_pending_seconds),
            )
            tasks = [self.task_for(delivery) for delivery in due]

        enqueued = 0
        for task in tasks:
            try:
                await self._task_queue.enqueue(task)
            except Exception:
                self.logger.exception(
                    "Failed to re-enqueue webhook delivery",
                    extra={
                        "delivery_id": str(task.delivery_id),
                        "operation": "scheduler.sweep",
                    },
                )
                continue
            enqueued += 1

        if tasks:
            self.logger.info(
                "Webhook retry sweep completed",
                extra={
                    "due_count": len(tasks),
                    "enqueued_count": enqueued,
                    "operation": "scheduler.sweep",
                },
            )
        else:
            self._lazy.debug(lambda: f"scheduler.sweep: nothing due as of {now.isoformat()}")
        return enqueued


__all__ = ["WebhookRetryScheduler"]
