"""Event dispatcher for webhooks.

Fans a domain event out into one pending delivery per matching subscription
and one queued task per delivery. Dispatching is best-effort relative to the
business operation that raised the event, so ``queue`` never raises.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from eventlane_service.core.services.base import BaseService
from eventlane_service.features.webhooks.events import is_known_event_type
from eventlane_service.features.webhooks.repository import (
    WebhookDeliveryRepository,
    WebhookSubscriptionRepository,
    get_webhook_delivery_repository,
    get_webhook_subscription_repository,
)
from eventlane_service.features.webhooks.schemas import WebhookTask

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventlane_service.features.webhooks.queue import TaskQueue


class WebhookDispatcher(BaseService):
    """Turns domain events into delivery records and queued tasks."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        task_queue: TaskQueue,
        subscription_repository: WebhookSubscriptionRepository | None = None,
        delivery_repository: WebhookDeliveryRepository | None = None,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._task_queue = task_queue
        self._subscription_repo = subscription_repository or get_webhook_subscription_repository()
        self._delivery_repo = delivery_repository or get_webhook_delivery_repository()

    async def queue(
        self,
        event_type: str,
        vendor_id: int,
        correlation_id: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> int:
        """Dispatch an event to every matching subscription.

        Args:
            event_type: One of the enumerated event types
            vendor_id: Vendor that raised the event
            correlation_id: Domain identifier of the triggering object
            data: Event-specific data embedded in each delivery

        Returns:
            Number of delivery tasks actually enqueued
        """
        event_type = str(getattr(event_type, "value", event_type))
        if not is_known_event_type(event_type):
            self.logger.warning(
                "Ignoring unknown webhook event type",
                extra={
                    "event_type": event_type,
                    "vendor_id": vendor_id,
                    "operation": "dispatcher.queue",
                },
            )
            return 0

        payload = dict(data or {})
        try:
            tasks = await self._create_deliveries(event_type, vendor_id, correlation_id, payload)
        except Exception:
            self.logger.exception(
                "Failed to create webhook deliveries",
                extra={
                    "event_type": event_type,
                    "vendor_id": vendor_id,
                    "operation": "dispatcher.queue",
                },
            )
            return 0

        if not tasks:
            self._lazy.debug(
                lambda: f"dispatcher.queue: event_type={event_type!r}, vendor_id={vendor_id} -> no subscriptions"
            )
            return 0

        enqueued = 0
        for task in tasks:
            try:
                await self._task_queue.enqueue(task)
            except Exception:
                # The record stays pending until the sweep finds it stale
                self.logger.exception(
                    "Failed to enqueue webhook delivery",
                    extra={
                        "delivery_id": str(task.delivery_id),
                        "subscription_id": str(task.subscription_id),
                        "event_type": event_type,
                        "operation": "dispatcher.queue",
                    },
                )
                continue
            enqueued += 1

        # INFO level - business event (webhook dispatch)
        self.logger.info(
            "Event dispatched to webhooks",
            extra={
                "event_type": event_type,
                "vendor_id": vendor_id,
                "correlation_id": correlation_id,
                "delivery_count": len(tasks),
                "enqueued_count": enqueued,
                "operation": "dispatcher.queue",
            },
        )
        return enqueued

    async def _create_deliveries(
        self,
        event_type: str,
        vendor_id: int,
        correlation_id: int | None,
        payload: dict[str, Any],
    ) -> list[WebhookTask]:
        """Persist one pending delivery per matching subscription in one transaction."""
        async with self._session_factory() as session:
            subscriptions = await self._subscription_repo.find_matching(
                session, event_type, vendor_id
            )
            tasks: list[WebhookTask] = []
            for subscription in subscriptions:
                delivery = await self._delivery_repo.create_pending(
                    session,
                    subscription_id=subscription.id,
                    event_type=event_type,
                    vendor_id=vendor_id,
                    correlation_id=correlation_id,
                    payload=payload,
                )
                tasks.append(
                    WebhookTask(
                        delivery_id=delivery.id,
                        subscription_id=subscription.id,
                        event_type=event_type,
                        vendor_id=vendor_id,
                        correlation_id=correlation_id,
                        data=payload,
                    )
                )
            await session.commit()
        return tasks


__all__ = ["WebhookDispatcher"]
