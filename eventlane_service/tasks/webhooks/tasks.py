"""Webhook delivery task definitions.

This module provides:
- ``deliver_webhook``: one delivery attempt per dequeued message
- ``process_webhook_retries``: the cron-labelled retry sweep
- ``TaskiqTaskQueue``: the ``TaskQueue`` used by the dispatcher and the sweep
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eventlane_service.core.settings import get_webhook_settings
from eventlane_service.features.webhooks.client import WebhookClient
from eventlane_service.features.webhooks.scheduler import WebhookRetryScheduler
from eventlane_service.features.webhooks.schemas import DeliveryOutcome, WebhookTask
from eventlane_service.features.webhooks.worker import WebhookDeliveryWorker
from eventlane_service.infra.database.session import get_session_factory
from eventlane_service.infra.logging import clear_log_context
from eventlane_service.tasks.broker import broker

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventlane_service.features.webhooks.queue import TaskQueue

logger = logging.getLogger(__name__)


class TaskiqTaskQueue:
    """Pushes delivery tasks onto the taskiq broker.

    Args:
        task: Taskiq task to kick (defaults to ``deliver_webhook``)
    """

    def __init__(self, task: Any = None) -> None:
        self._task = task

    async def enqueue(self, task: WebhookTask) -> None:
        kicker = self._task
        if kicker is None:
            if broker is None:
                raise RuntimeError("Taskiq broker not configured")
            kicker = deliver_webhook
        await kicker.kiq(**task.to_message())


async def run_delivery(
    message: dict[str, Any],
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    client: WebhookClient | None = None,
) -> DeliveryOutcome:
    """Run one delivery attempt outside of the broker.

    Args:
        message: Task keyword arguments as produced by ``WebhookTask.to_message``
        session_factory: Session factory (defaults to the shared engine's)
        client: HTTP client (a short-lived one is created when omitted)

    Returns:
        The worker's outcome for the attempt
    """
    factory = session_factory or get_session_factory()
    try:
        if client is not None:
            worker = WebhookDeliveryWorker(factory, client)
            return await worker.process(message)
        async with WebhookClient() as owned_client:
            worker = WebhookDeliveryWorker(factory, owned_client)
            return await worker.process(message)
    finally:
        clear_log_context()


async def run_retry_sweep(
    *,
    task_queue: TaskQueue | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """Re-enqueue due retries once and return how many were enqueued."""
    sweeper = WebhookRetryScheduler(
        session_factory or get_session_factory(),
        task_queue or TaskiqTaskQueue(),
    )
    return await sweeper.sweep()


if broker is not None:

    @broker.task()
    async def deliver_webhook(
        delivery_id: str,
        subscription_id: str,
        event_type: str,
        vendor_id: int,
        correlation_id: int | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Deliver one webhook and record the outcome.

        Failed attempts are rescheduled in the database, never by taskiq
        itself; ``process_webhook_retries`` picks them up once due.

        Example:
            from eventlane_service.tasks.webhooks.tasks import deliver_webhook
            await deliver_webhook.kiq(**webhook_task.to_message())
        """
        outcome = await run_delivery(
            {
                "delivery_id": delivery_id,
                "subscription_id": subscription_id,
                "event_type": event_type,
                "vendor_id": vendor_id,
                "correlation_id": correlation_id,
                "data": data or {},
            }
        )
        return {"delivery_id": delivery_id, "outcome": outcome.value}

    @broker.task(schedule=[{"cron": get_webhook_settings().retry_sweep_cron}])
    async def process_webhook_retries() -> dict[str, Any]:
        """Re-enqueue webhook deliveries whose backoff has elapsed.

        Scheduled by the cron label (``WEBHOOK_RETRY_SWEEP_CRON``, every
        minute by default).
        """
        try:
            queued_count = await run_retry_sweep()
        except Exception as e:
            logger.exception(
                "Webhook retry processing failed",
                extra={"error": str(e), "operation": "tasks.process_webhook_retries"},
            )
            raise
        return {"status": "success", "queued_count": queued_count}
