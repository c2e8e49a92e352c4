"""Taskiq broker configuration for webhook delivery.

Background tasks run on RabbitMQ through taskiq-aio-pika:

- Run worker: `taskiq worker eventlane_service.tasks.broker:broker`
- Run scheduler: `taskiq scheduler eventlane_service.tasks.broker:scheduler`

The scheduler reads cron labels attached with ``@broker.task(schedule=[...])``
and kicks the labelled tasks onto the same broker.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from taskiq import TaskiqScheduler
from taskiq.schedule_sources import LabelScheduleSource
from taskiq_aio_pika import AioPikaBroker

from eventlane_service.core.settings import get_rabbit_settings
from eventlane_service.infra.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)

rabbit_settings = get_rabbit_settings()
setup_logging()

broker: AioPikaBroker | None = None
scheduler: TaskiqScheduler | None = None


def _can_create_broker() -> bool:
    """Check if broker can be created based on configuration."""
    if not rabbit_settings.is_configured:
        logger.warning("RabbitMQ not configured - webhook delivery tasks disabled")
        return False
    return True


if _can_create_broker():
    broker = AioPikaBroker(
        url=rabbit_settings.get_url(),
        queue_name=rabbit_settings.get_full_queue_name(),
        declare_exchange=True,
        declare_queues=True,
    )
    scheduler = TaskiqScheduler(broker=broker, sources=[LabelScheduleSource(broker)])

    logger.info(
        "Taskiq webhook broker configured",
        extra={"queue": rabbit_settings.get_full_queue_name()},
    )


async def get_broker() -> AsyncIterator[AioPikaBroker | None]:
    """Yield the taskiq broker instance (``None`` when RabbitMQ is off)."""
    yield broker


async def start_taskiq() -> None:
    """Start the taskiq broker for enqueuing tasks.

    Executing tasks needs a separate worker process:
        taskiq worker eventlane_service.tasks.broker:broker

    Raises:
        ConnectionError: If unable to connect to RabbitMQ.
    """
    if broker is None:
        logger.warning("Taskiq broker not configured, skipping startup")
        return

    logger.info("Starting Taskiq broker")

    try:
        await broker.startup()
        logger.info("Taskiq broker started successfully")
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise


async def stop_taskiq() -> None:
    """Stop the taskiq broker and close its RabbitMQ connection."""
    if broker is None:
        logger.debug("Taskiq broker not configured, skipping shutdown")
        return

    logger.info("Stopping Taskiq broker")

    try:
        await broker.shutdown()
        logger.info("Taskiq broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})


# The worker imports this module only, so task modules register here.
if broker is not None:
    import eventlane_service.tasks.webhooks.tasks  # noqa: F401

    logger.debug("Webhook task module imported and registered with broker")
