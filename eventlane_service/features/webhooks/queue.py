"""Task queue seam between the delivery engine and the broker."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from eventlane_service.features.webhooks.schemas import WebhookTask


class TaskQueue(Protocol):
    """At-least-once queue of delivery tasks.

    Implementations push the task to a broker whose consumer eventually
    calls ``WebhookDeliveryWorker.process`` with it, possibly more than once.
    """

    async def enqueue(self, task: WebhookTask) -> None:
        """Push one delivery task.

        Raises:
            Exception: Any broker error; callers decide how to handle it.
        """
        ...


__all__ = ["TaskQueue"]
