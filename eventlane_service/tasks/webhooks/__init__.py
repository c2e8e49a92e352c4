"""Webhook delivery tasks."""

from __future__ import annotations

from eventlane_service.tasks.webhooks.tasks import (
    TaskiqTaskQueue,
    run_delivery,
    run_retry_sweep,
)

__all__ = ["TaskiqTaskQueue", "run_delivery", "run_retry_sweep"]
