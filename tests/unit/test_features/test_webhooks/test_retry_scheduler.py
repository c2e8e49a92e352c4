"""Unit tests for the retry sweep."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from eventlane_service.features.webhooks.repository import WebhookDeliveryRepository
from eventlane_service.features.webhooks.scheduler import WebhookRetryScheduler

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

NOW = datetime(2026, 7, 1, 8, 0, tzinfo=UTC)


async def _retrying(session: AsyncSession, next_retry_at: datetime, correlation_id: int = 1):
    repo = WebhookDeliveryRepository()
    delivery = await repo.create_pending(
        session,
        subscription_id=uuid4(),
        event_type="event.cancelled",
        vendor_id=3,
        correlation_id=correlation_id,
        payload={"reason": "weather"},
    )
    await repo.schedule_retry(session, delivery.id, next_retry_at)
    await session.commit()
    return delivery


@pytest.mark.asyncio
async def test_sweep_enqueues_due_deliveries(
    session_factory, db_session: AsyncSession, task_queue, webhook_settings
) -> None:
    due = await _retrying(db_session, NOW - timedelta(seconds=5), correlation_id=10)
    await _retrying(db_session, NOW + timedelta(minutes=1))
    await WebhookDeliveryRepository().create_pending(
        db_session,
        subscription_id=uuid4(),
        event_type="event.cancelled",
        vendor_id=3,
        correlation_id=None,
        payload={},
    )
    await db_session.commit()

    sweeper = WebhookRetryScheduler(session_factory, task_queue, settings=webhook_settings)
    count = await sweeper.sweep(now=NOW)

    assert count == 1
    [task] = task_queue.tasks
    assert task.delivery_id == due.id
    assert task.subscription_id == due.subscription_id
    assert task.event_type == "event.cancelled"
    assert task.vendor_id == 3
    assert task.correlation_id == 10
    assert task.data == {"reason": "weather"}


@pytest.mark.asyncio
async def test_sweep_does_not_change_state(
    session_factory, db_session: AsyncSession, task_queue, webhook_settings
) -> None:
    due = await _retrying(db_session, NOW - timedelta(seconds=5))

    sweeper = WebhookRetryScheduler(session_factory, task_queue, settings=webhook_settings)
    await sweeper.sweep(now=NOW)
    await sweeper.sweep(now=NOW)

    db_session.expire_all()
    await db_session.refresh(due)
    assert due.status == "retrying"
    assert due.attempt_count == 0
    assert len(task_queue.tasks) == 2


@pytest.mark.asyncio
async def test_sweep_respects_limit(
    session_factory, db_session: AsyncSession, task_queue, webhook_settings
) -> None:
    for offset in range(3):
        await _retrying(db_session, NOW - timedelta(minutes=offset + 1))

    sweeper = WebhookRetryScheduler(session_factory, task_queue, settings=webhook_settings)

    assert await sweeper.sweep(now=NOW, limit=2) == 2


@pytest.mark.asyncio
async def test_sweep_continues_after_enqueue_failure(
    session_factory, db_session: AsyncSession, recording_queue_cls, webhook_settings
) -> None:
    await _retrying(db_session, NOW - timedelta(minutes=2))
    await _retrying(db_session, NOW - timedelta(minutes=1))
    queue = recording_queue_cls(fail_calls={0})

    count = await WebhookRetryScheduler(session_factory, queue, settings=webhook_settings).sweep(now=NOW)

    assert count == 1
    assert queue.calls == 2


@pytest.mark.asyncio
async def test_sweep_with_nothing_due(session_factory, task_queue, webhook_settings) -> None:
    sweeper = WebhookRetryScheduler(session_factory, task_queue, settings=webhook_settings)

    assert await sweeper.sweep(now=NOW) == 0
    assert task_queue.calls == 0


@pytest.mark.asyncio
async def test_sweep_picks_up_stale_pending_deliveries(
    session_factory, db_session: AsyncSession, task_queue, webhook_settings
) -> None:
    repo = WebhookDeliveryRepository()
    stale = await repo.create_pending(
        db_session,
        subscription_id=uuid4(),
        event_type="ticket.refunded",
        vendor_id=3,
        correlation_id=7,
        payload={"amount": 12},
    )
    fresh = await repo.create_pending(
        db_session,
        subscription_id=uuid4(),
        event_type="ticket.refunded",
        vendor_id=3,
        correlation_id=8,
        payload={},
    )
    stale.created_at = NOW - timedelta(seconds=webhook_settings.stale_pending_seconds + 1)
    fresh.created_at = NOW - timedelta(seconds=5)
    await db_session.commit()

    count = await WebhookRetryScheduler(session_factory, task_queue, settings=webhook_settings).sweep(now=NOW)

    assert count == 1
    [task] = task_queue.tasks
    assert task.delivery_id == stale.id
    assert task.data == {"amount": 12}
