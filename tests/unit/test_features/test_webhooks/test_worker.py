"""Unit tests for WebhookDeliveryWorker state transitions."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import httpx
import pytest

from eventlane_service.features.webhooks.models import WebhookDelivery, WebhookSubscription
from eventlane_service.features.webhooks.repository import WebhookDeliveryRepository
from eventlane_service.features.webhooks.schemas import DeliveryOutcome, WebhookTask
from eventlane_service.features.webhooks.signing import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify
from eventlane_service.features.webhooks.worker import SUBSCRIPTION_UNAVAILABLE, WebhookDeliveryWorker

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventlane_service.core.settings import WebhookSettings

START = datetime(2026, 5, 4, 9, 30, tzinfo=UTC)
SECRET = "c0ffee" * 10 + "beef"


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class Receiver:
    """MockTransport handler that replies with a scripted status code."""

    def __init__(self, status_code: int = 200, body: str = "ok") -> None:
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


async def _arrange(
    session: AsyncSession,
    *,
    enabled: bool = True,
    data: dict | None = None,
) -> tuple[WebhookSubscription, WebhookTask]:
    subscription = WebhookSubscription(
        vendor_id=42,
        endpoint_url="https://hooks.example.com/in",
        secret=SECRET,
        event_types=["ticket.purchased"],
        enabled=enabled,
    )
    session.add(subscription)
    await session.flush()
    delivery = await WebhookDeliveryRepository().create_pending(
        session,
        subscription_id=subscription.id,
        event_type="ticket.purchased",
        vendor_id=42,
        correlation_id=555,
        payload=data if data is not None else {"qty": 3},
    )
    await session.commit()
    task = WebhookTask(
        delivery_id=delivery.id,
        subscription_id=subscription.id,
        event_type="ticket.purchased",
        vendor_id=42,
        correlation_id=555,
        data=delivery.payload,
    )
    return subscription, task


async def _reload(session: AsyncSession, delivery_id) -> WebhookDelivery:
    session.expire_all()
    delivery = await session.get(WebhookDelivery, delivery_id)
    assert delivery is not None
    return delivery


def _worker(
    session_factory: async_sessionmaker[AsyncSession],
    client,
    settings: WebhookSettings,
    clock: FakeClock,
) -> WebhookDeliveryWorker:
    return WebhookDeliveryWorker(session_factory, client, settings=settings, clock=clock)


@pytest.mark.asyncio
async def test_successful_delivery(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session)
    receiver = Receiver(200, "thanks")
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.SUCCESS
    assert delivery.status == "success"
    assert delivery.attempt_count == 1
    assert delivery.response_code == 200
    assert delivery.response_body == "thanks"
    assert delivery.delivered_at == START
    assert delivery.next_retry_at is None
    assert len(receiver.requests) == 1


@pytest.mark.asyncio
async def test_receiver_can_verify_signature(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    subscription, task = await _arrange(db_session, data={"note": "Ünïcode / slashes"})
    receiver = Receiver(204, "")
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    await worker.process(task.to_message())

    request = receiver.requests[0]
    body = json.loads(request.content)
    assert verify(request.content, request.headers[SIGNATURE_HEADER], subscription.secret)
    assert body == {
        "event_id": 555,
        "vendor_id": 42,
        "timestamp": int(START.timestamp()),
        "type": "ticket.purchased",
        "data": {"note": "Ünïcode / slashes"},
    }
    assert request.headers[TIMESTAMP_HEADER] == str(body["timestamp"])


@pytest.mark.asyncio
async def test_server_errors_exhaust_retries(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session)
    receiver = Receiver(500, "boom")
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    for attempt in range(1, 5):
        outcome = await worker.process(task)
        delivery = await _reload(db_session, task.delivery_id)

        assert outcome is DeliveryOutcome.RETRYING
        assert delivery.status == "retrying"
        assert delivery.attempt_count == attempt
        assert delivery.next_retry_at - clock.now == timedelta(
            seconds=webhook_settings.retry_delays[attempt]
        )
        clock.now = delivery.next_retry_at

    outcome = await worker.process(task)
    delivery = await _reload(db_session, task.delivery_id)

    assert outcome is DeliveryOutcome.FAILED
    assert delivery.status == "failed"
    assert delivery.attempt_count == 5
    assert delivery.next_retry_at is None
    assert delivery.response_code == 500
    assert len(receiver.requests) == 5


@pytest.mark.asyncio
async def test_terminal_record_is_never_touched_again(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session)
    receiver = Receiver(200)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    await worker.process(task)
    clock.advance(3600)
    duplicate = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert duplicate is DeliveryOutcome.SKIPPED
    assert delivery.attempt_count == 1
    assert delivery.delivered_at == START
    assert len(receiver.requests) == 1


@pytest.mark.asyncio
async def test_redelivery_before_due_time_makes_another_attempt(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session)
    receiver = Receiver(503)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    await worker.process(task)
    clock.advance(30)
    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.RETRYING
    assert delivery.attempt_count == 2
    assert delivery.next_retry_at == clock.now + timedelta(seconds=webhook_settings.retry_delays[2])
    assert len(receiver.requests) == 2


@pytest.mark.asyncio
async def test_five_server_errors_in_a_row_fail_the_delivery(
    session_factory, db_session, make_webhook_client, webhook_settings
) -> None:
    _, task = await _arrange(db_session)
    receiver = Receiver(500, "boom")
    worker = WebhookDeliveryWorker(
        session_factory, make_webhook_client(receiver), settings=webhook_settings
    )

    outcomes = [await worker.process(task) for _ in range(5)]

    delivery = await _reload(db_session, task.delivery_id)
    assert outcomes == [DeliveryOutcome.RETRYING] * 4 + [DeliveryOutcome.FAILED]
    assert delivery.status == "failed"
    assert delivery.attempt_count == 5
    assert delivery.next_retry_at is None
    assert len(receiver.requests) == 5


@pytest.mark.asyncio
async def test_unserializable_payload_fails_without_request(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session, data={"name": "\ud800"})
    receiver = Receiver(200)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.FAILED
    assert delivery.status == "failed"
    assert delivery.attempt_count == 1
    assert delivery.response_code == 0
    assert delivery.response_body.startswith("Payload serialization error")
    assert receiver.requests == []


@pytest.mark.asyncio
async def test_deleted_subscription_fails_without_request(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    subscription, task = await _arrange(db_session)
    await db_session.delete(subscription)
    await db_session.commit()
    receiver = Receiver(200)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.FAILED
    assert delivery.status == "failed"
    assert delivery.response_code == 0
    assert delivery.response_body == SUBSCRIPTION_UNAVAILABLE
    assert delivery.attempt_count == 1
    assert receiver.requests == []


@pytest.mark.asyncio
async def test_disabled_subscription_fails_without_request(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    _, task = await _arrange(db_session, enabled=False)
    receiver = Receiver(200)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)

    assert await worker.process(task) is DeliveryOutcome.FAILED
    assert (await _reload(db_session, task.delivery_id)).response_code == 0
    assert receiver.requests == []


@pytest.mark.asyncio
async def test_missing_record_is_skipped(
    session_factory, make_webhook_client, webhook_settings, clock
) -> None:
    receiver = Receiver(200)
    worker = _worker(session_factory, make_webhook_client(receiver), webhook_settings, clock)
    task = WebhookTask(
        delivery_id=uuid4(), subscription_id=uuid4(), event_type="export.ready", vendor_id=1
    )

    assert await worker.process(task) is DeliveryOutcome.SKIPPED
    assert receiver.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 401, 404, 410])
async def test_client_errors_are_permanent(
    session_factory, db_session, make_webhook_client, webhook_settings, clock, status_code
) -> None:
    _, task = await _arrange(db_session)
    worker = _worker(session_factory, make_webhook_client(Receiver(status_code)), webhook_settings, clock)

    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.FAILED
    assert delivery.status == "failed"
    assert delivery.attempt_count == 1
    assert delivery.response_code == status_code


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [408, 429])
async def test_throttling_client_errors_are_retried(
    session_factory, db_session, make_webhook_client, webhook_settings, clock, status_code
) -> None:
    _, task = await _arrange(db_session)
    worker = _worker(session_factory, make_webhook_client(Receiver(status_code)), webhook_settings, clock)

    assert await worker.process(task) is DeliveryOutcome.RETRYING


@pytest.mark.asyncio
async def test_client_errors_retried_when_policy_disabled(
    session_factory, db_session, make_webhook_client, clock
) -> None:
    from eventlane_service.core.settings import WebhookSettings

    settings = WebhookSettings(_env_file=None, permanent_failure_on_client_error=False)
    _, task = await _arrange(db_session)
    worker = _worker(session_factory, make_webhook_client(Receiver(404), settings), settings, clock)

    assert await worker.process(task) is DeliveryOutcome.RETRYING


@pytest.mark.asyncio
async def test_transport_error_is_recorded_and_retried(
    session_factory, db_session, make_webhook_client, webhook_settings, clock
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _, task = await _arrange(db_session)
    worker = _worker(session_factory, make_webhook_client(refuse), webhook_settings, clock)

    outcome = await worker.process(task)

    delivery = await _reload(db_session, task.delivery_id)
    assert outcome is DeliveryOutcome.RETRYING
    assert delivery.response_code == 0
    assert delivery.response_body.startswith("Request error:")
    assert delivery.next_retry_at == START + timedelta(seconds=300)
