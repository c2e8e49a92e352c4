"""Unit tests for WebhookSubscriptionService."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from eventlane_service.core.settings import WebhookSettings
from eventlane_service.core.validators import InvalidEndpointError
from eventlane_service.features.webhooks.events import ALL_EVENT_TYPES
from eventlane_service.features.webhooks.schemas import (
    SubscriptionCreate,
    SubscriptionSummary,
    SubscriptionUpdate,
)
from eventlane_service.features.webhooks.service import WebhookSubscriptionService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
def service(db_session: AsyncSession, webhook_settings: WebhookSettings) -> WebhookSubscriptionService:
    return WebhookSubscriptionService(db_session, settings=webhook_settings)


@pytest.mark.asyncio
async def test_create_subscription_returns_secret_once(
    service: WebhookSubscriptionService, db_session: AsyncSession
) -> None:
    created = await service.create_subscription(
        SubscriptionCreate(
            vendor_id=42,
            endpoint_url="https://hooks.example.com/in",
            event_types=["ticket.purchased"],
        )
    )
    await db_session.commit()

    assert len(created.secret) == 64
    int(created.secret, 16)

    stored = await service.get(created.id)
    assert stored is not None
    assert stored.secret == created.secret
    assert stored.enabled is True
    assert stored.event_types == ["ticket.purchased"]


@pytest.mark.asyncio
async def test_secrets_are_unique(service: WebhookSubscriptionService) -> None:
    first = await service.create(1, "https://example.com/a")
    second = await service.create(1, "https://example.com/b")

    assert first.secret != second.secret


@pytest.mark.asyncio
async def test_create_defaults_to_all_event_types(service: WebhookSubscriptionService) -> None:
    created = await service.create(1, "https://example.com/a", ["bogus"])

    assert created.event_types == ALL_EVENT_TYPES


@pytest.mark.asyncio
async def test_create_rejects_private_ip(service: WebhookSubscriptionService) -> None:
    with pytest.raises(InvalidEndpointError):
        await service.create(1, "https://192.168.1.20/hook")


@pytest.mark.asyncio
async def test_private_ip_allowed_when_blocking_disabled(db_session: AsyncSession) -> None:
    service = WebhookSubscriptionService(
        db_session, settings=WebhookSettings(_env_file=None, block_private_addresses=False)
    )

    created = await service.create(1, "https://192.168.1.20/hook")

    assert created.endpoint_url == "https://192.168.1.20/hook"


@pytest.mark.asyncio
async def test_create_logs_business_event(
    service: WebhookSubscriptionService, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO):
        await service.create(3, "https://example.com/a")

    records = [r for r in caplog.records if r.getMessage() == "Webhook subscription created"]
    assert records
    assert records[0].operation == "service.create_subscription"
    assert records[0].vendor_id == 3


@pytest.mark.asyncio
async def test_list_subscriptions_hides_secret(service: WebhookSubscriptionService) -> None:
    await service.create(8, "https://example.com/a")
    disabled = await service.create(8, "https://example.com/b")
    await service.update(disabled.id, enabled=False)

    summaries = await service.list_subscriptions(8)
    enabled = await service.list_subscriptions(8, enabled_only=True)

    assert len(summaries) == 2
    assert all(isinstance(s, SubscriptionSummary) for s in summaries)
    assert all("secret" not in s.model_dump() for s in summaries)
    assert [s.endpoint_url for s in enabled] == ["https://example.com/a"]


@pytest.mark.asyncio
async def test_update_subscription_keeps_secret(service: WebhookSubscriptionService) -> None:
    created = await service.create(2, "https://example.com/a", ["rsvp.created"])
    secret = created.secret

    updated = await service.update_subscription(
        created.id,
        SubscriptionUpdate(endpoint_url="https://example.com/new", event_types=["export.ready"]),
    )

    stored = await service.get(created.id)
    assert updated is True
    assert stored.endpoint_url == "https://example.com/new"
    assert stored.event_types == ["export.ready"]
    assert stored.secret == secret


@pytest.mark.asyncio
async def test_update_returns_false_for_missing_or_empty(service: WebhookSubscriptionService) -> None:
    created = await service.create(2, "https://example.com/a")

    assert await service.update_subscription(uuid4(), SubscriptionUpdate(enabled=False)) is False
    assert await service.update_subscription(created.id, SubscriptionUpdate()) is False


@pytest.mark.asyncio
async def test_update_validates_url(service: WebhookSubscriptionService) -> None:
    created = await service.create(2, "https://example.com/a")

    with pytest.raises(InvalidEndpointError):
        await service.update(created.id, endpoint_url="https://127.0.0.1/hook")


@pytest.mark.asyncio
async def test_delete_subscription(service: WebhookSubscriptionService) -> None:
    created = await service.create(2, "https://example.com/a")

    assert await service.delete_subscription(created.id) is True
    assert await service.get(created.id) is None
    assert await service.delete_subscription(created.id) is False


@pytest.mark.asyncio
async def test_matching(service: WebhookSubscriptionService) -> None:
    match = await service.create(4, "https://example.com/a", ["ticket.refunded"])
    await service.create(4, "https://example.com/b", ["ticket.purchased"])

    found = await service.matching("ticket.refunded", 4)

    assert [s.id for s in found] == [match.id]
