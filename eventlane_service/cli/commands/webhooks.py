"""Webhook management CLI commands.

This module provides CLI commands for:
- Creating, listing, updating and deleting subscriptions
- Inspecting delivery records
- Running the retry sweep and firing test events by hand
"""

import json
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import click
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from eventlane_service.cli.utils import (
    coro,
    error,
    field,
    header,
    info,
    section,
    status_label,
    success,
    warning,
)
from eventlane_service.features.webhooks.events import WebhookEventType
from eventlane_service.infra.database.session import close_database, get_async_session, get_session_factory

EVENT_CHOICES = click.Choice([event_type.value for event_type in WebhookEventType])


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        error(f"Invalid {label} ID format: {value}")
        sys.exit(1)


@asynccontextmanager
async def _session() -> AsyncIterator[AsyncSession]:
    """Open a session and dispose the engine when the command finishes."""
    try:
        async with get_async_session() as session:
            yield session
    finally:
        await close_database()


def _require_broker() -> None:
    from eventlane_service.tasks.broker import broker

    if broker is None:
        error("RabbitMQ is not configured; cannot enqueue webhook tasks")
        sys.exit(1)


@click.group(name="webhooks")
def webhooks() -> None:
    """Webhook subscription and delivery commands."""


@webhooks.command(name="create")
@click.option("--vendor-id", "-v", required=True, type=int, help="Owning vendor")
@click.option("--url", "-u", "endpoint_url", required=True, help="HTTPS endpoint URL")
@click.option(
    "--event",
    "-e",
    "event_types",
    multiple=True,
    type=EVENT_CHOICES,
    help="Event type to subscribe to (repeatable, default: all)",
)
@coro
async def create_subscription(vendor_id: int, endpoint_url: str, event_types: tuple[str, ...]) -> None:
    """Create a subscription and print its signing secret.

    Examples:
    \b
      eventlane-service webhooks create -v 42 -u https://example.com/hook -e ticket.purchased
    """
    from eventlane_service.features.webhooks.schemas import SubscriptionCreate
    from eventlane_service.features.webhooks.service import WebhookSubscriptionService

    try:
        payload = SubscriptionCreate(
            vendor_id=vendor_id,
            endpoint_url=endpoint_url,
            event_types=list(event_types),
        )
    except ValidationError as e:
        error(f"Validation error: {e.errors()[0]['msg']}")
        sys.exit(1)

    header("Creating Webhook Subscription")

    async with _session() as session:
        service = WebhookSubscriptionService(session)
        try:
            created = await service.create_subscription(payload)
        except ValueError as e:
            error(f"Validation error: {e}")
            sys.exit(1)
        await session.commit()

    success(f"Subscription created: {created.id}")
    field("Secret", created.secret)
    warning("Store this secret securely - it is shown only once")


@webhooks.command(name="list")
@click.option("--vendor-id", "-v", required=True, type=int, help="Owning vendor")
@click.option("--enabled-only", is_flag=True, help="Hide disabled subscriptions")
@coro
async def list_subscriptions(vendor_id: int, enabled_only: bool) -> None:
    """List a vendor's subscriptions (secrets are never shown)."""
    from eventlane_service.features.webhooks.service import WebhookSubscriptionService

    header(f"Webhook Subscriptions for vendor {vendor_id}")

    async with _session() as session:
        service = WebhookSubscriptionService(session)
        summaries = await service.list_subscriptions(vendor_id, enabled_only=enabled_only)

    if not summaries:
        info("No subscriptions found")
        return

    click.echo()
    for summary in summaries:
        state = click.style("Enabled", fg="green") if summary.enabled else click.style("Disabled", fg="red")
        click.echo(f"  ID: {summary.id}")
        field("URL", summary.endpoint_url, indent=4)
        field("Status", state, indent=4)
        field("Events", ", ".join(summary.event_types), indent=4)
        field("Created", summary.created_at, indent=4)
        click.echo()

    success(f"Showing {len(summaries)} subscriptions")


@webhooks.command(name="update")
@click.argument("subscription_id")
@click.option("--url", "-u", "endpoint_url", default=None, help="New HTTPS endpoint URL")
@click.option(
    "--event",
    "-e",
    "event_types",
    multiple=True,
    type=EVENT_CHOICES,
    help="Replace the subscribed event types (repeatable)",
)
@click.option("--enable/--disable", "enabled", default=None, help="Enable or disable the subscription")
@coro
async def update_subscription(
    subscription_id: str,
    endpoint_url: str | None,
    event_types: tuple[str, ...],
    enabled: bool | None,
) -> None:
    """Change a subscription's URL, event types or enabled flag.

    SUBSCRIPTION_ID is the UUID of the subscription.
    """
    from eventlane_service.features.webhooks.schemas import SubscriptionUpdate
    from eventlane_service.features.webhooks.service import WebhookSubscriptionService

    subscription_uuid = _parse_uuid(subscription_id, "subscription")
    try:
        patch = SubscriptionUpdate(
            endpoint_url=endpoint_url,
            event_types=list(event_types) if event_types else None,
            enabled=enabled,
        )
    except ValidationError as e:
        error(f"Validation error: {e.errors()[0]['msg']}")
        sys.exit(1)

    if not patch.changes():
        warning("Nothing to update")
        return

    async with _session() as session:
        service = WebhookSubscriptionService(session)
        try:
            updated = await service.update_subscription(subscription_uuid, patch)
        except ValueError as e:
            error(f"Validation error: {e}")
            sys.exit(1)
        await session.commit()

    if not updated:
        error(f"Subscription not found: {subscription_id}")
        sys.exit(1)
    success(f"Subscription updated: {subscription_id}")


@webhooks.command(name="delete")
@click.argument("subscription_id")
@click.option("--force", is_flag=True, help="Skip confirmation")
@coro
async def delete_subscription(subscription_id: str, force: bool) -> None:
    """Delete a subscription.

    SUBSCRIPTION_ID is the UUID of the subscription to delete.
    """
    from eventlane_service.features.webhooks.service import WebhookSubscriptionService

    subscription_uuid = _parse_uuid(subscription_id, "subscription")
    if not force and not click.confirm(f"Delete subscription {subscription_id}?"):
        info("Deletion cancelled")
        return

    async with _session() as session:
        service = WebhookSubscriptionService(session)
        deleted = await service.delete_subscription(subscription_uuid)
        await session.commit()

    if not deleted:
        error(f"Subscription not found: {subscription_id}")
        sys.exit(1)
    success(f"Subscription deleted: {subscription_id}")


@webhooks.group(name="deliveries")
def deliveries() -> None:
    """Inspect delivery records."""


@deliveries.command(name="show")
@click.argument("delivery_id")
@coro
async def show_delivery(delivery_id: str) -> None:
    """Show one delivery record.

    DELIVERY_ID is the UUID of the delivery.
    """
    from eventlane_service.features.webhooks.repository import get_webhook_delivery_repository
    from eventlane_service.features.webhooks.schemas import WebhookDeliveryRead

    delivery_uuid = _parse_uuid(delivery_id, "delivery")

    async with _session() as session:
        record = await get_webhook_delivery_repository().get(session, delivery_uuid)
        if record is None:
            error(f"Delivery not found: {delivery_id}")
            sys.exit(1)
        delivery = WebhookDeliveryRead.model_validate(record)

    header(f"Delivery {delivery.id}")

    section("Event")
    field("Type", delivery.event_type)
    field("Vendor", delivery.vendor_id)
    field("Correlation ID", delivery.event_correlation_id)
    field("Subscription", delivery.subscription_id)

    section("State")
    field("Status", status_label(delivery.status.value))
    field("Attempts", delivery.attempt_count)
    field("Response code", delivery.response_code)
    field("Next retry", delivery.next_retry_at)
    field("Delivered", delivery.delivered_at)

    if delivery.response_body:
        section("Response body")
        click.echo(f"  {delivery.response_body[:500]}")


@deliveries.command(name="list")
@click.argument("subscription_id")
@click.option("--limit", default=20, type=int, help="Maximum deliveries to display (default: 20)")
@coro
async def list_deliveries(subscription_id: str, limit: int) -> None:
    """List recent deliveries for a subscription, newest first."""
    from eventlane_service.features.webhooks.repository import get_webhook_delivery_repository

    subscription_uuid = _parse_uuid(subscription_id, "subscription")

    async with _session() as session:
        result = await get_webhook_delivery_repository().find_by_subscription(
            session, subscription_uuid, limit=limit
        )

    if not result.items:
        info("No deliveries found")
        return

    header(f"Deliveries for {subscription_id}")
    for delivery in result.items:
        click.echo(
            f"  {delivery.id}  {delivery.event_type:<20} {status_label(delivery.status)}"
            f"  attempts={delivery.attempt_count}  code={delivery.response_code or '-'}"
        )
    success(f"Showing {len(result.items)}/{result.total} deliveries")


@webhooks.command(name="sweep")
@coro
async def sweep_retries() -> None:
    """Re-enqueue every delivery whose retry is due now."""
    _require_broker()

    from eventlane_service.tasks.broker import start_taskiq, stop_taskiq
    from eventlane_service.tasks.webhooks import TaskiqTaskQueue, run_retry_sweep

    await start_taskiq()
    try:
        count = await run_retry_sweep(task_queue=TaskiqTaskQueue(), session_factory=get_session_factory())
    finally:
        await stop_taskiq()
        await close_database()

    success(f"Re-enqueued {count} deliveries")


@webhooks.command(name="fire")
@click.option("--vendor-id", "-v", required=True, type=int, help="Vendor raising the event")
@click.option("--event", "-e", "event_type", required=True, type=EVENT_CHOICES, help="Event type")
@click.option("--correlation-id", type=int, default=None, help="Domain object identifier")
@click.option("--data", "data_json", default="{}", help="Event data as a JSON object")
@coro
async def fire_event(vendor_id: int, event_type: str, correlation_id: int | None, data_json: str) -> None:
    """Dispatch a test event to the vendor's matching subscriptions.

    Examples:
    \b
      eventlane-service webhooks fire -v 42 -e ticket.purchased --data '{"qty": 2}'
    """
    try:
        data = json.loads(data_json)
    except json.JSONDecodeError as e:
        error(f"Invalid --data JSON: {e}")
        sys.exit(1)
    if not isinstance(data, dict):
        error("--data must be a JSON object")
        sys.exit(1)

    _require_broker()

    from eventlane_service.features.webhooks.dispatcher import WebhookDispatcher
    from eventlane_service.tasks.broker import start_taskiq, stop_taskiq
    from eventlane_service.tasks.webhooks import TaskiqTaskQueue

    await start_taskiq()
    try:
        dispatcher = WebhookDispatcher(get_session_factory(), TaskiqTaskQueue())
        count = await dispatcher.queue(event_type, vendor_id, correlation_id, data)
    finally:
        await stop_taskiq()
        await close_database()

    if count:
        success(f"Queued {count} deliveries for {event_type}")
    else:
        info("No matching subscriptions")
