"""Service layer for webhook subscription management."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from eventlane_service.core.services.base import BaseService
from eventlane_service.core.settings import get_webhook_settings
from eventlane_service.core.validators import validate_endpoint_url
from eventlane_service.features.webhooks.events import normalize_event_types
from eventlane_service.features.webhooks.models import WebhookSubscription
from eventlane_service.features.webhooks.repository import (
    WebhookSubscriptionRepository,
    get_webhook_subscription_repository,
)
from eventlane_service.features.webhooks.schemas import (
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionSummary,
    SubscriptionUpdate,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from eventlane_service.core.settings import WebhookSettings


class WebhookSubscriptionService(BaseService):
    """Manages vendor subscriptions.

    Writes are flushed, not committed: the caller owns the transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        subscription_repository: WebhookSubscriptionRepository | None = None,
        settings: WebhookSettings | None = None,
    ) -> None:
        super().__init__()
        self._session = session
        self._repo = subscription_repository or get_webhook_subscription_repository()
        self._settings = settings or get_webhook_settings()

    def validate_url(self, url: str) -> str:
        """Validate an endpoint URL under the configured SSRF policy.

        Raises:
            InvalidEndpointError: If the URL is not acceptable.
        """
        return validate_endpoint_url(url, block_private=self._settings.block_private_addresses)

    def generate_secret(self) -> str:
        """Generate a 32-byte hex-encoded HMAC secret."""
        return secrets.token_hex(32)

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def create(
        self,
        vendor_id: int,
        endpoint_url: str,
        event_types: Iterable[str] | None = None,
    ) -> WebhookSubscription:
        """Register a new, enabled subscription.

        Args:
            vendor_id: Owning vendor
            endpoint_url: HTTPS URL receiving deliveries
            event_types: Requested event types; unknown values are dropped
                and an empty result means all types

        Returns:
            The persisted subscription, including its secret

        Raises:
            InvalidEndpointError: If the URL is not acceptable
        """
        url = self.validate_url(endpoint_url)
        subscription = WebhookSubscription(
            vendor_id=vendor_id,
            endpoint_url=url,
            secret=self.generate_secret(),
            event_types=normalize_event_types(event_types),
            enabled=True,
        )
        created = await self._repo.create(self._session, subscription)

        # INFO level - business event (audit trail)
        self.logger.info(
            "Webhook subscription created",
            extra={
                "subscription_id": str(created.id),
                "vendor_id": vendor_id,
                "event_types": created.event_types,
                "operation": "service.create_subscription",
            },
        )
        return created

    async def get(self, subscription_id: UUID) -> WebhookSubscription | None:
        """Fetch a subscription by id."""
        subscription = await self._repo.get(self._session, subscription_id)

        self._lazy.debug(
            lambda: f"service.get({subscription_id}) -> {'found' if subscription else 'not found'}"
        )
        return subscription

    async def list_for_vendor(
        self,
        vendor_id: int,
        *,
        enabled_only: bool = False,
    ) -> list[WebhookSubscription]:
        """A vendor's subscriptions, newest first."""
        return list(
            await self._repo.list_for_vendor(self._session, vendor_id, enabled_only=enabled_only)
        )

    async def update(
        self,
        subscription_id: UUID,
        *,
        endpoint_url: str | None = None,
        event_types: Iterable[str] | None = None,
        enabled: bool | None = None,
    ) -> bool:
        """Apply a partial update. The secret is never changed.

        Returns:
            False when the subscription does not exist or nothing was given

        Raises:
            InvalidEndpointError: If a new URL is not acceptable
        """
        if endpoint_url is None and event_types is None and enabled is None:
            self._lazy.debug(lambda: f"service.update({subscription_id}) -> empty patch")
            return False

        subscription = await self._repo.get(self._session, subscription_id)
        if subscription is None:
            self._lazy.debug(lambda: f"service.update({subscription_id}) -> not found")
            return False

        if endpoint_url is not None:
            subscription.endpoint_url = self.validate_url(endpoint_url)
        if event_types is not None:
            subscription.event_types = normalize_event_types(event_types)
        if enabled is not None:
            subscription.enabled = enabled

        await self._session.flush()

        # INFO level - state change (business event)
        self.logger.info(
            "Webhook subscription updated",
            extra={
                "subscription_id": str(subscription_id),
                "enabled": subscription.enabled,
                "operation": "service.update_subscription",
            },
        )
        return True

    async def delete(self, subscription_id: UUID) -> bool:
        """Delete a subscription; its queued deliveries are left in place."""
        subscription = await self._repo.get(self._session, subscription_id)
        if subscription is None:
            self._lazy.debug(lambda: f"service.delete({subscription_id}) -> not found")
            return False

        await self._repo.delete(self._session, subscription)

        # INFO level - permanent data removal (audit trail)
        self.logger.info(
            "Webhook subscription deleted",
            extra={
                "subscription_id": str(subscription_id),
                "operation": "service.delete_subscription",
            },
        )
        return True

    async def matching(self, event_type: str, vendor_id: int) -> list[WebhookSubscription]:
        """Enabled subscriptions of the vendor that receive ``event_type``."""
        return await self._repo.find_matching(self._session, event_type, vendor_id)

    # ------------------------------------------------------------------
    # Management calls
    # ------------------------------------------------------------------

    async def create_subscription(self, payload: SubscriptionCreate) -> SubscriptionCreated:
        """Register a subscription; the response is the only place the secret appears."""
        subscription = await self.create(payload.vendor_id, payload.endpoint_url, payload.event_types)
        return SubscriptionCreated(id=subscription.id, secret=subscription.secret)

    async def list_subscriptions(
        self,
        vendor_id: int,
        *,
        enabled_only: bool = False,
    ) -> list[SubscriptionSummary]:
        """List a vendor's subscriptions without secrets."""
        subscriptions = await self.list_for_vendor(vendor_id, enabled_only=enabled_only)
        return [SubscriptionSummary.model_validate(s) for s in subscriptions]

    async def update_subscription(self, subscription_id: UUID, patch: SubscriptionUpdate) -> bool:
        """Apply a validated patch."""
        return await self.update(subscription_id, **patch.changes())

    async def delete_subscription(self, subscription_id: UUID) -> bool:
        """Delete a subscription."""
        return await self.delete(subscription_id)


__all__ = ["WebhookSubscriptionService"]
