"""Delivery worker: one HTTP attempt per dequeued task.

State machine per delivery record::

    pending --2xx--> success
    pending --fail--> retrying (next_retry_at = now + delay)
    retrying --2xx--> success
    retrying --fail--> retrying | failed (after max_retries or permanent error)

``success`` and ``failed`` are terminal and are the only records a redelivered
task skips. Every other invocation increments ``attempt_count`` exactly once,
inside the same transaction that stores the follow-up transition.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

from eventlane_service.core.services.base import BaseService
from eventlane_service.core.settings import get_webhook_settings
from eventlane_service.features.webhooks.events import build_event_payload
from eventlane_service.features.webhooks.repository import (
    WebhookDeliveryRepository,
    WebhookSubscriptionRepository,
    get_webhook_delivery_repository,
    get_webhook_subscription_repository,
)
from eventlane_service.features.webhooks.schemas import (
    TERMINAL_STATUSES,
    DeliveryOutcome,
    DeliveryStatus,
    WebhookTask,
)
from eventlane_service.infra.logging import set_log_context

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from eventlane_service.core.settings import WebhookSettings
    from eventlane_service.features.webhooks.client import WebhookClient, WebhookDeliveryResult

SUBSCRIPTION_UNAVAILABLE = "Subscription not found or disabled"

# Client errors that may succeed later
RETRYABLE_CLIENT_ERRORS = frozenset({408, 429})


def _utcnow() -> datetime:
    return datetime.now(UTC)


class WebhookDeliveryWorker(BaseService):
    """Consumes delivery tasks and records their outcome."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: WebhookClient,
        settings: WebhookSettings | None = None,
        subscription_repository: WebhookSubscriptionRepository | None = None,
        delivery_repository: WebhookDeliveryRepository | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._client = client
        self._settings = settings or get_webhook_settings()
        self._subscription_repo = subscription_repository or get_webhook_subscription_repository()
        self._delivery_repo = delivery_repository or get_webhook_delivery_repository()
        self._clock = clock

    def is_permanent_failure(self, result: WebhookDeliveryResult) -> bool:
        """Whether a failed attempt should not be retried.

        Transport errors, 5xx, 408 and 429 are always retryable. Other 4xx
        responses are permanent when the settings say so.
        """
        code = result.status_code
        if code is None or not self._settings.permanent_failure_on_client_error:
            return False
        return 400 <= code < 500 and code not in RETRYABLE_CLIENT_ERRORS

    async def process(self, task: WebhookTask | dict[str, Any]) -> DeliveryOutcome:
        """Perform one delivery attempt for a dequeued task.

        Args:
            task: The queued task, as a model or its JSON form

        Returns:
            What happened to the delivery record
        """
        if not isinstance(task, WebhookTask):
            task = WebhookTask.model_validate(task)

        set_log_context(delivery_id=str(task.delivery_id), event_type=task.event_type)
        now = self._clock()

        async with self._session_factory() as session:
            delivery = await self._delivery_repo.get(session, task.delivery_id)
            if delivery is None:
                self.logger.warning(
                    "Webhook delivery record not found",
                    extra={
                        "delivery_id": str(task.delivery_id),
                        "operation": "worker.process",
                    },
                )
                return DeliveryOutcome.SKIPPED

            if delivery.status in TERMINAL_STATUSES:
                self._lazy.debug(
                    lambda: f"worker.process({task.delivery_id}): already {delivery.status}, skipping"
                )
                return DeliveryOutcome.SKIPPED

            subscription = await self._subscription_repo.get(session, task.subscription_id)
            if subscription is None or not subscription.enabled:
                return await self._fail_unavailable(session, task)

            url = subscription.endpoint_url
            secret = subscription.secret

        # No session is held open across the HTTP request
        timestamp = int(now.timestamp())
        payload = build_event_payload(
            event_type=task.event_type,
            vendor_id=task.vendor_id,
            correlation_id=task.correlation_id,
            data=task.data,
            timestamp=timestamp,
        )
        try:
            result = await self._client.deliver(url, payload, secret, timestamp)
        except (TypeError, ValueError) as e:
            # Payload cannot be serialized; no request was sent
            return await self._fail_unserializable(task.delivery_id, e)

        if result.success:
            return await self._record_success(task.delivery_id, result, now)
        return await self._record_failure(task.delivery_id, result, now)

    async def _fail_unavailable(self, session: AsyncSession, task: WebhookTask) -> DeliveryOutcome:
        attempt_count = await self._delivery_repo.mark_outcome(
            session,
            task.delivery_id,
            DeliveryStatus.FAILED,
            0,
            SUBSCRIPTION_UNAVAILABLE,
        )
        await session.commit()

        if attempt_count is None:
            return DeliveryOutcome.SKIPPED

        self.logger.error(
            "Webhook delivery failed permanently: subscription not found or disabled",
            extra={
                "delivery_id": str(task.delivery_id),
                "subscription_id": str(task.subscription_id),
                "operation": "worker.process",
            },
        )
        return DeliveryOutcome.FAILED

    async def _fail_unserializable(self, delivery_id: UUID, error: Exception) -> DeliveryOutcome:
        async with self._session_factory() as session:
            attempt_count = await self._delivery_repo.mark_outcome(
                session,
                delivery_id,
                DeliveryStatus.FAILED,
                0,
                f"Payload serialization error: {error}"[: self._settings.max_response_body_chars],
            )
            await session.commit()

        if attempt_count is None:
            return DeliveryOutcome.SKIPPED

        self.logger.error(
            "Webhook delivery failed permanently: payload not serializable",
            extra={
                "delivery_id": str(delivery_id),
                "error": str(error),
                "operation": "worker.process",
            },
        )
        return DeliveryOutcome.FAILED

    async def _record_success(
        self,
        delivery_id: UUID,
        result: WebhookDeliveryResult,
        now: datetime,
    ) -> DeliveryOutcome:
        async with self._session_factory() as session:
            attempt_count = await self._delivery_repo.mark_outcome(
                session,
                delivery_id,
                DeliveryStatus.SUCCESS,
                result.status_code,
                result.response_body,
                now=now,
            )
            await session.commit()

        if attempt_count is None:
            return DeliveryOutcome.SKIPPED

        self.logger.info(
            "Webhook delivered successfully",
            extra={
                "delivery_id": str(delivery_id),
                "status_code": result.status_code,
                "attempt_count": attempt_count,
                "response_time_ms": result.response_time_ms,
                "operation": "worker.process",
            },
        )
        return DeliveryOutcome.SUCCESS

    async def _record_failure(
        self,
        delivery_id: UUID,
        result: WebhookDeliveryResult,
        now: datetime,
    ) -> DeliveryOutcome:
        response_body = result.response_body
        if result.transport_error:
            response_body = result.error_message

        async with self._session_factory() as session:
            attempt_count = await self._delivery_repo.mark_outcome(
                session,
                delivery_id,
                DeliveryStatus.RETRYING,
                result.status_code or 0,
                response_body,
            )
            if attempt_count is None:
                await session.rollback()
                return DeliveryOutcome.SKIPPED

            permanent = self.is_permanent_failure(result)
            if permanent or attempt_count >= self._settings.max_retries:
                await self._delivery_repo.finalize_failed(session, delivery_id)
                await session.commit()
                self.logger.error(
                    "Webhook delivery failed permanently",
                    extra={
                        "delivery_id": str(delivery_id),
                        "status_code": result.status_code,
                        "attempt_count": attempt_count,
                        "permanent": permanent,
                        "error": result.error_message,
                        "operation": "worker.process",
                    },
                )
                return DeliveryOutcome.FAILED

            delay = self._settings.retry_delay_for(attempt_count)
            next_retry_at = now + timedelta(seconds=delay)
            await self._delivery_repo.schedule_retry(session, delivery_id, next_retry_at)
            await session.commit()

        self.logger.warning(
            "Webhook delivery attempt failed, retry scheduled",
            extra={
                "delivery_id": str(delivery_id),
                "status_code": result.status_code,
                "attempt_count": attempt_count,
                "retry_in_seconds": delay,
                "next_retry_at": next_retry_at.isoformat(),
                "error": result.error_message,
                "operation": "worker.process",
            },
        )
        return DeliveryOutcome.RETRYING


__all__ = ["SUBSCRIPTION_UNAVAILABLE", "WebhookDeliveryWorker"]
