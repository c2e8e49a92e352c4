"""HTTP client for webhook delivery."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from eventlane_service.core.settings import get_webhook_settings
from eventlane_service.features.webhooks.signing import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    canonical_json,
    sign,
)
from eventlane_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from types import TracebackType

    from eventlane_service.core.settings import WebhookSettings

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)


@dataclass
class WebhookDeliveryResult:
    """Result of a webhook delivery attempt.

    ``status_code`` is None when no HTTP response was received.
    """

    success: bool
    status_code: int | None
    response_body: str | None
    response_time_ms: int
    error_message: str | None

    @property
    def transport_error(self) -> bool:
        return self.status_code is None


class WebhookClient:
    """Signs and POSTs webhook payloads.

    Handles:
    - Serializing the payload once and signing those exact bytes
    - Signature and timestamp headers
    - Connect and total timeouts
    - Response capture

    Pass ``http_client`` to share a connection pool or to stub transport in
    tests; otherwise the client owns one and closes it in ``aclose``.
    """

    def __init__(
        self,
        settings: WebhookSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or get_webhook_settings()
        self._timeout = httpx.Timeout(
            self._settings.timeout_seconds,
            connect=self._settings.connect_timeout_seconds,
        )
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)

    async def __aenter__(self) -> WebhookClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def build_request(
        self,
        payload: dict[str, Any],
        secret: str,
        timestamp: int,
    ) -> tuple[bytes, dict[str, str]]:
        """Serialize and sign a payload.

        Returns:
            The body bytes and the headers to send with them.
        """
        body = canonical_json(payload)
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._settings.user_agent,
            SIGNATURE_HEADER: sign(body, secret),
            TIMESTAMP_HEADER: str(timestamp),
        }
        return body, headers

    async def deliver(
        self,
        url: str,
        payload: dict[str, Any],
        secret: str,
        timestamp: int,
    ) -> WebhookDeliveryResult:
        """Deliver one payload to ``url``.

        Never raises for transport problems; they are reported in the result.

        Args:
            url: Subscriber endpoint
            payload: Body object, serialized once here
            secret: Subscription secret used as the HMAC key
            timestamp: Unix seconds sent in the timestamp header

        Returns:
            WebhookDeliveryResult with delivery status and response
        """
        body, headers = self.build_request(payload, secret, timestamp)
        limit = self._settings.max_response_body_chars
        start_time = time.monotonic()

        lazy_logger.debug(
            lambda: f"client.deliver: url={url}, type={payload.get('type')}, bytes={len(body)}"
        )

        try:
            async with asyncio.timeout(self._settings.timeout_seconds):
                response = await self._http.post(
                    url,
                    content=body,
                    headers=headers,
                    timeout=self._timeout,
                )
        except (TimeoutError, httpx.TimeoutException):
            error_message = f"Request timeout after {self._settings.timeout_seconds:g}s"
            logger.warning(
                "Webhook delivery timeout",
                extra={
                    "url": url,
                    "timeout_seconds": self._settings.timeout_seconds,
                    "operation": "client.deliver",
                },
            )
            return WebhookDeliveryResult(
                success=False,
                status_code=None,
                response_body=None,
                response_time_ms=self._elapsed_ms(start_time),
                error_message=error_message,
            )
        except httpx.RequestError as e:
            logger.warning(
                "Webhook delivery request error",
                extra={"url": url, "error": str(e), "operation": "client.deliver"},
            )
            return WebhookDeliveryResult(
                success=False,
                status_code=None,
                response_body=None,
                response_time_ms=self._elapsed_ms(start_time),
                error_message=f"Request error: {e}"[:limit],
            )

        response_time_ms = self._elapsed_ms(start_time)
        success = 200 <= response.status_code < 300
        response_body = response.text[:limit] if response.text else None

        lazy_logger.debug(
            lambda: f"client.deliver: url={url} -> {response.status_code} in {response_time_ms}ms"
        )
        return WebhookDeliveryResult(
            success=success,
            status_code=response.status_code,
            response_body=response_body,
            response_time_ms=response_time_ms,
            error_message=None if success else f"HTTP {response.status_code}",
        )

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)


__all__ = ["WebhookClient", "WebhookDeliveryResult"]
