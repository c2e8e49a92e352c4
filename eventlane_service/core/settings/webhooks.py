"""Webhook delivery configuration settings.

Provides settings for webhook HTTP delivery, the retry schedule, and the
periodic retry sweep.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    """Configuration for the webhook delivery engine.

    Environment variables use WEBHOOK_ prefix.
    Example: WEBHOOK_MAX_RETRIES=5, WEBHOOK_RETRY_DELAYS='[60, 300, 900]'
    """

    # HTTP delivery settings
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=30.0,
        description="Total time budget for one webhook HTTP request (seconds)",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=10.0,
        description="Connection timeout for webhook HTTP requests (seconds)",
    )
    user_agent: str = Field(
        default="MyEventLane-Webhooks/1.0",
        min_length=1,
        max_length=200,
        description="User-Agent header sent with every delivery",
    )
    max_response_body_chars: int = Field(
        default=65535,
        ge=0,
        description="Response bodies are truncated to this many characters before storage",
    )

    # Retry configuration
    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Attempts after which a failing delivery becomes permanently failed",
    )
    retry_delays: list[int] = Field(
        default_factory=lambda: [60, 300, 900, 3600, 86400],
        min_length=1,
        description="Backoff schedule in seconds; the last entry repeats when exhausted",
    )
    permanent_failure_on_client_error: bool = Field(
        default=True,
        description="Treat 4xx responses (except 408 and 429) as permanent failures",
    )

    # Subscription validation
    block_private_addresses: bool = Field(
        default=True,
        description="Reject endpoint URLs whose host is a private, loopback or reserved IP literal",
    )

    # Retry sweep
    retry_sweep_batch_size: int = Field(
        default=500,
        ge=1,
        le=10000,
        description="Maximum deliveries re-enqueued per sweep",
    )
    retry_sweep_cron: str = Field(
        default="* * * * *",
        min_length=9,
        description="Cron expression for the scheduled retry sweep",
    )
    stale_pending_seconds: int = Field(
        default=600,
        ge=60,
        description="Pending deliveries older than this are re-enqueued by the sweep",
    )

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @field_validator("retry_delays")
    @classmethod
    def check_retry_delays(cls, v: list[int]) -> list[int]:
        """Delays must be positive."""
        if any(delay <= 0 for delay in v):
            raise ValueError("Retry delays must be positive")
        return v

    def retry_delay_for(self, attempt_count: int) -> int:
        """Backoff delay once a failed attempt has been counted.

        The post-increment count indexes the table, so the first retry waits
        ``retry_delays[1]`` and the last entry repeats.

        Args:
            attempt_count: Attempt count after the failed attempt was recorded.

        Returns:
            Seconds to wait before the next attempt.
        """
        index = min(max(attempt_count, 0), len(self.retry_delays) - 1)
        return self.retry_delays[index]


__all__ = ["WebhookSettings"]
