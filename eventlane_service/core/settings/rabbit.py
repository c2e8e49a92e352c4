"""RabbitMQ settings for the taskiq webhook broker."""

from __future__ import annotations

from urllib.parse import quote, unquote, urlparse

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_NAME_PATTERN = r"^[a-zA-Z0-9_-]+$"


class RabbitSettings(BaseSettings):
    """Broker connection for webhook delivery tasks.

    Environment variables use RABBIT_ prefix; ``AMQP_URI`` overrides the
    individual connection fields.
    """

    enabled: bool = Field(default=True, description="Run webhook tasks through RabbitMQ")
    amqp_uri: str | None = Field(default=None, alias="AMQP_URI", description="Full AMQP URI")

    host: str = Field(default="localhost", min_length=1)
    port: int = Field(default=5672, ge=1, le=65535)
    username: str = Field(default="guest", min_length=1)
    password: SecretStr = Field(default=SecretStr("guest"))
    vhost: str = Field(default="/")
    ssl_enabled: bool = Field(default=False, description="Use amqps://")

    queue_prefix: str = Field(default="eventlane-service", pattern=_NAME_PATTERN)
    default_queue: str = Field(
        default="webhooks",
        pattern=_NAME_PATTERN,
        description="Queue consumed by webhook delivery workers",
    )

    model_config = SettingsConfigDict(
        env_prefix="RABBIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _apply_uri(self) -> RabbitSettings:
        """Copy connection fields out of ``amqp_uri`` (model is frozen)."""
        if not self.amqp_uri:
            return self

        parsed = urlparse(self.amqp_uri)
        overrides = {
            "host": parsed.hostname,
            "port": parsed.port,
            "username": unquote(parsed.username) if parsed.username else None,
            "password": SecretStr(unquote(parsed.password)) if parsed.password else None,
            "vhost": unquote(parsed.path.lstrip("/")) if parsed.path not in ("", "/") else None,
        }
        for key, value in overrides.items():
            if value is not None:
                object.__setattr__(self, key, value)
        if parsed.scheme == "amqps":
            object.__setattr__(self, "ssl_enabled", True)
        return self

    @property
    def url(self) -> str:
        """AMQP URI assembled from the connection fields."""
        auth = quote(self.username, safe="")
        password = self.password.get_secret_value()
        if password:
            auth += ":" + quote(password, safe="")
        vhost = self.vhost.strip("/")
        scheme = "amqps" if self.ssl_enabled else "amqp"
        return f"{scheme}://{auth}@{self.host}:{self.port}/{quote(vhost, safe='')}"

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.host)

    def get_url(self) -> str:
        """Broker URL.

        Raises:
            ValueError: If RabbitMQ is disabled.
        """
        if not self.enabled:
            raise ValueError("RabbitMQ is not enabled")
        return self.url

    def get_prefixed_queue(self, queue_name: str) -> str:
        return f"{self.queue_prefix}.{queue_name}"

    def get_full_queue_name(self) -> str:
        """Name of the webhook delivery queue."""
        return self.get_prefixed_queue(self.default_queue)
