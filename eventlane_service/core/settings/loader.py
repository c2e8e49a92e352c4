"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from eventlane_service.core.settings.loader import get_webhook_settings

    settings = get_webhook_settings()  # First call: loads and validates
    settings = get_webhook_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_webhook_settings.cache_clear()

    Or construct directly with custom values:
    settings = WebhookSettings(max_retries=3)
"""

from __future__ import annotations

from functools import lru_cache

from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .webhooks import WebhookSettings


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen PostgresSettings instance.
    """
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings.

    Returns:
        Validated and frozen RabbitSettings instance.
    """
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_webhook_settings() -> WebhookSettings:
    """Get cached webhook delivery settings.

    Returns:
        Validated and frozen WebhookSettings instance.
    """
    return WebhookSettings()


def clear_all_caches() -> None:
    """Clear every cached settings instance (used by tests and reloads)."""
    get_db_settings.cache_clear()
    get_rabbit_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_webhook_settings.cache_clear()
