"""Modular Pydantic Settings v2 configuration.

Settings are split by domain (db/broker/logging/webhooks), read from
environment variables or a .env file, frozen once loaded, and cached by the
loaders in ``loader``:

    from eventlane_service.core.settings import get_webhook_settings

    settings = get_webhook_settings()
    print(settings.retry_delays)
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_db_settings,
    get_logging_settings,
    get_rabbit_settings,
    get_webhook_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings
from .webhooks import WebhookSettings

__all__ = [
    "LoggingSettings",
    "PostgresSettings",
    "RabbitSettings",
    "WebhookSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_logging_settings",
    "get_rabbit_settings",
    "get_webhook_settings",
]
