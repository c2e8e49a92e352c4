"""Webhooks feature package."""

from .client import WebhookClient, WebhookDeliveryResult
from .dispatcher import WebhookDispatcher
from .events import (
    ALL_EVENT_TYPES,
    WebhookEventType,
    build_event_payload,
    is_known_event_type,
    normalize_event_types,
)
from .models import WebhookDelivery, WebhookSubscription
from .queue import TaskQueue
from .repository import (
    WebhookDeliveryRepository,
    WebhookSubscriptionRepository,
    get_webhook_delivery_repository,
    get_webhook_subscription_repository,
)
from .scheduler import WebhookRetryScheduler
from .schemas import (
    DeliveryOutcome,
    DeliveryStatus,
    SubscriptionCreate,
    SubscriptionCreated,
    SubscriptionSummary,
    SubscriptionUpdate,
    WebhookTask,
)
from .service import WebhookSubscriptionService
from .signing import canonical_json, sign, verify
from .worker import WebhookDeliveryWorker

__all__ = [
    "ALL_EVENT_TYPES",
    "DeliveryOutcome",
    "DeliveryStatus",
    "SubscriptionCreate",
    "SubscriptionCreated",
    "SubscriptionSummary",
    "SubscriptionUpdate",
    "TaskQueue",
    "WebhookClient",
    "WebhookDelivery",
    "WebhookDeliveryRepository",
    "WebhookDeliveryResult",
    "WebhookDeliveryWorker",
    "WebhookDispatcher",
    "WebhookEventType",
    "WebhookRetryScheduler",
    "WebhookSubscription",
    "WebhookSubscriptionRepository",
    "WebhookSubscriptionService",
    "WebhookTask",
    "build_event_payload",
    "canonical_json",
    "get_webhook_delivery_repository",
    "get_webhook_subscription_repository",
    "is_known_event_type",
    "normalize_event_types",
    "sign",
    "verify",
]
