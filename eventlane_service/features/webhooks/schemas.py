"""Pydantic schemas for the webhooks feature."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from eventlane_service.core.validators import validate_endpoint_url
from eventlane_service.features.webhooks.events import normalize_event_types


class DeliveryStatus(str, Enum):
    """Webhook delivery status enumeration."""

    PENDING = "pending"
    SUCCESS = "success"
    RETRYING = "retrying"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeliveryStatus.SUCCESS, DeliveryStatus.FAILED)


ACTIVE_STATUSES: tuple[str, ...] = (DeliveryStatus.PENDING.value, DeliveryStatus.RETRYING.value)
TERMINAL_STATUSES: tuple[str, ...] = (DeliveryStatus.SUCCESS.value, DeliveryStatus.FAILED.value)


class DeliveryOutcome(str, Enum):
    """What a single worker invocation did with a delivery task."""

    SKIPPED = "skipped"
    SUCCESS = "success"
    RETRYING = "retrying"
    FAILED = "failed"


class SubscriptionCreate(BaseModel):
    """Payload used when registering a subscription."""

    vendor_id: int = Field(..., description="Owning vendor")
    endpoint_url: str = Field(..., max_length=2048, description="HTTPS URL receiving deliveries")
    event_types: list[str] = Field(
        default_factory=list,
        description="Event types to receive; empty means all",
    )

    @field_validator("endpoint_url")
    @classmethod
    def check_endpoint_url(cls, v: str) -> str:
        """Require an absolute https URL with a host."""
        return validate_endpoint_url(v, block_private=False)

    @field_validator("event_types")
    @classmethod
    def check_event_types(cls, v: list[str]) -> list[str]:
        """Restrict to the known enumeration (empty means all)."""
        return normalize_event_types(v)


class SubscriptionUpdate(BaseModel):
    """Partial update; fields left as None are unchanged."""

    endpoint_url: str | None = Field(None, max_length=2048, description="New endpoint URL")
    event_types: list[str] | None = Field(None, description="Replacement event types")
    enabled: bool | None = Field(None, description="Enable or disable deliveries")

    @field_validator("endpoint_url")
    @classmethod
    def check_endpoint_url(cls, v: str | None) -> str | None:
        """Require an absolute https URL with a host."""
        if v is None:
            return None
        return validate_endpoint_url(v, block_private=False)

    @field_validator("event_types")
    @classmethod
    def check_event_types(cls, v: list[str] | None) -> list[str] | None:
        """Restrict to the known enumeration (empty means all)."""
        if v is None:
            return None
        return normalize_event_types(v)

    def changes(self) -> dict[str, Any]:
        """Fields that were actually provided."""
        return self.model_dump(exclude_none=True)


class SubscriptionCreated(BaseModel):
    """Creation response. The only representation that carries the secret."""

    id: UUID
    secret: str = Field(..., description="HMAC secret; shown once")


class SubscriptionSummary(BaseModel):
    """Subscription as listed to its vendor (never includes the secret)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    vendor_id: int
    endpoint_url: str
    event_types: list[str]
    enabled: bool
    created_at: datetime
    updated_at: datetime


class WebhookDeliveryRead(BaseModel):
    """Representation of a delivery record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    subscription_id: UUID
    event_type: str
    vendor_id: int
    event_correlation_id: int | None
    payload: dict
    status: DeliveryStatus
    attempt_count: int
    response_code: int | None
    response_body: str | None
    next_retry_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime


class WebhookTask(BaseModel):
    """Message placed on the task queue for one delivery attempt."""

    delivery_id: UUID
    subscription_id: UUID
    event_type: str
    vendor_id: int
    correlation_id: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        """JSON-safe keyword arguments for the queue."""
        return self.model_dump(mode="json")


__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "DeliveryOutcome",
    "DeliveryStatus",
    "SubscriptionCreate",
    "SubscriptionCreated",
    "SubscriptionSummary",
    "SubscriptionUpdate",
    "WebhookDeliveryRead",
    "WebhookTask",
]
