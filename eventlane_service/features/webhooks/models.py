"""SQLAlchemy models for the webhooks feature."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from eventlane_service.core.database import (
    StringArray,
    UTCDateTime,
    UUIDTimestampedBase,
    WebhookDeliveryStatus,
)


class WebhookSubscription(UUIDTimestampedBase):
    """A vendor's registered endpoint and the event types it receives.

    The secret is generated once at creation and is the HMAC key for every
    delivery to this endpoint.
    """

    __tablename__ = "webhook_subscriptions"

    vendor_id: Mapped[int] = mapped_column(
        Integer(), nullable=False, index=True, comment="Owning vendor"
    )
    endpoint_url: Mapped[str] = mapped_column(
        String(2048), nullable=False, comment="HTTPS URL receiving deliveries"
    )
    secret: Mapped[str] = mapped_column(
        String(128), nullable=False, comment="Hex-encoded HMAC secret"
    )
    event_types: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        default=list,
        comment="Event types this subscription receives",
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean(), default=True, nullable=False, comment="Whether deliveries are sent"
    )

    def __repr__(self) -> str:
        return f"<WebhookSubscription id={self.id} vendor_id={self.vendor_id} enabled={self.enabled}>"


class WebhookDelivery(UUIDTimestampedBase):
    """Delivery state for one event sent to one subscription.

    ``subscription_id`` is a plain column rather than a foreign key so that
    deleting a subscription leaves queued deliveries in place.
    """

    __tablename__ = "webhook_deliveries"
    __table_args__ = (
        Index("ix_webhook_deliveries_status_next_retry_at", "status", "next_retry_at"),
    )

    subscription_id: Mapped[UUID] = mapped_column(
        nullable=False, index=True, comment="Subscription this delivery targets"
    )
    event_type: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True, comment="Type of event being delivered"
    )
    vendor_id: Mapped[int] = mapped_column(
        Integer(), nullable=False, index=True, comment="Vendor that raised the event"
    )
    event_correlation_id: Mapped[int | None] = mapped_column(
        Integer(), nullable=True, comment="Domain identifier of the triggering object"
    )
    payload: Mapped[dict] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
        comment="Event data embedded in the delivered body",
    )
    status: Mapped[str] = mapped_column(
        WebhookDeliveryStatus,
        nullable=False,
        default="pending",
        comment="Delivery status: pending, success, retrying, failed",
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer(), default=0, nullable=False, comment="Number of delivery attempts made"
    )
    response_code: Mapped[int | None] = mapped_column(
        Integer(), nullable=True, comment="Last HTTP status code (0 when no response)"
    )
    response_body: Mapped[str | None] = mapped_column(
        Text(), nullable=True, comment="Last response body or error text (truncated)"
    )
    next_retry_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="Scheduled time for next attempt while retrying",
    )
    delivered_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="Time of successful delivery",
    )

    def __repr__(self) -> str:
        return (
            f"<WebhookDelivery id={self.id} status={self.status} "
            f"attempt_count={self.attempt_count}>"
        )
