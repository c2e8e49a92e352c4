"""Webhook event types and payload builders.

The event-type enumeration is part of the contract with every subscriber:
adding or removing a member changes what all vendors can receive.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable


class WebhookEventType(str, Enum):
    """Domain events that can be delivered to subscribers."""

    EVENT_UPDATED = "event.updated"
    EVENT_CANCELLED = "event.cancelled"
    TICKET_PURCHASED = "ticket.purchased"
    TICKET_REFUNDED = "ticket.refunded"
    RSVP_CREATED = "rsvp.created"
    ATTENDEE_CHECKED_IN = "attendee.checked_in"
    EXPORT_READY = "export.ready"


# All available event types, in enumeration order
ALL_EVENT_TYPES: list[str] = [member.value for member in WebhookEventType]


def is_known_event_type(event_type: str) -> bool:
    """Return True if ``event_type`` belongs to the enumeration."""
    return event_type in ALL_EVENT_TYPES


def normalize_event_types(event_types: Iterable[str] | None) -> list[str]:
    """Intersect requested event types with the enumeration.

    Unknown values are dropped and duplicates collapse. The result keeps
    enumeration order. An empty request, or one with no known types,
    subscribes to every event type.

    Examples:
        >>> normalize_event_types(["rsvp.created", "bogus", "ticket.purchased"])
        ['ticket.purchased', 'rsvp.created']
        >>> normalize_event_types([]) == ALL_EVENT_TYPES
        True
    """
    requested = {str(getattr(t, "value", t)).strip() for t in event_types or ()}
    selected = [t for t in ALL_EVENT_TYPES if t in requested]
    return selected or list(ALL_EVENT_TYPES)


def build_event_payload(
    *,
    event_type: str,
    vendor_id: int,
    correlation_id: int | None,
    data: dict[str, Any] | None,
    timestamp: int,
) -> dict[str, Any]:
    """Build the body delivered to a subscriber.

    Key order is fixed so the serialized body is stable for auditing.

    Args:
        event_type: One of the enumerated event types.
        vendor_id: Owning vendor.
        correlation_id: Domain identifier of the triggering object (ticket,
            event, ...), or None.
        data: Event-specific data, opaque to the delivery engine.
        timestamp: Unix seconds, shared with the timestamp header.

    Returns:
        ``{"event_id", "vendor_id", "timestamp", "type", "data"}``
    """
    return {
        "event_id": correlation_id,
        "vendor_id": vendor_id,
        "timestamp": timestamp,
        "type": event_type,
        "data": data if data is not None else {},
    }


__all__ = [
    "ALL_EVENT_TYPES",
    "WebhookEventType",
    "build_event_payload",
    "is_known_event_type",
    "normalize_event_types",
]
