"""PostgreSQL ENUM type definitions.

These are SQLAlchemy ENUM types, not Python enums. The Python enums used in
application logic live next to the models that use them.
"""

from __future__ import annotations

from sqlalchemy.dialects.postgresql import ENUM

WebhookDeliveryStatus = ENUM(
    "pending",
    "success",
    "retrying",
    "failed",
    name="webhookdeliverystatus",
    create_type=False,  # Created by the initial migration
)


__all__ = ["WebhookDeliveryStatus"]
