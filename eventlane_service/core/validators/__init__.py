"""Reusable validators for schema and service classes.

Usage:
    from eventlane_service.core.validators import validate_endpoint_url

    url = validate_endpoint_url("https://hooks.example.com/in")
"""

from __future__ import annotations

from eventlane_service.core.validators.webhooks import (
    InvalidEndpointError,
    validate_endpoint_url,
)

__all__ = [
    "InvalidEndpointError",
    "validate_endpoint_url",
]
