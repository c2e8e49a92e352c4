"""Webhook validators.

Validation for subscriber endpoint URLs. Signatures and shared secrets
travel with every delivery, so only HTTPS endpoints are accepted.
"""

from __future__ import annotations

import ipaddress
from urllib.parse import urlparse


class InvalidEndpointError(ValueError):
    """Endpoint URL rejected for webhook delivery."""


def validate_endpoint_url(url: str, *, block_private: bool = True) -> str:
    """Validate a webhook endpoint URL.

    Args:
        url: Candidate endpoint URL.
        block_private: Reject hosts given as private, loopback, link-local,
            reserved or unspecified IP literals.

    Returns:
        The URL with surrounding whitespace stripped.

    Raises:
        InvalidEndpointError: If the URL is not an absolute https URL with a
            host, or points to a blocked address.
    """
    if not isinstance(url, str):
        raise InvalidEndpointError("Endpoint URL must be a string")

    candidate = url.strip()
    try:
        parsed = urlparse(candidate)
        hostname = parsed.hostname
        # Accessing .port validates it
        _ = parsed.port
    except ValueError as e:
        raise InvalidEndpointError(f"Malformed endpoint URL: {candidate!r}") from e

    if parsed.scheme.lower() != "https":
        raise InvalidEndpointError("Endpoint URL must use https")
    if not hostname:
        raise InvalidEndpointError("Invalid URL: missing hostname")

    if not block_private:
        return candidate

    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        # Domain names are not resolved here
        return candidate

    if ip.is_private:
        raise InvalidEndpointError(
            f"Webhook URL cannot point to private IP address: {hostname}"
        )
    if ip.is_loopback:
        raise InvalidEndpointError(
            f"Webhook URL cannot point to loopback address: {hostname}"
        )
    if ip.is_link_local:
        raise InvalidEndpointError(
            f"Webhook URL cannot point to link-local address: {hostname}"
        )
    if ip.is_reserved or ip.is_unspecified or ip.is_multicast:
        raise InvalidEndpointError(
            f"Webhook URL cannot point to reserved IP address: {hostname}"
        )
    return candidate


__all__ = [
    "InvalidEndpointError",
    "validate_endpoint_url",
]
