"""Payload serialization and HMAC signing.

Signatures are computed over the exact bytes placed on the wire, so the body
is serialized once and those bytes are both signed and sent.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_HEADER = "X-MyEventLane-Signature"
TIMESTAMP_HEADER = "X-MyEventLane-Timestamp"


def canonical_json(payload: dict[str, Any]) -> bytes:
    """Serialize ``payload`` to compact UTF-8 JSON.

    Insertion order is preserved; slashes and non-ASCII characters are
    written unescaped.
    """
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign(raw_body: bytes, secret: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of ``raw_body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify(raw_body: bytes, signature: str, secret: str) -> bool:
    """Check a signature in constant time.

    Args:
        raw_body: Exact bytes received.
        signature: Value of the signature header.
        secret: Subscription secret.

    Returns:
        True when the signature matches.
    """
    if not signature:
        return False
    expected = sign(raw_body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())


__all__ = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "canonical_json",
    "sign",
    "verify",
]
