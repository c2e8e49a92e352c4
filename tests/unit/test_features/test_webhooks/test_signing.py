"""Tests for payload serialization and HMAC signatures."""

import hashlib
import hmac

from eventlane_service.features.webhooks.signing import canonical_json, sign, verify

SECRET = "a" * 64


def test_canonical_json_is_compact_and_unescaped() -> None:
    body = canonical_json({"type": "export.ready", "data": {"url": "https://x.test/a/b", "name": "Café"}})

    assert body == '{"type":"export.ready","data":{"url":"https://x.test/a/b","name":"Café"}}'.encode()


def test_canonical_json_preserves_insertion_order() -> None:
    assert canonical_json({"b": 1, "a": 2}) == b'{"b":1,"a":2}'


def test_sign_matches_hmac_sha256_hex() -> None:
    body = b'{"type":"rsvp.created"}'
    expected = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()

    signature = sign(body, SECRET)

    assert signature == expected
    assert len(signature) == 64
    assert signature == signature.lower()


def test_verify_round_trip() -> None:
    body = canonical_json({"event_id": 1})

    assert verify(body, sign(body, SECRET), SECRET)
    assert verify(body, sign(body, SECRET).upper(), SECRET)


def test_verify_rejects_tampering() -> None:
    body = canonical_json({"event_id": 1})
    signature = sign(body, SECRET)

    assert not verify(canonical_json({"event_id": 2}), signature, SECRET)
    assert not verify(body, signature, "b" * 64)
    assert not verify(body, "", SECRET)
