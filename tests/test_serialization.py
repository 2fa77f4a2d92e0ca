from __future__ import annotations

from datetime import datetime, timezone

from openstack_inventory.util.serialization import REDACTED_VALUE, sanitize_for_json


def test_sanitize_redacts_secrets_recursively() -> None:
    payload = {
        "username": "admin",
        "password": "hunter2",
        "applicationCredentialSecret": "s3cr3t",
        "nested": {"token": "gAAAA", "keep": 1},
        "cacert": "-----BEGIN CERTIFICATE-----",
    }
    out = sanitize_for_json(payload)
    assert out["username"] == "admin"
    assert out["password"] == REDACTED_VALUE
    assert out["applicationCredentialSecret"] == REDACTED_VALUE
    assert out["nested"] == {"token": REDACTED_VALUE, "keep": 1}
    assert out["cacert"] == REDACTED_VALUE


def test_sanitize_converts_datetimes_bytes_and_sequences() -> None:
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    out = sanitize_for_json({"created": ts, "blob": b"abc", "tags": ("a", "b"), "ids": {1}})
    assert out == {"created": ts.isoformat(), "blob": "abc", "tags": ["a", "b"], "ids": [1]}


def test_sanitize_uses_to_dict_when_available() -> None:
    class _Model:
        def to_dict(self):
            return {"id": "x", "adminPass": "p"}

    assert sanitize_for_json(_Model()) == {"id": "x", "adminPass": REDACTED_VALUE}
