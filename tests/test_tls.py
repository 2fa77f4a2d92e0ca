from __future__ import annotations

import ssl

import pytest
import requests
from requests.adapters import HTTPAdapter

from openstack_inventory.auth import tls
from openstack_inventory.config import ConnectConfig
from openstack_inventory.util.errors import AuthError, TrustConfigurationError


def test_missing_cacert_falls_back_to_system_store(monkeypatch) -> None:
    sentinel = object()
    monkeypatch.setattr(tls, "system_trust_context", lambda: sentinel)
    assert tls.load_trust_context("") is sentinel


def test_malformed_cacert_falls_back_to_system_store(monkeypatch) -> None:
    sentinel = object()
    monkeypatch.setattr(tls, "system_trust_context", lambda: sentinel)
    assert tls.load_trust_context("-----BEGIN CERTIFICATE-----\nnot base64\n-----END CERTIFICATE-----\n") is sentinel


def test_system_store_unavailable_is_a_trust_error(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(requests.utils, "DEFAULT_CA_BUNDLE_PATH", str(tmp_path / "missing.pem"))
    with pytest.raises(TrustConfigurationError) as exc_info:
        tls.load_trust_context("")
    assert isinstance(exc_info.value, AuthError)


def test_system_store_loads_requests_bundle() -> None:
    assert isinstance(tls.system_trust_context(), ssl.SSLContext)


def test_insecure_session_has_no_trust_context(monkeypatch) -> None:
    def _fail(_pem):
        raise AssertionError("trust store must not be consulted")

    monkeypatch.setattr(tls, "load_trust_context", _fail)
    session = tls.build_http_session(ConnectConfig(url="u", secret={"insecureSkipVerify": "true"}, pool_size=3))
    adapter = session.get_adapter("https://keystone")
    assert isinstance(adapter, tls.TransportAdapter)
    assert adapter.ssl_context is None
    assert adapter.connect_timeout == 10.0


def test_secure_session_pins_trust_context(monkeypatch) -> None:
    ctx = ssl.create_default_context()
    monkeypatch.setattr(tls, "load_trust_context", lambda pem: ctx)
    session = tls.build_http_session(ConnectConfig(url="u", secret={"cacert": "pem"}))
    assert session.get_adapter("https://keystone").ssl_context is ctx
    assert session.get_adapter("http://keystone").ssl_context is ctx


def test_adapter_applies_default_timeouts(monkeypatch) -> None:
    seen = []

    def _send(self, request, timeout=None, **kwargs):
        seen.append(timeout)
        return "response"

    monkeypatch.setattr(HTTPAdapter, "send", _send)
    adapter = tls.TransportAdapter(pool_size=1, connect_timeout=10.0, read_timeout=None)

    assert adapter.send(object()) == "response"
    assert adapter.send(object(), timeout=5) == "response"
    assert seen == [(10.0, None), 5]
