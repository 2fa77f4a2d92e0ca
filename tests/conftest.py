from __future__ import annotations

import types
from typing import Any, Dict, List, Optional, Tuple

import pytest

from openstack_inventory.config import ScopeContext
from openstack_inventory.openstack.clients import Session, Subsystem


class FakeResponse:
    def __init__(self, body: Any) -> None:
        self._body = body
        self.status_code = 200

    def json(self) -> Any:
        return self._body


class FakeEndpoint:
    """
    Stand-in for a keystoneauth Adapter: maps request URLs to JSON bodies or
    exceptions and records every call in order.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None) -> None:
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []

    def get(self, url: str, params: Optional[Dict[str, str]] = None) -> FakeResponse:
        self.calls.append((url, params))
        if url not in self.routes:
            raise AssertionError(f"unexpected request: {url}")
        result = self.routes[url]
        if isinstance(result, BaseException):
            raise result
        return FakeResponse(result)

    @property
    def urls(self) -> List[str]:
        return [url for url, _ in self.calls]


def build_session(
    routes: Optional[Dict[Subsystem, Dict[str, Any]]] = None,
    *,
    project_name: str = "acme",
    region_name: str = "RegionOne",
    user_id: Optional[str] = "user-1",
) -> Session:
    routes = routes or {}
    endpoints = {subsystem: FakeEndpoint(routes.get(subsystem)) for subsystem in Subsystem}
    auth_result = types.SimpleNamespace(user_id=user_id) if user_id is not None else None
    return Session(
        http=None,
        auth_result=auth_result,
        endpoints=endpoints,
        scope=ScopeContext(project_name=project_name, region_name=region_name),
    )


@pytest.fixture
def make_session():
    return build_session
