from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Generator, List, Mapping, Optional, Tuple

from keystoneauth1 import adapter as ksa_adapter
from keystoneauth1 import session as ksa_session

from .. import config as cfgkeys
from ..auth.providers import resolve_auth
from ..auth.tls import build_http_session
from ..config import ConnectConfig, ScopeContext
from ..logging import get_logger
from ..util.errors import AuthError, ConfigError, TransportError, map_openstack_error
from ..util.pagination import next_link, paginate

if TYPE_CHECKING:  # pragma: no cover
    from ..normalize.schema import NormalizedResource

logger = get_logger(__name__)


class Subsystem(str, Enum):
    IDENTITY = "identity"
    COMPUTE = "compute"
    IMAGE = "image"
    NETWORK = "network"
    BLOCK_STORAGE = "block-storage"


# API version requested from the catalog per subsystem. Image stays unversioned:
# its next-page links are paths from the endpoint root ("/v2/images?marker=...").
ENDPOINT_VERSIONS: Dict[Subsystem, Optional[Tuple[int, int]]] = {
    Subsystem.IDENTITY: (3, 0),
    Subsystem.COMPUTE: (2, 1),
    Subsystem.IMAGE: None,
    Subsystem.NETWORK: (2, 0),
    Subsystem.BLOCK_STORAGE: (3, 0),
}


@dataclass(frozen=True)
class Session:
    """
    Authenticated handle to the control-plane plus one endpoint adapter per subsystem.
    All adapters share the same keystoneauth session (identity) and region.
    Read-only once built; safe to share between threads issuing list/get calls.
    """

    http: Any
    auth_result: Any
    endpoints: Mapping[Subsystem, Any]
    scope: ScopeContext

    def endpoint(self, subsystem: Subsystem) -> Any:
        try:
            return self.endpoints[subsystem]
        except KeyError:
            raise ConfigError(f"Session has no {subsystem.value} endpoint") from None

    def list(self, kind: Any, list_filter: Any = None) -> List["NormalizedResource"]:
        # Import here to avoid circular import at module load
        from ..dispatch import list_resources

        return list_resources(self, kind, list_filter)

    def get(self, kind: Any, resource_id: str) -> "NormalizedResource":
        from ..dispatch import get_resource

        return get_resource(self, kind, resource_id)


def make_endpoint(http: Any, subsystem: Subsystem, region: Optional[str]) -> Any:
    """
    Build the endpoint adapter for subsystem in region and check the catalog resolves it.
    """
    kwargs: Dict[str, Any] = {
        "session": http,
        "service_type": subsystem.value,
        "interface": "public",
        "region_name": region or None,
    }
    version = ENDPOINT_VERSIONS.get(subsystem)
    if version is not None:
        kwargs["version"] = version
    endpoint = ksa_adapter.Adapter(**kwargs)
    try:
        url = endpoint.get_endpoint()
    except Exception as e:
        raise AuthError(f"Failed to resolve the {subsystem.value} endpoint: {e}") from e
    if not url:
        raise AuthError(f"No {subsystem.value} endpoint in the service catalog for region {region!r}")
    return endpoint


def connect(cfg: ConnectConfig) -> Session:
    """
    Authenticate against identity, then derive every subsystem endpoint.
    Any failure is terminal: AuthError (or one of its subclasses) and no Session.
    """
    auth = resolve_auth(cfg)
    requests_session = build_http_session(cfg)
    http = ksa_session.Session(
        auth=auth.plugin,
        session=requests_session,
        verify=not cfg.insecure_skip_verify,
    )

    start = time.perf_counter()
    try:
        access = auth.plugin.get_access(http)
    except Exception as e:
        raise AuthError(f"Failed to authenticate against {cfg.url} ({auth.auth_type}): {e}") from e
    logger.info(
        "Authenticated against %s",
        cfg.url,
        extra={
            "step": "connect",
            "phase": "auth",
            "auth_type": auth.auth_type,
            "duration_ms": int((time.perf_counter() - start) * 1000),
        },
    )

    region = cfg.get(cfgkeys.REGION_NAME)
    endpoints = {subsystem: make_endpoint(http, subsystem, region) for subsystem in Subsystem}
    return Session(http=http, auth_result=access, endpoints=endpoints, scope=cfg.scope)


def get_json(
    session: Session,
    subsystem: Subsystem,
    url: str,
    *,
    context: str,
    params: Optional[Mapping[str, str]] = None,
    kind: Optional[str] = None,
    resource_id: Optional[str] = None,
    operation: Optional[str] = None,
) -> Dict[str, Any]:
    """
    GET url on the subsystem endpoint and decode the JSON body.
    keystoneauth/requests failures are classified into NotFound/Forbidden/TransportError.
    """
    endpoint = session.endpoint(subsystem)
    try:
        if params:
            resp = endpoint.get(url, params=dict(params))
        else:
            resp = endpoint.get(url)
    except Exception as e:
        mapped = map_openstack_error(
            e, context, kind=kind, resource_id=resource_id, operation=operation
        )
        if mapped:
            raise mapped from e
        raise
    try:
        body = resp.json()
    except ValueError as e:
        raise TransportError(
            f"{context}: response is not JSON",
            status_code=getattr(resp, "status_code", None),
            kind=kind,
            resource_id=resource_id,
            operation=operation,
        ) from e
    if not isinstance(body, dict):
        raise TransportError(
            f"{context}: unexpected response body",
            kind=kind,
            resource_id=resource_id,
            operation=operation,
        )
    return body


def iter_collection(
    session: Session,
    subsystem: Subsystem,
    path: str,
    collection: str,
    *,
    context: str,
    params: Optional[Mapping[str, str]] = None,
    kind: Optional[str] = None,
    links_key: Optional[str] = None,
) -> Generator[Dict[str, Any], None, None]:
    """
    Yield raw items from every page of a collection, following next links until exhausted.
    The first page is requested with params; next links already carry the query.
    """

    def fetch(page: Optional[str]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        if page is None:
            body = get_json(session, subsystem, path, context=context, params=params, kind=kind, operation="list")
        else:
            body = get_json(session, subsystem, page, context=context, kind=kind, operation="list")
        items = body.get(collection) or []
        if not isinstance(items, list):
            raise TransportError(f"{context}: '{collection}' is not a list", kind=kind, operation="list")
        return items, next_link(body, collection, links_key)

    yield from paginate(fetch)
