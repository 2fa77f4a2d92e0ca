from __future__ import annotations

import ssl
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter

from .. import config as cfgkeys
from ..config import ConnectConfig
from ..logging import get_logger
from ..util.errors import TrustConfigurationError

logger = get_logger(__name__)


class TransportAdapter(HTTPAdapter):
    """
    HTTPAdapter with a pinned trust context, a sized connection pool and a
    default (connect, read) timeout for requests that do not set their own.
    """

    def __init__(
        self,
        *,
        pool_size: int,
        connect_timeout: float,
        read_timeout: Optional[float] = None,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        # HTTPAdapter.__init__ builds the pool manager, so these must exist first.
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.ssl_context = ssl_context
        super().__init__(pool_connections=pool_size, pool_maxsize=pool_size)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        if self.ssl_context is not None:
            kwargs["ssl_context"] = self.ssl_context
        super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy: str, **proxy_kwargs: Any) -> Any:
        if self.ssl_context is not None:
            proxy_kwargs["ssl_context"] = self.ssl_context
        return super().proxy_manager_for(proxy, **proxy_kwargs)

    def send(self, request: Any, timeout: Any = None, **kwargs: Any) -> Any:  # type: ignore[override]
        if timeout is None:
            timeout = (self.connect_timeout, self.read_timeout)
        return super().send(request, timeout=timeout, **kwargs)


def system_trust_context() -> ssl.SSLContext:
    """
    Trust context backed by the CA bundle requests ships with.
    """
    bundle = requests.utils.DEFAULT_CA_BUNDLE_PATH
    try:
        return ssl.create_default_context(cafile=bundle)
    except (OSError, ssl.SSLError) as e:
        raise TrustConfigurationError(f"Failed to configure the system trust store from {bundle}: {e}") from e


def load_trust_context(cacert: str) -> ssl.SSLContext:
    """
    Trust only the supplied PEM bundle. Absent or malformed PEM falls back to
    the system trust store.
    """
    pem = (cacert or "").strip()
    if not pem:
        logger.info("No CA certificate provided, falling back to the system trust store")
        return system_trust_context()
    try:
        return ssl.create_default_context(cadata=pem)
    except (ssl.SSLError, ValueError) as e:
        logger.info("The CA certificate is malformed (%s), falling back to the system trust store", e)
        return system_trust_context()


def build_http_session(cfg: ConnectConfig) -> requests.Session:
    """
    requests.Session used underneath the keystoneauth session.
    Verification is left to keystoneauth (verify=False there when insecureSkipVerify is set).
    """
    ssl_context: Optional[ssl.SSLContext] = None
    if cfg.insecure_skip_verify:
        logger.warning("TLS verification disabled by %s", cfgkeys.INSECURE_SKIP_VERIFY)
    else:
        ssl_context = load_trust_context(cfg.get(cfgkeys.CA_CERT))

    adapter = TransportAdapter(
        pool_size=cfg.pool_size,
        connect_timeout=cfg.connect_timeout,
        read_timeout=cfg.read_timeout,
        ssl_context=ssl_context,
    )
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session
