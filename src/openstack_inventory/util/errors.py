from __future__ import annotations

from typing import Any, Optional

from keystoneauth1.exceptions import ClientException
from requests.exceptions import RequestException


class InventoryError(Exception):
    """Base error for inventory retrieval."""


class ConfigError(InventoryError):
    """Raised for configuration or argument issues."""


class AuthError(InventoryError):
    """Raised when a Session cannot be built (credentials, auth type, trust store)."""


class UnsupportedAuthType(AuthError):
    def __init__(self, auth_type: str) -> None:
        self.auth_type = auth_type
        super().__init__(f"Unsupported authentication type: {auth_type!r}")


class TrustConfigurationError(AuthError):
    """Raised when neither the supplied CA certificate nor the system trust store can be loaded."""


class OpenStackClientError(InventoryError):
    """
    Raised when a control-plane call fails.
    Carries the HTTP status (when known) and the kind/id/operation being attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        kind: Optional[str] = None,
        resource_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind
        self.resource_id = resource_id
        self.operation = operation


class TransportError(OpenStackClientError):
    """Network, TLS or server-side failure mid-call."""


class Forbidden(OpenStackClientError):
    """The control-plane denied the request (HTTP 403)."""


class NotFound(OpenStackClientError):
    """The requested resource does not exist (HTTP 404)."""


class NoAuthResult(InventoryError):
    """The Session's authentication result does not expose the caller's identity."""


class ClassifiedAsUnsupported(InventoryError):
    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Unsupported resource kind: {value!r}")


_SDK_ERROR_TYPES = (ClientException, RequestException)


def is_openstack_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like a keystoneauth/requests transport error.
    """
    if isinstance(exc, _SDK_ERROR_TYPES):
        return True
    module = exc.__class__.__module__
    return module.startswith("keystoneauth1.") or module.startswith("requests.")


def _status_of(exc: BaseException) -> Optional[int]:
    for attr in ("http_status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def map_openstack_error(
    exc: BaseException,
    context: str,
    *,
    kind: Optional[str] = None,
    resource_id: Optional[str] = None,
    operation: Optional[str] = None,
) -> OpenStackClientError | None:
    """
    Classify a keystoneauth/requests error by HTTP status:
    404 -> NotFound, 403 -> Forbidden, anything else -> TransportError.
    Returns None for exceptions that did not come from the transport stack.
    """
    if not is_openstack_error(exc):
        return None
    status = _status_of(exc)
    if status == 404:
        cls: type[OpenStackClientError] = NotFound
    elif status == 403:
        cls = Forbidden
    else:
        cls = TransportError
    return cls(
        f"{context}: {exc}",
        status_code=status,
        kind=kind,
        resource_id=resource_id,
        operation=operation,
    )


def is_retryable(exc: BaseException) -> bool:
    """
    Configuration-class errors are never worth retrying; control-plane outcomes may be.
    """
    if isinstance(exc, (AuthError, ConfigError, NoAuthResult, ClassifiedAsUnsupported)):
        return False
    return isinstance(exc, (TransportError, Forbidden, NotFound))
