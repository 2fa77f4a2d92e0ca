from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .util.serialization import sanitize_for_json

# ------------------
# Secret key names
# ------------------
REGION_NAME = "regionName"
AUTH_TYPE = "authType"
USERNAME = "username"
USER_ID = "userID"
PASSWORD = "password"
APPLICATION_CREDENTIAL_ID = "applicationCredentialID"
APPLICATION_CREDENTIAL_NAME = "applicationCredentialName"
APPLICATION_CREDENTIAL_SECRET = "applicationCredentialSecret"
TOKEN = "token"
SYSTEM_SCOPE = "systemScope"
PROJECT_NAME = "projectName"
PROJECT_ID = "projectID"
USER_DOMAIN_NAME = "userDomainName"
USER_DOMAIN_ID = "userDomainID"
PROJECT_DOMAIN_NAME = "projectDomainName"
PROJECT_DOMAIN_ID = "projectDomainID"
DOMAIN_NAME = "domainName"
DEFAULT_DOMAIN = "defaultDomain"
INSECURE_SKIP_VERIFY = "insecureSkipVerify"
CA_CERT = "cacert"

SECRET_KEYS = frozenset(
    (
        REGION_NAME,
        AUTH_TYPE,
        USERNAME,
        USER_ID,
        PASSWORD,
        APPLICATION_CREDENTIAL_ID,
        APPLICATION_CREDENTIAL_NAME,
        APPLICATION_CREDENTIAL_SECRET,
        TOKEN,
        SYSTEM_SCOPE,
        PROJECT_NAME,
        PROJECT_ID,
        USER_DOMAIN_NAME,
        USER_DOMAIN_ID,
        PROJECT_DOMAIN_NAME,
        PROJECT_DOMAIN_ID,
        DOMAIN_NAME,
        DEFAULT_DOMAIN,
        INSECURE_SKIP_VERIFY,
        CA_CERT,
    )
)

# Standard OpenStack client environment variables -> secret keys.
OS_ENV_KEYS: Dict[str, str] = {
    "OS_REGION_NAME": REGION_NAME,
    "OS_AUTH_TYPE": AUTH_TYPE,
    "OS_USERNAME": USERNAME,
    "OS_USER_ID": USER_ID,
    "OS_PASSWORD": PASSWORD,
    "OS_APPLICATION_CREDENTIAL_ID": APPLICATION_CREDENTIAL_ID,
    "OS_APPLICATION_CREDENTIAL_NAME": APPLICATION_CREDENTIAL_NAME,
    "OS_APPLICATION_CREDENTIAL_SECRET": APPLICATION_CREDENTIAL_SECRET,
    "OS_TOKEN": TOKEN,
    "OS_SYSTEM_SCOPE": SYSTEM_SCOPE,
    "OS_PROJECT_NAME": PROJECT_NAME,
    "OS_PROJECT_ID": PROJECT_ID,
    "OS_USER_DOMAIN_NAME": USER_DOMAIN_NAME,
    "OS_USER_DOMAIN_ID": USER_DOMAIN_ID,
    "OS_PROJECT_DOMAIN_NAME": PROJECT_DOMAIN_NAME,
    "OS_PROJECT_DOMAIN_ID": PROJECT_DOMAIN_ID,
    "OS_DOMAIN_NAME": DOMAIN_NAME,
    "OS_DEFAULT_DOMAIN": DEFAULT_DOMAIN,
    "OS_INSECURE": INSECURE_SKIP_VERIFY,
}

# --------
# Defaults
# --------
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_POOL_SIZE = 10
ALLOWED_CONFIG_KEYS = {"url", "secret", "connect_timeout", "read_timeout", "pool_size"}
FLOAT_CONFIG_KEYS = {"connect_timeout", "read_timeout"}

TRUE_STRINGS = {"1", "t", "true", "yes", "on"}


@dataclass(frozen=True)
class ScopeContext:
    """The single project/region a Session operates within."""

    project_name: str
    region_name: str


@dataclass(frozen=True)
class ConnectConfig:
    """
    Everything needed to build a Session.
    The secret is an opaque string map; absent keys read as "".
    """

    url: str
    secret: Mapping[str, str] = field(default_factory=dict)
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: Optional[float] = None  # None keeps reads unbounded after the handshake
    pool_size: int = DEFAULT_POOL_SIZE

    def get(self, key: str) -> str:
        value = self.secret.get(key)
        if value is None:
            return ""
        return value

    @property
    def insecure_skip_verify(self) -> bool:
        raw = self.get(INSECURE_SKIP_VERIFY).strip().lower()
        return raw in TRUE_STRINGS

    @property
    def scope(self) -> ScopeContext:
        return ScopeContext(project_name=self.get(PROJECT_NAME), region_name=self.get(REGION_NAME))


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_float(name: str) -> Optional[float]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _secret_value(key: str, value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"Secret field '{key}' must be a string")


def _coerce_float(key: str, value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be a number")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key == "secret":
            if not isinstance(value, dict):
                raise ValueError("Config field 'secret' must be a mapping")
            unknown_secret = sorted(set(value.keys()) - SECRET_KEYS)
            if unknown_secret:
                warnings.warn(f"Unknown secret keys ignored: {', '.join(unknown_secret)}")
            normalized[key] = {
                k: _secret_value(k, v) for k, v in value.items() if k in SECRET_KEYS and v is not None
            }
        elif key in FLOAT_CONFIG_KEYS:
            normalized[key] = _coerce_float(key, value)
        elif key == "pool_size":
            normalized[key] = _coerce_int(key, value)
        elif isinstance(value, str):
            normalized[key] = value
        else:
            raise ValueError(f"Config field '{key}' must be a string")
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _secret_from_os_env() -> Dict[str, str]:
    secret: Dict[str, str] = {}
    for env_name, key in OS_ENV_KEYS.items():
        value = _env_str(env_name)
        if value is not None:
            secret[key] = value
    cacert_path = _env_str("OS_CACERT")
    if cacert_path:
        secret[CA_CERT] = Path(cacert_path).read_text(encoding="utf-8")
    return secret


def load_connect_config(path: Optional[Path] = None) -> ConnectConfig:
    """
    Build ConnectConfig by merging defaults, optional config file and environment.
    Precedence (low -> high): defaults < config file < OS_* env < OSP_INV_* env.

    Secret maps are merged key by key, so OS_PASSWORD can supply the one value a
    checked-in config file leaves out.
    """
    base: Dict[str, Any] = {
        "url": "",
        "secret": {},
        "connect_timeout": DEFAULT_CONNECT_TIMEOUT,
        "read_timeout": None,
        "pool_size": DEFAULT_POOL_SIZE,
    }

    file_cfg: Dict[str, Any] = {}
    if path is not None:
        file_cfg = _normalize_config_file(_parse_config_file(Path(path)))

    os_cfg: Dict[str, Any] = _compact_dict({"url": _env_str("OS_AUTH_URL")})
    os_secret = _secret_from_os_env()

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "url": _env_str("OSP_INV_URL"),
            "connect_timeout": _env_float("OSP_INV_CONNECT_TIMEOUT"),
            "read_timeout": _env_float("OSP_INV_READ_TIMEOUT"),
            "pool_size": _env_int("OSP_INV_POOL_SIZE"),
        }
    )

    merged = dict(base)
    for layer in (file_cfg, os_cfg, env_cfg):
        merged.update({k: v for k, v in layer.items() if k != "secret"})
    secret: Dict[str, str] = {}
    secret.update(file_cfg.get("secret") or {})
    secret.update(os_secret)

    url = str(merged.get("url") or "").strip()
    if not url:
        raise ValueError("Identity endpoint URL is required (config 'url', OS_AUTH_URL or OSP_INV_URL)")
    pool_size = int(merged["pool_size"] or DEFAULT_POOL_SIZE)
    if pool_size < 1:
        raise ValueError("Config field 'pool_size' must be >= 1")

    return ConnectConfig(
        url=url,
        secret=secret,
        connect_timeout=float(merged["connect_timeout"] or DEFAULT_CONNECT_TIMEOUT),
        read_timeout=merged.get("read_timeout"),
        pool_size=pool_size,
    )


def dump_config(cfg: ConnectConfig) -> Dict[str, Any]:
    return {
        "url": cfg.url,
        "secret": sanitize_for_json(dict(cfg.secret)),
        "connect_timeout": cfg.connect_timeout,
        "read_timeout": cfg.read_timeout,
        "pool_size": cfg.pool_size,
    }
