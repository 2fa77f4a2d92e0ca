from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from keystoneauth1 import loading

from .. import config as cfgkeys
from ..config import ConnectConfig
from ..util.errors import AuthError, UnsupportedAuthType

DEFAULT_AUTH_TYPE = "password"

# Recognised authType values -> keystoneauth plugin names.
SUPPORTED_AUTH_TYPES: Dict[str, str] = {
    "password": "password",
    "v3password": "v3password",
    "token": "token",
    "v3token": "v3token",
    "v3applicationcredential": "v3applicationcredential",
}

PASSWORD_AUTH_TYPES = frozenset(("password", "v3password"))
TOKEN_AUTH_TYPES = frozenset(("token", "v3token"))
APPLICATION_CREDENTIAL_AUTH_TYPES = frozenset(("v3applicationcredential",))


@dataclass(frozen=True)
class AuthContext:
    """
    Resolved authentication: the auth type as configured and the keystoneauth
    plugin built from the secret.
    """

    auth_type: str
    plugin: Any


def resolve_auth_type(cfg: ConnectConfig) -> str:
    """
    Return the configured authType; an empty value means password auth.
    """
    configured = cfg.get(cfgkeys.AUTH_TYPE).strip()
    if not configured:
        return DEFAULT_AUTH_TYPE
    if configured not in SUPPORTED_AUTH_TYPES:
        raise UnsupportedAuthType(configured)
    return configured


def _scope_options(cfg: ConnectConfig) -> Dict[str, str]:
    opts = {
        "project_name": cfg.get(cfgkeys.PROJECT_NAME),
        "project_id": cfg.get(cfgkeys.PROJECT_ID),
        "project_domain_name": cfg.get(cfgkeys.PROJECT_DOMAIN_NAME),
        "project_domain_id": cfg.get(cfgkeys.PROJECT_DOMAIN_ID),
        "domain_name": cfg.get(cfgkeys.DOMAIN_NAME),
        "system_scope": cfg.get(cfgkeys.SYSTEM_SCOPE),
    }
    default_domain = cfg.get(cfgkeys.DEFAULT_DOMAIN)
    if default_domain and (opts["project_name"] or opts["project_id"]):
        if not opts["project_domain_name"] and not opts["project_domain_id"]:
            opts["project_domain_id"] = default_domain
    return opts


def _user_options(cfg: ConnectConfig) -> Dict[str, str]:
    opts = {
        "username": cfg.get(cfgkeys.USERNAME),
        "user_id": cfg.get(cfgkeys.USER_ID),
        "user_domain_name": cfg.get(cfgkeys.USER_DOMAIN_NAME),
        "user_domain_id": cfg.get(cfgkeys.USER_DOMAIN_ID),
    }
    default_domain = cfg.get(cfgkeys.DEFAULT_DOMAIN)
    if default_domain and not opts["user_domain_name"] and not opts["user_domain_id"]:
        opts["user_domain_id"] = default_domain
    return opts


def auth_options(cfg: ConnectConfig, auth_type: str) -> Dict[str, str]:
    """
    Build keystoneauth plugin options for auth_type from the secret.
    Empty values are dropped so they never override plugin defaults.
    """
    opts: Dict[str, str] = {"auth_url": cfg.url}
    opts.update(_scope_options(cfg))
    if auth_type in PASSWORD_AUTH_TYPES:
        opts.update(_user_options(cfg))
        opts["password"] = cfg.get(cfgkeys.PASSWORD)
    elif auth_type in TOKEN_AUTH_TYPES:
        opts["token"] = cfg.get(cfgkeys.TOKEN)
    elif auth_type in APPLICATION_CREDENTIAL_AUTH_TYPES:
        # A credential addressed by name needs its owning user to be resolvable.
        opts.update(_user_options(cfg))
        opts["application_credential_id"] = cfg.get(cfgkeys.APPLICATION_CREDENTIAL_ID)
        opts["application_credential_name"] = cfg.get(cfgkeys.APPLICATION_CREDENTIAL_NAME)
        opts["application_credential_secret"] = cfg.get(cfgkeys.APPLICATION_CREDENTIAL_SECRET)
    else:
        raise UnsupportedAuthType(auth_type)
    return {k: v for k, v in opts.items() if v}


def resolve_auth(cfg: ConnectConfig) -> AuthContext:
    """
    Resolve the configured auth type and build the matching keystoneauth plugin.
    Options the plugin does not understand (e.g. project scope on an application
    credential) are discarded rather than passed through.
    """
    auth_type = resolve_auth_type(cfg)
    opts = auth_options(cfg, auth_type)
    try:
        loader = loading.get_plugin_loader(SUPPORTED_AUTH_TYPES[auth_type])
        accepted = {o.dest for o in loader.get_options()}
        plugin = loader.load_from_options(**{k: v for k, v in opts.items() if k in accepted})
    except Exception as e:
        raise AuthError(f"Failed to build {auth_type} credentials: {e}") from e
    return AuthContext(auth_type=auth_type, plugin=plugin)
