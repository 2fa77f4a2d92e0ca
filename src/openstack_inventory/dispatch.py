from __future__ import annotations

import time
from dataclasses import fields
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional

from .logging import get_logger
from .normalize.schema import NormalizedResource, ResourceKind
from .openstack.clients import Session
from .openstack.scope import get_user_project, list_user_projects
from .resources import get_mapper_for
from .resources.base import ListFilter, ResourceMapper
from .util.errors import ConfigError, Forbidden, InventoryError

logger = get_logger(__name__)


class ScopeFallback(NamedTuple):
    list: Callable[[Session], List[NormalizedResource]]
    get: Callable[[Session, str], NormalizedResource]


# Kinds whose broad listing may be denied to non-privileged identities and that
# can be reconstructed from the caller's own identity instead.
SCOPE_FALLBACKS: Dict[ResourceKind, ScopeFallback] = {
    ResourceKind.PROJECT: ScopeFallback(list=list_user_projects, get=get_user_project),
}


def _resolve_filter(mapper: ResourceMapper, list_filter: Any) -> ListFilter:
    filter_cls = mapper.filter_cls
    if list_filter is None:
        return filter_cls()
    if isinstance(list_filter, filter_cls):
        return list_filter
    if isinstance(list_filter, Mapping):
        known = {f.name for f in fields(filter_cls)}
        unknown = sorted(str(k) for k in list_filter.keys() if k not in known)
        if unknown:
            raise ConfigError(
                f"Unknown {mapper.kind.value} filter options: {', '.join(unknown)}"
            )
        return filter_cls(**dict(list_filter))
    raise ConfigError(
        f"{mapper.kind.value} filter must be {filter_cls.__name__} or a mapping, got {type(list_filter).__name__}"
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def list_resources(session: Session, kind: Any, list_filter: Any = None) -> List[NormalizedResource]:
    """
    List every resource of kind, walking all pages.

    A Forbidden outcome is replaced by the scope fallback only for kinds in
    SCOPE_FALLBACKS; every other error reaches the caller unchanged.
    """
    resolved = ResourceKind.parse(kind)
    mapper = get_mapper_for(resolved)
    flt = _resolve_filter(mapper, list_filter)
    log_extra = {"step": "list", "kind": resolved.value}
    logger.debug("Listing %s resources", resolved.value, extra={**log_extra, "phase": "start"})

    start = time.perf_counter()
    try:
        try:
            items = mapper.list(session, flt)
        except Forbidden:
            fallback = SCOPE_FALLBACKS.get(resolved)
            if fallback is None:
                raise
            logger.info(
                "Listing %s resources is forbidden, falling back to the caller's own scope",
                resolved.value,
                extra={**log_extra, "phase": "fallback"},
            )
            items = fallback.list(session)
    except InventoryError as e:
        logger.debug("Listing %s resources failed: %s", resolved.value, e, extra={**log_extra, "phase": "error"})
        raise

    logger.info(
        "Listed %d %s resources",
        len(items),
        resolved.value,
        extra={**log_extra, "phase": "done", "duration_ms": _elapsed_ms(start)},
    )
    return items


def get_resource(session: Session, kind: Any, resource_id: Optional[str]) -> NormalizedResource:
    """
    Get one resource of kind by id. Not-found surfaces as NotFound.
    """
    resolved = ResourceKind.parse(kind)
    mapper = get_mapper_for(resolved)
    if not resource_id:
        raise ConfigError(f"A {resolved.value} id is required")
    log_extra = {"step": "get", "kind": resolved.value}
    logger.debug("Getting %s %s", resolved.value, resource_id, extra={**log_extra, "phase": "start"})

    start = time.perf_counter()
    try:
        try:
            item = mapper.get(session, resource_id)
        except Forbidden:
            fallback = SCOPE_FALLBACKS.get(resolved)
            if fallback is None:
                raise
            logger.info(
                "Getting %s %s is forbidden, falling back to the caller's own scope",
                resolved.value,
                resource_id,
                extra={**log_extra, "phase": "fallback"},
            )
            item = fallback.get(session, resource_id)
    except InventoryError as e:
        logger.debug("Getting %s %s failed: %s", resolved.value, resource_id, e, extra={**log_extra, "phase": "error"})
        raise

    logger.debug(
        "Got %s %s",
        resolved.value,
        resource_id,
        extra={**log_extra, "phase": "done", "duration_ms": _elapsed_ms(start)},
    )
    return item
