from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Type, runtime_checkable

from ..normalize.schema import NormalizedResource, ResourceKind

if TYPE_CHECKING:  # pragma: no cover
    from ..openstack.clients import Session, Subsystem


def _param(name: str) -> Any:
    """Declare a filter field whose query parameter name differs from the attribute."""
    return field(default=None, metadata={"param": name})


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class ListFilter:
    """
    Base for the per-kind list options. Unset (None/empty) fields are not sent.
    """

    def to_query(self) -> Dict[str, str]:
        query: Dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "":
                continue
            query[f.metadata.get("param", f.name)] = _query_value(value)
        return query


@dataclass(frozen=True)
class RegionListFilter(ListFilter):
    parent_region_id: Optional[str] = None


@dataclass(frozen=True)
class ProjectListFilter(ListFilter):
    name: Optional[str] = None
    domain_id: Optional[str] = None
    enabled: Optional[bool] = None
    parent_id: Optional[str] = None


@dataclass(frozen=True)
class FlavorListFilter(ListFilter):
    is_public: Optional[bool] = None
    min_disk: Optional[int] = _param("minDisk")
    min_ram: Optional[int] = _param("minRam")


@dataclass(frozen=True)
class ImageListFilter(ListFilter):
    name: Optional[str] = None
    status: Optional[str] = None
    visibility: Optional[str] = None
    owner: Optional[str] = None


@dataclass(frozen=True)
class VMListFilter(ListFilter):
    name: Optional[str] = None
    status: Optional[str] = None
    all_tenants: Optional[bool] = None
    flavor: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class SnapshotListFilter(ListFilter):
    name: Optional[str] = None
    status: Optional[str] = None
    volume_id: Optional[str] = None
    all_tenants: Optional[bool] = None


@dataclass(frozen=True)
class VolumeListFilter(ListFilter):
    name: Optional[str] = None
    status: Optional[str] = None
    all_tenants: Optional[bool] = None


@dataclass(frozen=True)
class VolumeTypeListFilter(ListFilter):
    is_public: Optional[bool] = None


@dataclass(frozen=True)
class NetworkListFilter(ListFilter):
    name: Optional[str] = None
    status: Optional[str] = None
    project_id: Optional[str] = None
    shared: Optional[bool] = None
    router_external: Optional[bool] = _param("router:external")


@dataclass(frozen=True)
class SubnetListFilter(ListFilter):
    name: Optional[str] = None
    network_id: Optional[str] = None
    ip_version: Optional[int] = None
    cidr: Optional[str] = None


@runtime_checkable
class ResourceMapper(Protocol):
    """
    Per-kind list/get behaviour. Implementations are stateless; all state lives
    in the Session passed to each call.
    """

    kind: ResourceKind
    subsystem: "Subsystem"
    filter_cls: Type[ListFilter]

    def list(self, session: "Session", list_filter: ListFilter) -> List[NormalizedResource]:
        ...

    def get(self, session: "Session", resource_id: str) -> NormalizedResource:
        ...
