from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type
from urllib.parse import quote

from ..normalize.schema import NormalizedResource, ResourceKind
from ..openstack.clients import Session, Subsystem, get_json, iter_collection
from ..util.errors import NotFound, TransportError
from . import register_mapper
from .base import (
    FlavorListFilter,
    ImageListFilter,
    ListFilter,
    NetworkListFilter,
    ProjectListFilter,
    RegionListFilter,
    SnapshotListFilter,
    SubnetListFilter,
    VMListFilter,
    VolumeListFilter,
    VolumeTypeListFilter,
)


@dataclass(frozen=True)
class CollectionMapper:
    """
    Lists a paginated collection and gets single items from one subsystem.

    collection_key is the list key in page bodies (and the prefix of the
    "<key>_links" cursor unless links_key names it); item_key wraps
    single-item bodies, None when the service returns the item bare.
    """

    kind: ResourceKind
    subsystem: Subsystem
    filter_cls: Type[ListFilter]
    collection_path: str
    item_path: str
    collection_key: str
    item_key: Optional[str]
    links_key: Optional[str] = None

    def list(self, session: Session, list_filter: ListFilter) -> List[NormalizedResource]:
        raws = list(
            iter_collection(
                session,
                self.subsystem,
                self.collection_path,
                self.collection_key,
                context=f"OpenStack error while listing {self.kind.value} resources",
                params=self.query_for(session, list_filter),
                kind=self.kind.value,
                links_key=self.links_key,
            )
        )
        # Pages are walked to the end before any per-item work so a paging error
        # never leaves half-enriched results behind.
        return [self.normalize(session, raw) for raw in raws]

    def get(self, session: Session, resource_id: str) -> NormalizedResource:
        body = get_json(
            session,
            self.subsystem,
            self.item_path.format(id=quote(resource_id, safe="")),
            context=f"OpenStack error while getting {self.kind.value} {resource_id}",
            kind=self.kind.value,
            resource_id=resource_id,
            operation="get",
        )
        raw = body.get(self.item_key) if self.item_key else body
        if not isinstance(raw, dict):
            raise TransportError(
                f"Unexpected response while getting {self.kind.value} {resource_id}",
                kind=self.kind.value,
                resource_id=resource_id,
                operation="get",
            )
        return self.normalize(session, raw)

    def query_for(self, session: Session, list_filter: ListFilter) -> Dict[str, str]:
        return list_filter.to_query()

    def normalize(self, session: Session, raw: Dict[str, Any]) -> NormalizedResource:
        return NormalizedResource.from_raw(self.kind, raw)

    def out_of_scope(self, resource_id: str) -> NotFound:
        return NotFound(
            f"{self.kind.value} {resource_id} is outside the session scope",
            status_code=404,
            kind=self.kind.value,
            resource_id=resource_id,
            operation="get",
        )


class RegionMapper(CollectionMapper):
    """Only the configured region is visible."""

    def list(self, session: Session, list_filter: ListFilter) -> List[NormalizedResource]:
        region_name = session.scope.region_name
        # TODO: return every region once sessions can span several regions.
        return [r for r in super().list(session, list_filter) if r.id == region_name]

    def get(self, session: Session, resource_id: str) -> NormalizedResource:
        region = super().get(session, resource_id)
        if region.id != session.scope.region_name:
            raise self.out_of_scope(resource_id)
        return region


class ProjectMapper(CollectionMapper):
    """Queries are narrowed to the configured project name before paging."""

    def query_for(self, session: Session, list_filter: ListFilter) -> Dict[str, str]:
        query = super().query_for(session, list_filter)
        if session.scope.project_name:
            query["name"] = session.scope.project_name
        return query

    def get(self, session: Session, resource_id: str) -> NormalizedResource:
        project = super().get(session, resource_id)
        project_name = session.scope.project_name
        if project_name and project.name != project_name:
            raise self.out_of_scope(resource_id)
        return project


class FlavorMapper(CollectionMapper):
    """Each flavor is enriched with its extra specs, one call per flavor."""

    def normalize(self, session: Session, raw: Dict[str, Any]) -> NormalizedResource:
        flavor_id = str(raw.get("id") or "")
        body = get_json(
            session,
            self.subsystem,
            f"/flavors/{quote(flavor_id, safe='')}/os-extra_specs",
            context=f"OpenStack error while fetching extra specs of flavor {flavor_id}",
            kind=self.kind.value,
            resource_id=flavor_id,
            operation="enrich",
        )
        return NormalizedResource.from_raw(self.kind, raw, extra_specs=body.get("extra_specs") or {})


class VolumeTypeMapper(CollectionMapper):
    def normalize(self, session: Session, raw: Dict[str, Any]) -> NormalizedResource:
        return NormalizedResource.from_raw(self.kind, raw, extra_specs=raw.get("extra_specs") or {})


def builtin_mappers() -> List[CollectionMapper]:
    return [
        RegionMapper(
            ResourceKind.REGION, Subsystem.IDENTITY, RegionListFilter,
            "/regions", "/regions/{id}", "regions", "region",
        ),
        ProjectMapper(
            ResourceKind.PROJECT, Subsystem.IDENTITY, ProjectListFilter,
            "/projects", "/projects/{id}", "projects", "project",
        ),
        FlavorMapper(
            ResourceKind.FLAVOR, Subsystem.COMPUTE, FlavorListFilter,
            "/flavors/detail", "/flavors/{id}", "flavors", "flavor",
        ),
        CollectionMapper(
            ResourceKind.IMAGE, Subsystem.IMAGE, ImageListFilter,
            "/v2/images", "/v2/images/{id}", "images", None,
        ),
        CollectionMapper(
            ResourceKind.VM, Subsystem.COMPUTE, VMListFilter,
            "/servers/detail", "/servers/{id}", "servers", "server",
        ),
        CollectionMapper(
            ResourceKind.SNAPSHOT, Subsystem.BLOCK_STORAGE, SnapshotListFilter,
            "/snapshots/detail", "/snapshots/{id}", "snapshots", "snapshot",
        ),
        CollectionMapper(
            ResourceKind.VOLUME, Subsystem.BLOCK_STORAGE, VolumeListFilter,
            "/volumes/detail", "/volumes/{id}", "volumes", "volume",
        ),
        VolumeTypeMapper(
            ResourceKind.VOLUME_TYPE, Subsystem.BLOCK_STORAGE, VolumeTypeListFilter,
            "/types", "/types/{id}", "volume_types", "volume_type",
            links_key="volume_type_links",
        ),
        CollectionMapper(
            ResourceKind.NETWORK, Subsystem.NETWORK, NetworkListFilter,
            "/networks", "/networks/{id}", "networks", "network",
        ),
        CollectionMapper(
            ResourceKind.SUBNET, Subsystem.NETWORK, SubnetListFilter,
            "/subnets", "/subnets/{id}", "subnets", "subnet",
        ),
    ]


def register_builtin_mappers() -> None:
    for mapper in builtin_mappers():
        register_mapper(mapper.kind, lambda m=mapper: m)
