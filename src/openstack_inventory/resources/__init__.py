from __future__ import annotations

from typing import Callable, Dict, List

from ..normalize.schema import ResourceKind
from ..util.errors import ClassifiedAsUnsupported
from .base import ResourceMapper

MapperFactory = Callable[[], ResourceMapper]


class MapperRegistry:
    """
    Registry mapping each ResourceKind to the factory of its mapper.
    A kind with no registered mapper is a programming error, not a runtime condition.
    """

    def __init__(self) -> None:
        self._map: Dict[ResourceKind, MapperFactory] = {}

    def register(self, kind: ResourceKind, factory: MapperFactory) -> None:
        self._map[kind] = factory

    def is_registered(self, kind: ResourceKind) -> bool:
        return kind in self._map

    def registered_kinds(self) -> List[ResourceKind]:
        return sorted(self._map.keys(), key=lambda k: k.value)

    def get(self, kind: ResourceKind) -> ResourceMapper:
        factory = self._map.get(kind)
        if factory is None:
            raise ClassifiedAsUnsupported(kind)
        return factory()


_global_registry = MapperRegistry()


def register_mapper(kind: ResourceKind, factory: MapperFactory) -> None:
    _global_registry.register(kind, factory)


def get_mapper_for(kind: ResourceKind) -> ResourceMapper:
    return _global_registry.get(kind)


def is_mapper_registered(kind: ResourceKind) -> bool:
    return _global_registry.is_registered(kind)


def list_registered_kinds() -> List[ResourceKind]:
    return _global_registry.registered_kinds()


from .mappers import register_builtin_mappers  # noqa: E402

register_builtin_mappers()
