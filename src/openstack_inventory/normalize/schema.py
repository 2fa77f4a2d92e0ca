from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..util.errors import ClassifiedAsUnsupported
from ..util.serialization import sanitize_for_json


class ResourceKind(str, Enum):
    REGION = "Region"
    PROJECT = "Project"
    FLAVOR = "Flavor"
    IMAGE = "Image"
    VM = "VM"
    SNAPSHOT = "Snapshot"
    VOLUME = "Volume"
    VOLUME_TYPE = "VolumeType"
    NETWORK = "Network"
    SUBNET = "Subnet"

    @classmethod
    def parse(cls, value: Any) -> "ResourceKind":
        """
        Accept a ResourceKind or its value (case-insensitive).
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        raise ClassifiedAsUnsupported(value)


@dataclass(frozen=True)
class NormalizedResource:
    """
    Kind-tagged wrapper around a service's native JSON representation.
    extra_specs is a mapping for Flavor and VolumeType and None for every other kind.
    """

    kind: ResourceKind
    id: str
    name: str
    raw: Dict[str, Any]
    extra_specs: Optional[Dict[str, str]] = None

    @classmethod
    def from_raw(
        cls,
        kind: ResourceKind,
        raw: Mapping[str, Any],
        extra_specs: Optional[Mapping[str, Any]] = None,
    ) -> "NormalizedResource":
        rid = str(raw.get("id") or "")
        # Regions carry no name; their id is the human-readable identifier.
        name = str(raw.get("name") or (rid if kind is ResourceKind.REGION else ""))
        specs = None
        if extra_specs is not None:
            specs = {str(k): str(v) for k, v in extra_specs.items()}
        return cls(kind=kind, id=rid, name=name, raw=dict(raw), extra_specs=specs)

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "kind": self.kind.value,
            "id": self.id,
            "name": self.name,
            "extraSpecs": dict(self.extra_specs) if self.extra_specs is not None else None,
            "details": sanitize_for_json(self.raw),
        }
        return {k: record[k] for k in CANONICAL_FIELD_ORDER}


# Canonical field order used for stable JSON output
CANONICAL_FIELD_ORDER: List[str] = [
    "kind",
    "id",
    "name",
    "extraSpecs",
    "details",
]
