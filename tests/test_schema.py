from __future__ import annotations

import pytest

from openstack_inventory.normalize.schema import CANONICAL_FIELD_ORDER, NormalizedResource, ResourceKind
from openstack_inventory.util.errors import ClassifiedAsUnsupported
from openstack_inventory.util.serialization import REDACTED_VALUE


def test_parse_accepts_members_and_values() -> None:
    assert ResourceKind.parse(ResourceKind.VM) is ResourceKind.VM
    assert ResourceKind.parse("VolumeType") is ResourceKind.VOLUME_TYPE
    assert ResourceKind.parse(" volumetype ") is ResourceKind.VOLUME_TYPE


def test_parse_rejects_unknown() -> None:
    with pytest.raises(ClassifiedAsUnsupported):
        ResourceKind.parse("Router")


def test_region_name_falls_back_to_id() -> None:
    region = NormalizedResource.from_raw(ResourceKind.REGION, {"id": "RegionOne", "description": ""})
    assert region.name == "RegionOne"


def test_unnamed_resource_gets_empty_name() -> None:
    vm = NormalizedResource.from_raw(ResourceKind.VM, {"id": "vm-1"})
    assert vm.name == ""
    assert vm.extra_specs is None


def test_extra_specs_values_are_strings() -> None:
    flavor = NormalizedResource.from_raw(ResourceKind.FLAVOR, {"id": "f1"}, extra_specs={"hw:numa_nodes": 2})
    assert flavor.extra_specs == {"hw:numa_nodes": "2"}


def test_to_record_is_ordered_and_redacted() -> None:
    vm = NormalizedResource.from_raw(ResourceKind.VM, {"id": "vm-1", "name": "web", "adminPass": "p"})
    record = vm.to_record()
    assert list(record.keys()) == CANONICAL_FIELD_ORDER
    assert record["kind"] == "VM"
    assert record["extraSpecs"] is None
    assert record["details"]["adminPass"] == REDACTED_VALUE
