"""Tests for instance specs and provisioned instances."""

import pytest

from webfleet.domain.entities.instance import (
    ImageQuery,
    InstanceRole,
    InstanceSpec,
    ProvisionedInstance,
    addresses_of,
)


def _spec(**overrides):
    params = dict(
        role=InstanceRole.MANAGED,
        name="webserver",
        image=ImageQuery(),
        instance_type="t2.micro",
        key_name="deployer",
        subnet="dev-vpc-public-1",
        rule_set="dev-managed-sg",
        count=3,
    )
    params.update(overrides)
    return InstanceSpec(**params)


class TestInstanceSpec:
    def test_display_names_for_replicas(self):
        assert _spec().display_names() == ["webserver-1", "webserver-2", "webserver-3"]

    def test_single_instance_keeps_plain_name(self):
        assert _spec(count=1, name="ansible-control").display_names() == ["ansible-control"]

    def test_count_must_be_positive(self):
        with pytest.raises(ValueError):
            _spec(count=0)

    def test_name_required(self):
        with pytest.raises(ValueError):
            _spec(name="")


class TestImageQuery:
    def test_defaults_look_up_amazon_linux(self):
        query = ImageQuery()
        assert query.owners == ("amazon",)
        assert not query.pinned

    def test_pinned(self):
        assert ImageQuery(image_id="ami-123").pinned


class TestAddresses:
    def test_sorted_by_replica_number(self):
        instances = [
            ProvisionedInstance("i-10", "webserver-10", InstanceRole.MANAGED, public_ip="C"),
            ProvisionedInstance("i-2", "webserver-2", InstanceRole.MANAGED, public_ip="B"),
            ProvisionedInstance("i-1", "webserver-1", InstanceRole.MANAGED, public_ip="A"),
        ]
        assert addresses_of(instances) == ["A", "B", "C"]

    def test_falls_back_to_private_address(self):
        instance = ProvisionedInstance("i-1", "w-1", InstanceRole.MANAGED, private_ip="10.0.0.5")
        assert instance.address == "10.0.0.5"
        assert addresses_of([instance]) == ["10.0.0.5"]

    def test_skips_instances_without_address(self):
        instance = ProvisionedInstance("i-1", "w-1", InstanceRole.MANAGED)
        assert addresses_of([instance]) == []
