"""Tests for network partitioning."""

from ipaddress import IPv4Network

import pytest

from webfleet.domain.entities.network import NetworkSpec, plan_subnets
from webfleet.domain.errors import InvalidNetworkError


class TestPlanSubnets:
    def test_matches_cidrsubnet_indexing(self):
        assert plan_subnets("10.0.0.0/16", 3, 24) == [
            "10.0.0.0/24",
            "10.0.1.0/24",
            "10.0.2.0/24",
        ]

    def test_offset_skips_blocks(self):
        assert plan_subnets("10.0.0.0/16", 2, 24, offset=2) == [
            "10.0.2.0/24",
            "10.0.3.0/24",
        ]

    @pytest.mark.parametrize("count,prefix", [(4, 24), (16, 20), (1, 17), (8, 28)])
    def test_blocks_are_disjoint_and_contained(self, count, prefix):
        parent = IPv4Network("10.0.0.0/16")
        blocks = [IPv4Network(c) for c in plan_subnets(str(parent), count, prefix)]

        assert len(blocks) == count
        for block in blocks:
            assert block.subnet_of(parent)
        for i, a in enumerate(blocks):
            for b in blocks[i + 1:]:
                assert not a.overlaps(b)

    def test_zero_count(self):
        assert plan_subnets("10.0.0.0/16", 0, 24) == []

    def test_malformed_range(self):
        with pytest.raises(InvalidNetworkError, match="Invalid network range"):
            plan_subnets("10.0.0.300/16", 1, 24)

    def test_host_bits_set(self):
        with pytest.raises(InvalidNetworkError):
            plan_subnets("10.0.0.1/16", 1, 24)

    def test_prefix_not_longer_than_parent(self):
        with pytest.raises(InvalidNetworkError, match="must be longer"):
            plan_subnets("10.0.0.0/16", 1, 16)

    def test_too_many_blocks(self):
        with pytest.raises(InvalidNetworkError, match="holds 4"):
            plan_subnets("10.0.0.0/22", 5, 24)

    def test_invalid_network_error_is_value_error(self):
        with pytest.raises(ValueError):
            plan_subnets("not-a-range", 1, 24)


class TestNetworkSpec:
    def _spec(self, **overrides):
        params = dict(
            name="dev-vpc",
            cidr="10.0.0.0/16",
            region="us-east-1",
            availability_zones=("us-east-1a", "us-east-1b"),
        )
        params.update(overrides)
        return NetworkSpec(**params)

    def test_public_subnets_come_first(self):
        subnets = self._spec().subnets()
        assert [s.name for s in subnets] == [
            "dev-vpc-public-1",
            "dev-vpc-public-2",
            "dev-vpc-private-1",
            "dev-vpc-private-2",
        ]
        assert [s.cidr for s in subnets] == [
            "10.0.0.0/24",
            "10.0.1.0/24",
            "10.0.2.0/24",
            "10.0.3.0/24",
        ]
        assert [s.public for s in subnets] == [True, True, False, False]

    def test_zones_round_robin(self):
        spec = self._spec(public_subnet_count=3, private_subnet_count=0)
        zones = [s.availability_zone for s in spec.subnets()]
        assert zones == ["us-east-1a", "us-east-1b", "us-east-1a"]

    def test_public_and_private_views(self):
        spec = self._spec(public_subnet_count=1, private_subnet_count=3)
        assert len(spec.public_subnets()) == 1
        assert len(spec.private_subnets()) == 3

    def test_requires_zone(self):
        with pytest.raises(InvalidNetworkError):
            self._spec(availability_zones=())

    def test_requires_public_subnet(self):
        with pytest.raises(InvalidNetworkError):
            self._spec(public_subnet_count=0)

    def test_too_many_subnets_for_range(self):
        spec = self._spec(cidr="10.0.0.0/23", public_subnet_count=2, private_subnet_count=1)
        with pytest.raises(InvalidNetworkError):
            spec.subnets()
