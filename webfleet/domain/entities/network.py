"""
Network Module

Architectural Intent:
- Describes the isolated network partition every instance lives in
- Subnet ranges are derived, never authored: block i is the i-th fixed-size
  sub-range of the parent range, so the same inputs always give the same layout
- Provider adapters consume SubnetSpec; nothing here talks to a cloud API

Domain Rules:
- Derived subnets are pairwise disjoint and contained in the parent range
- Public subnets take the first indices, private subnets follow them
- Availability zones are assigned round-robin in declaration order
"""

from __future__ import annotations
from dataclasses import dataclass
from ipaddress import IPv4Network
from itertools import islice

from webfleet.domain.errors import InvalidNetworkError


def _parse_parent(cidr: str) -> IPv4Network:
    try:
        return IPv4Network(cidr, strict=True)
    except ValueError as e:
        raise InvalidNetworkError(f"Invalid network range {cidr!r}: {e}") from e


def plan_subnets(
    parent_cidr: str,
    count: int,
    new_prefix: int,
    offset: int = 0,
) -> list[str]:
    """Partition ``parent_cidr`` into ``count`` blocks of size ``/new_prefix``.

    Block ``i`` is the ``(offset + i)``-th ``/new_prefix`` network inside the
    parent, which matches ``cidrsubnet(parent, new_prefix - parent_prefix, i)``.

    Raises:
        InvalidNetworkError: malformed parent range, a prefix that is not
            longer than the parent's, or more blocks than the parent can hold.
    """
    parent = _parse_parent(parent_cidr)
    if count < 0 or offset < 0:
        raise InvalidNetworkError("Subnet count and offset must not be negative")
    if not parent.prefixlen < new_prefix <= 32:
        raise InvalidNetworkError(
            f"Subnet prefix /{new_prefix} must be longer than /{parent.prefixlen} "
            "and at most /32"
        )

    capacity = 2 ** (new_prefix - parent.prefixlen)
    if offset + count > capacity:
        raise InvalidNetworkError(
            f"{parent_cidr} holds {capacity} /{new_prefix} subnets, "
            f"{offset + count} requested"
        )

    blocks = islice(parent.subnets(new_prefix=new_prefix), offset, offset + count)
    return [str(block) for block in blocks]


@dataclass(frozen=True)
class SubnetSpec:
    name: str
    cidr: str
    availability_zone: str
    public: bool = True


@dataclass(frozen=True)
class NetworkSpec:
    """Desired shape of the environment's network.

    Attributes:
        name: Display name of the network (also the subnet name prefix).
        cidr: Parent IPv4 range, e.g. "10.0.0.0/16".
        region: Provider region the network lives in.
        availability_zones: Zones subnets are spread across.
        public_subnet_count: Subnets that map public addresses on launch.
        private_subnet_count: Subnets without public addresses.
        subnet_prefix: Prefix length of every derived subnet.
    """

    name: str
    cidr: str
    region: str
    availability_zones: tuple[str, ...]
    public_subnet_count: int = 2
    private_subnet_count: int = 2
    subnet_prefix: int = 24

    def __post_init__(self) -> None:
        _parse_parent(self.cidr)
        if not self.availability_zones:
            raise InvalidNetworkError("At least one availability zone is required")
        if self.public_subnet_count < 1:
            raise InvalidNetworkError("At least one public subnet is required")

    def subnets(self) -> list[SubnetSpec]:
        total = self.public_subnet_count + self.private_subnet_count
        ranges = plan_subnets(self.cidr, total, self.subnet_prefix)
        zones = self.availability_zones

        specs: list[SubnetSpec] = []
        for index, cidr in enumerate(ranges):
            public = index < self.public_subnet_count
            ordinal = index if public else index - self.public_subnet_count
            kind = "public" if public else "private"
            specs.append(
                SubnetSpec(
                    name=f"{self.name}-{kind}-{ordinal + 1}",
                    cidr=cidr,
                    availability_zone=zones[ordinal % len(zones)],
                    public=public,
                )
            )
        return specs

    def public_subnets(self) -> list[SubnetSpec]:
        return [s for s in self.subnets() if s.public]

    def private_subnets(self) -> list[SubnetSpec]:
        return [s for s in self.subnets() if not s.public]
