"""
Instance Module

Architectural Intent:
- Desired compute for both roles: one control node, N managed nodes
- The machine image is a query, resolved by the provider at apply time
- ProvisionedInstance is what the provider hands back; it feeds the inventory
  and the status-page check
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class InstanceRole(Enum):
    CONTROL = "control"
    MANAGED = "managed"


@dataclass(frozen=True)
class ImageQuery:
    """Machine image selector.

    With ``image_id`` set the image is pinned. Otherwise the newest image
    whose name matches ``name_pattern`` (shell-style wildcards) among
    ``owners`` wins, which means a later apply may pick a newer image.
    """

    name_pattern: str = "amzn2-ami-hvm-*-x86_64-gp2"
    owners: tuple[str, ...] = ("amazon",)
    image_id: str = ""

    @property
    def pinned(self) -> bool:
        return bool(self.image_id)


@dataclass(frozen=True)
class InstanceSpec:
    role: InstanceRole
    name: str
    image: ImageQuery
    instance_type: str
    key_name: str
    subnet: str
    rule_set: str
    user_data: Optional[str] = None
    count: int = 1

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Instance name cannot be empty")
        if self.count < 1:
            raise ValueError(f"Instance count must be at least 1, got {self.count}")

    def display_names(self) -> list[str]:
        if self.count == 1:
            return [self.name]
        return [f"{self.name}-{i}" for i in range(1, self.count + 1)]


@dataclass(frozen=True)
class ProvisionedInstance:
    instance_id: str
    name: str
    role: InstanceRole
    public_ip: str = ""
    private_ip: str = ""
    public_dns: str = ""
    private_dns: str = ""
    availability_zone: str = ""
    tags: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def address(self) -> str:
        """Address the control node and operators reach this instance on."""
        return self.public_ip or self.private_ip


def addresses_of(instances: list[ProvisionedInstance]) -> list[str]:
    """Managed-node addresses in display-name order."""
    ordered = sorted(instances, key=lambda i: _name_key(i.name))
    return [i.address for i in ordered if i.address]


def _name_key(name: str) -> tuple[str, int]:
    base, _, suffix = name.rpartition("-")
    if base and suffix.isdigit():
        return base, int(suffix)
    return name, 0
