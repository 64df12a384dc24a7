"""
Security Rule Module

Architectural Intent:
- Per-role traffic rules (control node vs. managed node) as immutable values
- Built from a list of (description, port) pairs so roles differ only in data
- Renders to the EC2 IpPermissions shape consumed by the provider adapter

Domain Rules:
- One ingress rule per input pair, always TCP from 0.0.0.0/0
- Exactly one egress rule, allowing all traffic
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

ANY_IPV4 = "0.0.0.0/0"

PortPair = Union[tuple[str, int], list]


@dataclass(frozen=True)
class IngressRule:
    description: str
    port: int
    protocol: str = "tcp"
    cidr: str = ANY_IPV4

    def __post_init__(self) -> None:
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")

    def to_ip_permission(self) -> dict[str, Any]:
        return {
            "IpProtocol": self.protocol,
            "FromPort": self.port,
            "ToPort": self.port,
            "IpRanges": [{"CidrIp": self.cidr, "Description": self.description}],
        }


@dataclass(frozen=True)
class EgressRule:
    description: str = "Allow all outbound traffic"
    protocol: str = "-1"
    cidr: str = ANY_IPV4

    def to_ip_permission(self) -> dict[str, Any]:
        return {
            "IpProtocol": self.protocol,
            "IpRanges": [{"CidrIp": self.cidr, "Description": self.description}],
        }


@dataclass(frozen=True)
class SecurityRuleSet:
    """Ingress/egress rules attached to one role's instances."""

    name: str
    description: str
    ingress: tuple[IngressRule, ...] = ()
    egress: tuple[EgressRule, ...] = field(default_factory=lambda: (EgressRule(),))

    @classmethod
    def from_ports(
        cls,
        name: str,
        ports: Iterable[PortPair],
        description: str = "",
    ) -> "SecurityRuleSet":
        ingress = tuple(
            IngressRule(description=str(desc), port=int(port)) for desc, port in ports
        )
        return cls(
            name=name,
            description=description or f"Security rules for {name}",
            ingress=ingress,
            egress=(EgressRule(),),
        )

    @property
    def ports(self) -> tuple[int, ...]:
        return tuple(rule.port for rule in self.ingress)

    def ingress_permissions(self) -> list[dict[str, Any]]:
        return [rule.to_ip_permission() for rule in self.ingress]

    def egress_permissions(self) -> list[dict[str, Any]]:
        return [rule.to_ip_permission() for rule in self.egress]
