"""
Node Value Object

Architectural Intent:
- How the control node is reached over SSH: address, login user, port, key
- Built by the apply pipeline from the provisioned control instance
- Carries the private key path so adapters never read credentials from globals
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def is_valid_host(host: str) -> bool:
    """True for an IPv4/IPv6 literal or an RFC 1123 DNS name."""
    if not host or len(host) > 253:
        return False
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    labels = host.rstrip(".").split(".")
    # All-numeric names are malformed IPv4 literals, not DNS names
    if all(label.isdigit() for label in labels):
        return False
    return all(_LABEL_RE.match(label) for label in labels)


@dataclass(frozen=True)
class Node:
    host: str
    user: str = "ec2-user"
    port: int = 22
    key_filename: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("Node user cannot be empty")
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not is_valid_host(self.host):
            raise ValueError(f"Invalid hostname: {self.host!r}")

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"
