from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from webfleet.domain.value_objects.address_fingerprint import AddressFingerprint


@dataclass(frozen=True)
class ProvisioningTrigger:
    """
    Fingerprint of an environment's managed-node addresses.
    The configuration step re-runs whenever it differs from the recorded one.
    """
    environment: str
    fingerprint: AddressFingerprint

    def __post_init__(self):
        if not self.environment:
            raise ValueError("Environment name cannot be empty")

    @classmethod
    def for_addresses(cls, environment: str, addresses: Iterable[str]) -> "ProvisioningTrigger":
        return cls(environment, AddressFingerprint.of(addresses))

    def is_stale(self, recorded: Optional[AddressFingerprint]) -> bool:
        return recorded != self.fingerprint
