from dataclasses import dataclass
from typing import Iterable
import hashlib
import re


@dataclass(frozen=True)
class AddressFingerprint:
    """
    Value Object identifying one managed-node address list.
    A different value means the configuration step has to run again.
    """
    value: str

    def __post_init__(self):
        if not self._is_valid(self.value):
            raise ValueError(f"Invalid address fingerprint: {self.value}")

    @staticmethod
    def _is_valid(value: str) -> bool:
        # sha256 hex digest
        return bool(re.match(r'^[0-9a-f]{64}$', value))

    @classmethod
    def of(cls, addresses: Iterable[str]) -> "AddressFingerprint":
        # Order matters: it is the order the inventory is rendered in.
        joined = "\n".join(addresses)
        return cls(hashlib.sha256(joined.encode("utf-8")).hexdigest())

    @property
    def short(self) -> str:
        return self.value[:12]

    def __str__(self):
        return self.value
