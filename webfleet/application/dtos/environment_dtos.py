"""
Environment DTOs

Architectural Intent:
- Results handed from the apply/destroy use cases to the CLI
- Plain values only, so the presentation layer never touches aggregates
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ApplyResult:
    environment: str
    vpc_id: str
    control_address: str
    managed_addresses: tuple[str, ...]
    inventory_path: str
    configuration_status: str
    fingerprint: str
    completed_steps: tuple[str, ...] = ()
    verification_problems: Optional[tuple[str, ...]] = None

    @property
    def configured(self) -> bool:
        return self.configuration_status == "done"

    @property
    def verified(self) -> bool:
        return self.verification_problems is not None and not self.verification_problems


@dataclass(frozen=True)
class DestroyResult:
    environment: str
    deleted_ids: tuple[str, ...] = ()
    forgotten_resources: int = 0
    inventory_removed: bool = False


@dataclass(frozen=True)
class VerificationReport:
    checked: tuple[str, ...] = ()
    problems: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.problems
