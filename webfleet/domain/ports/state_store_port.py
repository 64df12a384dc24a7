"""
State Store Port

Architectural Intent:
- Persisted record of what apply last did for each environment
- Holds the trigger fingerprint (environment -> last configured address set),
  the resources apply created and the history of configuration runs
"""

from typing import Optional, Protocol, runtime_checkable

from webfleet.domain.entities.configuration_run import ConfigurationRun
from webfleet.domain.value_objects.address_fingerprint import AddressFingerprint


@runtime_checkable
class StateStorePort(Protocol):
    def get_fingerprint(self, environment: str) -> Optional[AddressFingerprint]: ...

    def record_fingerprint(
        self, environment: str, fingerprint: AddressFingerprint
    ) -> None: ...

    def clear_fingerprint(self, environment: str) -> None: ...

    def record_resource(
        self, environment: str, kind: str, name: str, resource_id: str
    ) -> None: ...

    def get_resources(self, environment: str) -> list[dict]: ...

    def forget_resource(self, environment: str, kind: str, name: str) -> bool: ...

    def forget_resources(self, environment: str) -> int: ...

    def record_configuration_run(self, run: ConfigurationRun) -> int: ...

    def get_configuration_runs(
        self, environment: Optional[str] = None, limit: int = 50
    ) -> list[dict]: ...
