"""
Destroy Environment Use Case

Architectural Intent:
- Tears down everything apply created for one environment
- Clears the recorded fingerprint so a later apply configures from scratch
"""

import logging
from pathlib import Path

from webfleet.application.dtos.environment_dtos import DestroyResult
from webfleet.domain.ports.cloud_provider_port import CloudProviderPort
from webfleet.domain.ports.state_store_port import StateStorePort

logger = logging.getLogger(__name__)


class DestroyEnvironment:
    def __init__(
        self,
        provider: CloudProviderPort,
        state_store: StateStorePort,
        inventory_path: str,
    ):
        self.provider = provider
        self.state_store = state_store
        self.inventory_path = Path(inventory_path)

    async def execute(self, environment: str) -> DestroyResult:
        deleted = await self.provider.destroy_environment(environment)
        forgotten = self.state_store.forget_resources(environment)
        self.state_store.clear_fingerprint(environment)

        removed = self.inventory_path.is_file()
        if removed:
            self.inventory_path.unlink()

        logger.info(
            "Destroyed %s: %d resource(s) deleted, %d record(s) forgotten",
            environment,
            len(deleted),
            forgotten,
        )
        return DestroyResult(
            environment=environment,
            deleted_ids=tuple(deleted),
            forgotten_resources=forgotten,
            inventory_removed=removed,
        )
