"""
Plan Environment Use Case

Architectural Intent:
- Read-only preview of what apply would do
- Renders the inventory before anything is touched, so a broken template
  fails here instead of half way through apply
- Reports whether the configuration step would run again
"""

import logging

from webfleet.domain.entities.environment import (
    EnvironmentBlueprint,
    EnvironmentPlan,
    diff_environment,
)
from webfleet.domain.entities.instance import addresses_of
from webfleet.domain.entities.inventory import InventoryDocument
from webfleet.domain.entities.trigger import ProvisioningTrigger
from webfleet.domain.ports.cloud_provider_port import CloudProviderPort
from webfleet.domain.ports.state_store_port import StateStorePort

logger = logging.getLogger(__name__)


class PlanEnvironment:
    def __init__(self, provider: CloudProviderPort, state_store: StateStorePort):
        self.provider = provider
        self.state_store = state_store

    async def execute(self, blueprint: EnvironmentBlueprint) -> EnvironmentPlan:
        observed = await self.provider.describe_environment(blueprint.name)
        changes = diff_environment(blueprint, observed)

        wanted = blueprint.managed.display_names()
        running = {i.name for i in observed.managed_instances() if i.address}
        if set(wanted) <= running:
            current = [
                i for i in observed.managed_instances() if i.name in set(wanted)
            ]
            addresses = addresses_of(current)
            trigger = ProvisioningTrigger.for_addresses(blueprint.name, addresses)
            reconfigure = trigger.is_stale(self.state_store.get_fingerprint(blueprint.name))
        else:
            # Addresses are only known after launch.
            addresses = [f"<{name}>" for name in wanted]
            reconfigure = True

        preview = InventoryDocument(tuple(addresses)).render(blueprint.inventory_template)
        plan = EnvironmentPlan(
            environment=blueprint.name,
            changes=tuple(changes),
            inventory_preview=preview,
            reconfigure=reconfigure,
        )
        logger.info("Plan for %s: %s", blueprint.name, plan.summary())
        return plan
