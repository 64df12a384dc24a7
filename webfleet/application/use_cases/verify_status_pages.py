"""
Verify Status Pages Use Case

Architectural Intent:
- Best-effort check that every managed node serves its own metadata page
- Pages are fetched concurrently; an unreachable node is reported as a
  problem, never raised
"""

import asyncio
import logging
from typing import Sequence

from webfleet.application.dtos.environment_dtos import VerificationReport
from webfleet.domain.entities.instance import ProvisionedInstance
from webfleet.domain.services.status_page import InstanceMetadata, check_status_page

logger = logging.getLogger(__name__)


class VerifyStatusPages:
    def __init__(self, http_adapter):
        self.http_adapter = http_adapter

    async def _check(
        self, instance: ProvisionedInstance, everyone: list[InstanceMetadata]
    ) -> list[str]:
        own = InstanceMetadata.from_instance(instance)
        try:
            page = await self.http_adapter.fetch_page(instance.address)
        except ConnectionError as e:
            return [f"{instance.instance_id}: {e}"]
        others = [m for m in everyone if m.instance_id != own.instance_id]
        return check_status_page(page, own, others)

    async def execute(self, instances: Sequence[ProvisionedInstance]) -> VerificationReport:
        reachable = [i for i in instances if i.address]
        everyone = [InstanceMetadata.from_instance(i) for i in reachable]

        results = await asyncio.gather(*(self._check(i, everyone) for i in reachable))
        problems = tuple(p for found in results for p in found)

        for problem in problems:
            logger.warning("Status page check: %s", problem)
        if not problems:
            logger.info("Status pages of %d node(s) look right", len(reachable))
        return VerificationReport(
            checked=tuple(i.address for i in reachable), problems=problems
        )
