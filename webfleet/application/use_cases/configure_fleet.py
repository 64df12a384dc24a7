"""
Configure Fleet Use Case

Architectural Intent:
- Runs the remote configuration step on the control node
- Gated by the provisioning trigger: when the managed-node address set has
  not changed since the last successful run, nothing is executed remotely
- Walks the remote plan stage by stage over a single SSH session

Failure Semantics:
- A non-zero exit from a step that is not tolerated aborts the remaining
  steps and fails the run; the fingerprint is only recorded after DONE so
  the next apply retries from scratch
- No retries, no rollback
"""

import logging
from typing import Callable, Sequence

from webfleet.domain.entities.configuration_run import ConfigurationRun
from webfleet.domain.entities.trigger import ProvisioningTrigger
from webfleet.domain.errors import RemoteCommandError, WebfleetError
from webfleet.domain.ports.event_bus_port import EventBusPort
from webfleet.domain.ports.remote_session_port import RemoteSessionPort
from webfleet.domain.ports.state_store_port import StateStorePort
from webfleet.domain.services.remote_plan import (
    FileUpload,
    RemotePlan,
    RemotePlanSettings,
    build_remote_plan,
)
from webfleet.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class ConfigureFleet:
    def __init__(
        self,
        session_factory: Callable[[], RemoteSessionPort],
        state_store: StateStorePort,
        event_bus: EventBusPort,
        settings: RemotePlanSettings,
        telemetry=None,
    ):
        self.session_factory = session_factory
        self.state_store = state_store
        self.event_bus = event_bus
        self.plan: RemotePlan = build_remote_plan(settings)
        self.telemetry = telemetry

    async def execute(
        self,
        environment: str,
        control_node: Node,
        addresses: Sequence[str],
        force: bool = False,
    ) -> ConfigurationRun:
        trigger = ProvisioningTrigger.for_addresses(environment, addresses)
        run = ConfigurationRun(environment, trigger.fingerprint, host_count=len(addresses))

        recorded = self.state_store.get_fingerprint(environment)
        if not force and not trigger.is_stale(recorded):
            logger.info(
                "Managed nodes of %s unchanged (%s), skipping configuration",
                environment,
                trigger.fingerprint.short,
            )
            run = run.skip()
            await self._finish(run)
            return run

        session = self.session_factory()
        try:
            run = run.connect()
            await session.open(control_node)

            run = run.stage()
            run = await self._run_stage(session, run)
            run = run.configure()
            run = await self._run_stage(session, run)
            run = run.execute()
            run = await self._run_stage(session, run)

            run = run.complete()
            self.state_store.record_fingerprint(environment, trigger.fingerprint)
        except WebfleetError as e:
            logger.error(
                "Configuration of %s failed during %s: %s", environment, run.status.name, e
            )
            run = run.fail(str(e))
            await self._finish(run)
            raise
        finally:
            await session.close()

        logger.info(
            "Configured %d managed node(s) of %s (%s)",
            len(addresses),
            environment,
            trigger.fingerprint.short,
        )
        await self._finish(run)
        return run

    async def _run_stage(
        self, session: RemoteSessionPort, run: ConfigurationRun
    ) -> ConfigurationRun:
        for step in self.plan.for_stage(run.status):
            if isinstance(step, FileUpload):
                logger.debug("%s: %s -> %s", step.name, step.local_path, step.remote_path)
                await session.upload(step.local_path, step.remote_path, step.mode)
            else:
                logger.debug("%s: %s", step.name, step.command)
                result = await session.run(step.command)
                if not result.ok:
                    if not step.tolerate_failure:
                        raise RemoteCommandError(step.name, result.exit_code, result.stderr)
                    logger.warning(
                        "%s exited with status %d, continuing",
                        step.name,
                        result.exit_code,
                    )
            run = run.record_step(step.name)
        return run

    async def _finish(self, run: ConfigurationRun) -> None:
        self.state_store.record_configuration_run(run)
        if self.telemetry is not None:
            self.telemetry.record_configuration_run(run.environment, run.status.name.lower())
        await self.event_bus.publish(list(run.domain_events))

