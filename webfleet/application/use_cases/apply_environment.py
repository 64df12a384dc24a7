"""
Apply Environment Use Case

Architectural Intent:
- Converges one environment to its blueprint, then configures the fleet
- Uses DAGOrchestrator so independent provider calls run concurrently

Step Graph:
- network
- control_rules, managed_rules (after network)
- images (no inputs)
- control_node, managed_nodes (after their rules, network and images)
- inventory (after managed_nodes)
- configure (after control_node and inventory)
- verify (after configure)

- verify is the only non-critical step; everything else aborts the run
- Created resource ids are recorded in the state store as they appear
"""

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Optional

from webfleet.application.dtos.environment_dtos import ApplyResult
from webfleet.application.orchestration.dag_orchestrator import (
    DAGOrchestrator,
    WorkflowStep,
)
from webfleet.application.use_cases.configure_fleet import ConfigureFleet
from webfleet.domain.entities.environment import EnvironmentBlueprint
from webfleet.domain.entities.instance import addresses_of
from webfleet.domain.entities.inventory import InventoryDocument
from webfleet.domain.errors import ProviderError
from webfleet.domain.ports.cloud_provider_port import CloudProviderPort
from webfleet.domain.ports.state_store_port import StateStorePort
from webfleet.domain.value_objects.node import Node

logger = logging.getLogger(__name__)


class ApplyEnvironment:
    def __init__(
        self,
        provider: CloudProviderPort,
        state_store: StateStorePort,
        configure_fleet: ConfigureFleet,
        inventory_path: str,
        ssh_user: str,
        private_key_path: str,
        verifier=None,
        telemetry=None,
    ):
        self.provider = provider
        self.state_store = state_store
        self.configure_fleet = configure_fleet
        self.inventory_path = inventory_path
        self.ssh_user = ssh_user
        self.private_key_path = private_key_path
        self.verifier = verifier
        self.telemetry = telemetry

    def _timed(self, step: str, environment: str):
        if self.telemetry is None:
            return nullcontext()
        return self.telemetry.step(step, environment)

    async def execute(self, blueprint: EnvironmentBlueprint, force: bool = False) -> ApplyResult:
        env = blueprint.name
        # Template errors must surface before any resource is created
        InventoryDocument(
            tuple(f"<{name}>" for name in blueprint.managed.display_names())
        ).render(blueprint.inventory_template)

        record = self.state_store.record_resource
        wanted_instances = set(blueprint.control.display_names()) | set(
            blueprint.managed.display_names()
        )

        def forget_surplus_instances() -> None:
            # ensure_instances terminated these on scale-down
            for row in self.state_store.get_resources(env):
                if row["kind"] == "instance" and row["name"] not in wanted_instances:
                    self.state_store.forget_resource(env, "instance", row["name"])

        async def network_step(context: dict[str, Any], results: dict[str, Any]):
            with self._timed("network", env):
                handle = await self.provider.ensure_network(env, blueprint.network)
            record(env, "network", blueprint.network.name, handle.vpc_id)
            for name, subnet_id in handle.subnet_ids.items():
                record(env, "subnet", name, subnet_id)
            return handle

        def rules_step(step_name: str, rule_set):
            async def run(context: dict[str, Any], results: dict[str, Any]) -> str:
                with self._timed(step_name, env):
                    group_id = await self.provider.ensure_security_group(
                        env, results["network"], rule_set
                    )
                record(env, "security_group", rule_set.name, group_id)
                return group_id
            return run

        async def images_step(context: dict[str, Any], results: dict[str, Any]):
            resolved: dict = {}
            with self._timed("images", env):
                for query in (blueprint.control.image, blueprint.managed.image):
                    if query not in resolved:
                        resolved[query] = await self.provider.resolve_image(query)
            return resolved

        def nodes_step(step_name: str, spec, rules_step_name: str):
            async def run(context: dict[str, Any], results: dict[str, Any]):
                network = results["network"]
                with self._timed(step_name, env):
                    instances = await self.provider.ensure_instances(
                        env,
                        spec,
                        results["images"][spec.image],
                        network.subnet_id(spec.subnet),
                        [results[rules_step_name]],
                    )
                for instance in instances:
                    record(env, "instance", instance.name, instance.instance_id)
                forget_surplus_instances()
                return instances
            return run

        async def inventory_step(context: dict[str, Any], results: dict[str, Any]):
            addresses = addresses_of(results["managed_nodes"])
            if len(addresses) != blueprint.managed.count:
                raise ProviderError(
                    "ensure_instances",
                    f"expected {blueprint.managed.count} managed address(es), "
                    f"got {len(addresses)}",
                )
            with self._timed("inventory", env):
                InventoryDocument(tuple(addresses)).write(
                    self.inventory_path, blueprint.inventory_template
                )
            return addresses

        async def configure_step(context: dict[str, Any], results: dict[str, Any]):
            control = results["control_node"][0]
            if not control.public_ip:
                raise ProviderError(
                    "ensure_instances",
                    f"control node {control.instance_id} has no public address",
                )
            node = Node(
                host=control.public_ip,
                user=self.ssh_user,
                key_filename=self.private_key_path,
            )
            with self._timed("configure", env):
                return await self.configure_fleet.execute(
                    env, node, results["inventory"], force=force
                )

        async def verify_step(context: dict[str, Any], results: dict[str, Any]):
            with self._timed("verify", env):
                return await self.verifier.execute(results["managed_nodes"])

        steps = [
            WorkflowStep("network", network_step),
            WorkflowStep(
                "control_rules",
                rules_step("control_rules", blueprint.control_rules),
                depends_on=["network"],
            ),
            WorkflowStep(
                "managed_rules",
                rules_step("managed_rules", blueprint.managed_rules),
                depends_on=["network"],
            ),
            WorkflowStep("images", images_step),
            WorkflowStep(
                "control_node",
                nodes_step("control_node", blueprint.control, "control_rules"),
                depends_on=["network", "control_rules", "images"],
            ),
            WorkflowStep(
                "managed_nodes",
                nodes_step("managed_nodes", blueprint.managed, "managed_rules"),
                depends_on=["network", "managed_rules", "images"],
            ),
            WorkflowStep("inventory", inventory_step, depends_on=["managed_nodes"]),
            WorkflowStep(
                "configure", configure_step, depends_on=["control_node", "inventory"]
            ),
        ]
        if self.verifier is not None:
            steps.append(
                WorkflowStep(
                    "verify",
                    verify_step,
                    depends_on=["configure", "managed_nodes"],
                    is_critical=False,
                )
            )

        logger.info("Applying environment %s", env)
        results = await DAGOrchestrator(steps).execute({"environment": env})

        run = results["configure"]
        report = results.get("verify")
        problems: Optional[tuple[str, ...]] = None
        if report is not None and not isinstance(report, BaseException):
            problems = report.problems

        return ApplyResult(
            environment=env,
            vpc_id=results["network"].vpc_id,
            control_address=results["control_node"][0].public_ip,
            managed_addresses=tuple(results["inventory"]),
            inventory_path=str(Path(self.inventory_path)),
            configuration_status=run.status.name.lower(),
            fingerprint=str(run.fingerprint),
            completed_steps=run.completed_steps,
            verification_problems=problems,
        )
