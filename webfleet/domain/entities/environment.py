"""
Environment Module

Architectural Intent:
- EnvironmentBlueprint is the full desired state of one environment
- ObservedEnvironment is what the provider reports back
- EnvironmentPlan is the diff between the two, shown by `webfleet plan`
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from webfleet.domain.entities.instance import InstanceRole, InstanceSpec, ProvisionedInstance
from webfleet.domain.entities.inventory import DEFAULT_TEMPLATE
from webfleet.domain.entities.network import NetworkSpec
from webfleet.domain.entities.security import SecurityRuleSet


@dataclass(frozen=True)
class NetworkHandle:
    vpc_id: str
    subnet_ids: dict[str, str] = field(default_factory=dict, hash=False)

    def subnet_id(self, name: str) -> str:
        try:
            return self.subnet_ids[name]
        except KeyError:
            raise KeyError(f"Subnet {name!r} is not part of network {self.vpc_id}") from None


@dataclass(frozen=True)
class EnvironmentBlueprint:
    name: str
    network: NetworkSpec
    control_rules: SecurityRuleSet
    managed_rules: SecurityRuleSet
    control: InstanceSpec
    managed: InstanceSpec
    inventory_template: str = DEFAULT_TEMPLATE

    def __post_init__(self) -> None:
        if self.control.role is not InstanceRole.CONTROL:
            raise ValueError("control spec must have the CONTROL role")
        if self.managed.role is not InstanceRole.MANAGED:
            raise ValueError("managed spec must have the MANAGED role")
        subnet_names = {s.name for s in self.network.subnets()}
        rule_sets = {self.control_rules.name, self.managed_rules.name}
        for spec in (self.control, self.managed):
            if spec.subnet not in subnet_names:
                raise ValueError(f"{spec.name}: unknown subnet {spec.subnet!r}")
            if spec.rule_set not in rule_sets:
                raise ValueError(f"{spec.name}: unknown rule set {spec.rule_set!r}")

    def resource_keys(self) -> list[tuple[str, str]]:
        keys = [("network", self.network.name)]
        keys += [("subnet", s.name) for s in self.network.subnets()]
        keys += [
            ("security_group", self.control_rules.name),
            ("security_group", self.managed_rules.name),
        ]
        keys += [("instance", n) for n in self.control.display_names()]
        keys += [("instance", n) for n in self.managed.display_names()]
        return keys


@dataclass(frozen=True)
class ObservedEnvironment:
    environment: str
    network_name: Optional[str] = None
    vpc_id: Optional[str] = None
    subnets: dict[str, str] = field(default_factory=dict, hash=False)
    security_groups: dict[str, str] = field(default_factory=dict, hash=False)
    instances: tuple[ProvisionedInstance, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.vpc_id or self.subnets or self.security_groups or self.instances)

    def managed_instances(self) -> list[ProvisionedInstance]:
        return [i for i in self.instances if i.role is InstanceRole.MANAGED]

    def control_instance(self) -> Optional[ProvisionedInstance]:
        for instance in self.instances:
            if instance.role is InstanceRole.CONTROL:
                return instance
        return None

    def resource_keys(self) -> list[tuple[str, str]]:
        keys: list[tuple[str, str]] = []
        if self.vpc_id:
            keys.append(("network", self.network_name or self.vpc_id))
        keys += [("subnet", name) for name in self.subnets]
        keys += [("security_group", name) for name in self.security_groups]
        keys += [("instance", i.name) for i in self.instances]
        return keys


class ChangeAction(Enum):
    CREATE = "create"
    KEEP = "keep"
    DELETE = "delete"


@dataclass(frozen=True)
class PlannedChange:
    action: ChangeAction
    kind: str
    name: str

    def __str__(self) -> str:
        symbol = {"create": "+", "keep": " ", "delete": "-"}[self.action.value]
        return f"{symbol} {self.kind} {self.name}"


@dataclass(frozen=True)
class EnvironmentPlan:
    environment: str
    changes: tuple[PlannedChange, ...]
    inventory_preview: str = ""
    reconfigure: bool = True

    def count(self, action: ChangeAction) -> int:
        return sum(1 for c in self.changes if c.action is action)

    @property
    def has_changes(self) -> bool:
        return any(c.action is not ChangeAction.KEEP for c in self.changes)

    def summary(self) -> str:
        return (
            f"{self.count(ChangeAction.CREATE)} to create, "
            f"{self.count(ChangeAction.KEEP)} unchanged, "
            f"{self.count(ChangeAction.DELETE)} to delete"
        )


def diff_environment(
    blueprint: EnvironmentBlueprint, observed: ObservedEnvironment
) -> list[PlannedChange]:
    desired = blueprint.resource_keys()
    existing = observed.resource_keys()
    existing_set = set(existing)
    desired_set = set(desired)

    changes = [
        PlannedChange(
            ChangeAction.KEEP if key in existing_set else ChangeAction.CREATE, *key
        )
        for key in desired
    ]
    changes += [
        PlannedChange(ChangeAction.DELETE, *key)
        for key in existing
        if key not in desired_set
    ]
    return changes
