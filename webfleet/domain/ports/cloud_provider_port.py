"""
Cloud Provider Port

Architectural Intent:
- Port interface for the provider resource API (networks, rules, instances)
- Every operation is find-or-create keyed on environment + display name, so
  re-running apply converges instead of duplicating resources
- Implemented by the AWS adapter; tests use an in-memory fake

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Errors surface as ProviderError; callers never see botocore exceptions
"""

from typing import Protocol, runtime_checkable

from webfleet.domain.entities.environment import NetworkHandle, ObservedEnvironment
from webfleet.domain.entities.instance import ImageQuery, InstanceSpec, ProvisionedInstance
from webfleet.domain.entities.network import NetworkSpec
from webfleet.domain.entities.security import SecurityRuleSet


@runtime_checkable
class CloudProviderPort(Protocol):
    """Port for cloud provider infrastructure operations."""

    async def ensure_network(self, environment: str, spec: NetworkSpec) -> NetworkHandle:
        """Create or reuse the network and its subnets."""
        ...

    async def ensure_security_group(
        self, environment: str, network: NetworkHandle, rule_set: SecurityRuleSet
    ) -> str:
        """Create or reuse a security group holding exactly these rules."""
        ...

    async def resolve_image(self, query: ImageQuery) -> str:
        """Return the pinned image, or the newest one matching the query."""
        ...

    async def ensure_instances(
        self,
        environment: str,
        spec: InstanceSpec,
        image_id: str,
        subnet_id: str,
        security_group_ids: list[str],
    ) -> list[ProvisionedInstance]:
        """Make sure every display name of ``spec`` has a running instance.

        Instances of the same role whose names are no longer wanted (the
        count went down) are terminated.
        """
        ...

    async def describe_environment(self, environment: str) -> ObservedEnvironment:
        """Report what currently exists for the environment."""
        ...

    async def destroy_environment(self, environment: str) -> list[str]:
        """Tear everything down. Returns the ids of deleted resources."""
        ...
