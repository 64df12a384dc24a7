"""Tests for the PlanEnvironment use case."""

import dataclasses

import pytest

from webfleet.application.use_cases.plan_environment import PlanEnvironment
from webfleet.domain.entities.environment import ChangeAction
from webfleet.domain.entities.instance import InstanceRole, addresses_of
from webfleet.domain.errors import TemplateRenderError
from webfleet.domain.value_objects.address_fingerprint import AddressFingerprint


async def _provision(provider, blueprint):
    handle = await provider.ensure_network(blueprint.name, blueprint.network)
    await provider.ensure_security_group(blueprint.name, handle, blueprint.control_rules)
    await provider.ensure_security_group(blueprint.name, handle, blueprint.managed_rules)
    await provider.ensure_instances(blueprint.name, blueprint.control, "ami", "s", [])
    return await provider.ensure_instances(blueprint.name, blueprint.managed, "ami", "s", [])


class TestPlanEnvironment:
    @pytest.mark.asyncio
    async def test_empty_environment(self, fake_provider, repo, blueprint):
        plan = await PlanEnvironment(fake_provider, repo).execute(blueprint)

        assert plan.count(ChangeAction.CREATE) == len(blueprint.resource_keys())
        assert plan.reconfigure
        assert plan.inventory_preview == "<webserver-1>\n<webserver-2>\n<webserver-3>"
        assert fake_provider.calls == ["describe_environment"]

    @pytest.mark.asyncio
    async def test_converged_environment(self, fake_provider, repo, blueprint):
        managed = await _provision(fake_provider, blueprint)
        repo.record_fingerprint(blueprint.name, AddressFingerprint.of(addresses_of(managed)))

        plan = await PlanEnvironment(fake_provider, repo).execute(blueprint)

        assert not plan.has_changes
        assert not plan.reconfigure
        assert plan.inventory_preview == "\n".join(addresses_of(managed))

    @pytest.mark.asyncio
    async def test_changed_addresses_need_reconfiguration(self, fake_provider, repo, blueprint):
        await _provision(fake_provider, blueprint)
        repo.record_fingerprint(blueprint.name, AddressFingerprint.of(["1.1.1.1"]))

        plan = await PlanEnvironment(fake_provider, repo).execute(blueprint)

        assert plan.reconfigure

    @pytest.mark.asyncio
    async def test_scale_down_shows_deletions(self, fake_provider, repo, blueprint):
        await _provision(fake_provider, blueprint)
        fake_provider.add_instance("webserver-4", InstanceRole.MANAGED)

        plan = await PlanEnvironment(fake_provider, repo).execute(blueprint)

        deleted = [c.name for c in plan.changes if c.action is ChangeAction.DELETE]
        assert deleted == ["webserver-4"]

    @pytest.mark.asyncio
    async def test_bad_template_fails_at_plan_time(self, fake_provider, repo, blueprint):
        broken = dataclasses.replace(blueprint, inventory_template="$hosts $missing")
        with pytest.raises(TemplateRenderError):
            await PlanEnvironment(fake_provider, repo).execute(broken)
        assert "ensure_network" not in fake_provider.calls
