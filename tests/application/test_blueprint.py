"""Tests for blueprint assembly from configuration."""

import dataclasses

import pytest

from webfleet.application.blueprint import build_blueprint
from webfleet.domain.entities.instance import InstanceRole
from webfleet.domain.errors import ConfigurationError
from webfleet.infrastructure.config import (
    ControlNodeSettings,
    EnvironmentSettings,
    ManagedNodeSettings,
)


class TestBuildBlueprint:
    def test_defaults(self, config):
        bp = build_blueprint(config)
        assert bp.name == "webfleet-dev"
        assert bp.network.cidr == "10.0.0.0/16"
        assert bp.control.role is InstanceRole.CONTROL
        assert bp.control.count == 1
        assert bp.managed.count == 3
        assert bp.control.key_name == "deployer"
        assert bp.control.subnet == "webfleet-dev-vpc-public-1"
        assert bp.managed_rules.ports == (22, 80)
        assert bp.control_rules.ports == (22,)
        assert bp.inventory_template == "$hosts"

    def test_control_user_data_installs_ansible(self, config):
        bp = build_blueprint(config)
        assert "ansible" in bp.control.user_data
        assert bp.managed.user_data is None

    def test_names_follow_environment(self, config):
        config = dataclasses.replace(
            config, environment=EnvironmentSettings(name="staging", region="eu-west-1")
        )
        bp = build_blueprint(config)
        assert bp.network.name == "staging-vpc"
        assert bp.network.region == "eu-west-1"
        assert bp.control_rules.name == "staging-control-sg"

    def test_custom_user_data(self, config, tmp_path):
        script = tmp_path / "boot.sh"
        script.write_text("#!/bin/bash\necho hi\n")
        config = dataclasses.replace(
            config, control_node=ControlNodeSettings(user_data_path=str(script))
        )
        assert build_blueprint(config).control.user_data == "#!/bin/bash\necho hi\n"

    def test_missing_user_data(self, config, tmp_path):
        config = dataclasses.replace(
            config, control_node=ControlNodeSettings(user_data_path=str(tmp_path / "nope.sh"))
        )
        with pytest.raises(ConfigurationError, match="user data"):
            build_blueprint(config)

    def test_managed_count(self, config):
        config = dataclasses.replace(config, managed_nodes=ManagedNodeSettings(count=5))
        assert build_blueprint(config).managed.display_names()[-1] == "webserver-5"
