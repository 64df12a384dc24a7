"""Tests for configuration module."""

import json
import os
import pytest
from unittest.mock import patch

from webfleet.domain.errors import ConfigurationError
from webfleet.infrastructure.config import (
    ControlNodeSettings,
    EnvironmentSettings,
    ManagedNodeSettings,
    SSHSettings,
    WebfleetConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env():
    env = {k: v for k, v in os.environ.items() if not k.startswith("WEBFLEET_")}
    with patch.dict(os.environ, env, clear=True):
        yield


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/webfleet.json")
        assert config.log_level == "WARNING"
        assert config.environment.name == "webfleet-dev"
        assert config.environment.region == "us-east-1"
        assert config.network.cidr == "10.0.0.0/16"
        assert config.managed_nodes.count == 3
        assert config.managed_nodes.ingress_rules == (("SSH", 22), ("HTTP", 80))
        assert config.control_node.ingress_rules == (("SSH", 22),)
        assert config.orchestration.inventory_template == "$hosts"
        assert config.ssh.key_name == ""

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/webfleet.json")
        assert isinstance(config.environment, EnvironmentSettings)
        assert isinstance(config.control_node, ControlNodeSettings)
        assert isinstance(config.managed_nodes, ManagedNodeSettings)
        assert isinstance(config.ssh, SSHSettings)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text(json.dumps({
            "log_level": "debug",
            "environment": {"name": "staging", "region": "eu-west-1"},
            "network": {"availability_zones": ["eu-west-1a"], "private_subnet_count": 0},
            "managed_nodes": {
                "count": 5,
                "ingress_rules": [["SSH", 22], {"description": "HTTPS", "port": 443}],
            },
            "ssh": {"key_name": "deployer"},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.environment.name == "staging"
        assert config.network.availability_zones == ("eu-west-1a",)
        assert config.network.private_subnet_count == 0
        assert config.managed_nodes.count == 5
        assert config.managed_nodes.ingress_rules == (("SSH", 22), ("HTTPS", 443))
        assert config.ssh.key_name == "deployer"

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text(json.dumps({"ssh": {"user": "ubuntu"}}))

        config = load_config(path=str(config_file))
        assert config.ssh.user == "ubuntu"
        assert config.ssh.connect_timeout == 30
        assert config.managed_nodes.count == 3

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text(json.dumps({"ssh": {"user": "ubuntu", "password": "x"}}))
        assert load_config(path=str(config_file)).ssh.user == "ubuntu"

    def test_invalid_json_falls_back_to_defaults(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text("{not json")
        assert load_config(path=str(config_file)) == WebfleetConfig()

    def test_invalid_rule(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text(json.dumps({"control_node": {"ingress_rules": [["SSH", "x"]]}}))
        with pytest.raises(ConfigurationError, match="Invalid ingress rule"):
            load_config(path=str(config_file))


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "webfleet.json"
        config_file.write_text(json.dumps({"managed_nodes": {"count": 2}}))
        with patch.dict(os.environ, {"WEBFLEET_MANAGED_NODES_COUNT": "4"}):
            config = load_config(path=str(config_file))
        assert config.managed_nodes.count == 4

    def test_env_types(self):
        env = {
            "WEBFLEET_SSH_KEY_NAME": "deployer",
            "WEBFLEET_ORCHESTRATION_VERIFY_STATUS_PAGES": "false",
            "WEBFLEET_NETWORK_AVAILABILITY_ZONES": "us-west-2a, us-west-2b",
            "WEBFLEET_MANAGED_NODES_INGRESS_RULES": "SSH:22,HTTP:8080",
            "WEBFLEET_LOG_LEVEL": "info",
        }
        with patch.dict(os.environ, env):
            config = load_config(path="/nonexistent/webfleet.json")
        assert config.ssh.key_name == "deployer"
        assert config.orchestration.verify_status_pages is False
        assert config.network.availability_zones == ("us-west-2a", "us-west-2b")
        assert config.managed_nodes.ingress_rules == (("SSH", 22), ("HTTP", 8080))
        assert config.log_level == "INFO"

    def test_custom_prefix(self):
        with patch.dict(os.environ, {"FLEET_ENVIRONMENT_NAME": "prod"}):
            config = load_config(path="/nonexistent/webfleet.json", env_prefix="FLEET")
        assert config.environment.name == "prod"

    def test_bad_integer(self):
        with patch.dict(os.environ, {"WEBFLEET_MANAGED_NODES_COUNT": "many"}):
            with pytest.raises(ConfigurationError, match="expected an integer"):
                load_config(path="/nonexistent/webfleet.json")

    def test_malformed_rule_string(self):
        with patch.dict(os.environ, {"WEBFLEET_CONTROL_NODE_INGRESS_RULES": "ssh"}):
            with pytest.raises(ConfigurationError, match="description:port"):
                load_config(path="/nonexistent/webfleet.json")


class TestRequireCredentials:
    def test_missing_key_name(self):
        with pytest.raises(ConfigurationError, match="key_name"):
            WebfleetConfig().require_credentials()

    def test_missing_key_path(self):
        config = WebfleetConfig(ssh=SSHSettings(key_name="deployer"))
        with pytest.raises(ConfigurationError, match="private_key_path"):
            config.require_credentials()

    def test_key_file_must_exist(self, tmp_path):
        config = WebfleetConfig(
            ssh=SSHSettings(key_name="deployer", private_key_path=str(tmp_path / "nope.pem"))
        )
        with pytest.raises(ConfigurationError, match="not found"):
            config.require_credentials()

    def test_ok(self, config):
        config.require_credentials()
