"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all webfleet settings
- Falls back to sensible defaults when the config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- Credentials (key pair name, private key path) have no defaults and are
  checked only by the commands that need them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

from webfleet.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentSettings:
    """Which environment to stand up, and where."""
    name: str = "webfleet-dev"
    region: str = "us-east-1"
    profile: str = ""


@dataclass(frozen=True)
class NetworkSettings:
    cidr: str = "10.0.0.0/16"
    availability_zones: tuple[str, ...] = ("us-east-1a", "us-east-1b")
    public_subnet_count: int = 2
    private_subnet_count: int = 2
    subnet_prefix: int = 24


@dataclass(frozen=True)
class ImageSettings:
    """Machine image lookup. Set image_id to pin it."""
    name_pattern: str = "amzn2-ami-hvm-*-x86_64-gp2"
    owners: tuple[str, ...] = ("amazon",)
    image_id: str = ""


@dataclass(frozen=True)
class ControlNodeSettings:
    name: str = "ansible-control"
    instance_type: str = "t2.micro"
    ingress_rules: tuple[tuple[str, int], ...] = (("SSH", 22),)
    user_data_path: str = ""


@dataclass(frozen=True)
class ManagedNodeSettings:
    name: str = "webserver"
    instance_type: str = "t2.micro"
    count: int = 3
    ingress_rules: tuple[tuple[str, int], ...] = (("SSH", 22), ("HTTP", 80))


@dataclass(frozen=True)
class SSHSettings:
    user: str = "ec2-user"
    key_name: str = ""
    private_key_path: str = ""
    connect_timeout: int = 30


@dataclass(frozen=True)
class OrchestrationSettings:
    remote_dir: str = "/home/ec2-user/ansible"
    inventory_path: str = "build/hosts"
    inventory_template: str = "$hosts"
    playbook_dir: str = ""
    verify_status_pages: bool = True
    verify_timeout: int = 10


@dataclass(frozen=True)
class StateSettings:
    db_path: str = "webfleet.db"


@dataclass(frozen=True)
class TelemetrySettings:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class WebfleetConfig:
    """Root configuration for webfleet."""
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)
    network: NetworkSettings = field(default_factory=NetworkSettings)
    image: ImageSettings = field(default_factory=ImageSettings)
    control_node: ControlNodeSettings = field(default_factory=ControlNodeSettings)
    managed_nodes: ManagedNodeSettings = field(default_factory=ManagedNodeSettings)
    ssh: SSHSettings = field(default_factory=SSHSettings)
    orchestration: OrchestrationSettings = field(default_factory=OrchestrationSettings)
    state: StateSettings = field(default_factory=StateSettings)
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)
    log_level: str = "WARNING"

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless SSH credentials are usable."""
        if not self.ssh.key_name:
            raise ConfigurationError("ssh.key_name is required (EC2 key pair name)")
        if not self.ssh.private_key_path:
            raise ConfigurationError("ssh.private_key_path is required")
        if not Path(self.ssh.private_key_path).expanduser().is_file():
            raise ConfigurationError(
                f"Private key not found: {self.ssh.private_key_path}"
            )


_SECTIONS = tuple(
    f.name for f in dataclasses.fields(WebfleetConfig) if f.name != "log_level"
)


def _env_override(data: dict, prefix: str = "WEBFLEET") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern WEBFLEET_SECTION_KEY, where
    SECTION may itself contain underscores.
    For example: WEBFLEET_MANAGED_NODES_COUNT=5, WEBFLEET_SSH_KEY_NAME=deployer
    """
    # Longest section first so "managed_nodes" wins over a shorter match
    sections = sorted(_SECTIONS, key=len, reverse=True)
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        rest = key[len(prefix) + 1:].lower()
        for section in sections:
            if rest.startswith(f"{section}_"):
                field_name = rest[len(section) + 1:]
                if not isinstance(data.get(section), dict):
                    data[section] = {}
                data[section][field_name] = value
                break
        else:
            data[rest] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _parse_rules(value) -> tuple[tuple[str, int], ...]:
    """Accept [[desc, port], ...], [{"description": .., "port": ..}] or "ssh:22,http:80"."""
    if isinstance(value, str):
        pairs = []
        for item in value.split(","):
            if not item.strip():
                continue
            desc, sep, port = item.strip().rpartition(":")
            if not sep:
                raise ConfigurationError(f"Ingress rule {item!r} must be description:port")
            pairs.append((desc, port))
        value = pairs

    rules = []
    for item in value:
        if isinstance(item, dict):
            desc, port = item.get("description", ""), item.get("port")
        else:
            desc, port = item
        try:
            rules.append((str(desc), int(port)))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid ingress rule {item!r}: {e}") from e
    return tuple(rules)


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    for f in dataclasses.fields(cls):
        if f.name not in filtered:
            continue
        val = filtered[f.name]

        if f.type == "tuple[tuple[str, int], ...]":
            filtered[f.name] = _parse_rules(val)
            continue

        # Comma-separated strings become tuples for tuple fields
        if f.type == "tuple[str, ...]":
            if isinstance(val, str):
                filtered[f.name] = tuple(v.strip() for v in val.split(",") if v.strip())
            elif isinstance(val, list):
                filtered[f.name] = tuple(val)
            continue

        if isinstance(val, str):
            try:
                if f.type == "int":
                    filtered[f.name] = int(val)
                elif f.type == "bool":
                    filtered[f.name] = val.lower() in ("true", "1", "yes")
            except ValueError as e:
                raise ConfigurationError(
                    f"{cls.__name__}.{f.name}: expected an integer, got {val!r}"
                ) from e

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "WEBFLEET",
) -> WebfleetConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (WEBFLEET_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to webfleet.json in CWD.
        env_prefix: Environment variable prefix. Defaults to WEBFLEET.
    """
    config_path = Path(path) if path else Path("webfleet.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return WebfleetConfig(
        environment=_build_sub_config(EnvironmentSettings, data.get("environment", {})),
        network=_build_sub_config(NetworkSettings, data.get("network", {})),
        image=_build_sub_config(ImageSettings, data.get("image", {})),
        control_node=_build_sub_config(ControlNodeSettings, data.get("control_node", {})),
        managed_nodes=_build_sub_config(ManagedNodeSettings, data.get("managed_nodes", {})),
        ssh=_build_sub_config(SSHSettings, data.get("ssh", {})),
        orchestration=_build_sub_config(
            OrchestrationSettings, data.get("orchestration", {})
        ),
        state=_build_sub_config(StateSettings, data.get("state", {})),
        telemetry=_build_sub_config(TelemetrySettings, data.get("telemetry", {})),
        log_level=str(data.get("log_level", "WARNING")).upper(),
    )
