"""
Blueprint Assembly

Architectural Intent:
- Translates the loaded configuration into the domain's desired state
- The only place that knows how resource names derive from the environment
"""

import logging
from pathlib import Path

from webfleet.domain.entities.environment import EnvironmentBlueprint
from webfleet.domain.entities.instance import ImageQuery, InstanceRole, InstanceSpec
from webfleet.domain.entities.network import NetworkSpec
from webfleet.domain.entities.security import SecurityRuleSet
from webfleet.domain.errors import ConfigurationError
from webfleet.infrastructure.config import WebfleetConfig
from webfleet.resources import CONTROL_NODE_USER_DATA

logger = logging.getLogger(__name__)


def _read_user_data(path: str) -> str:
    source = Path(path).expanduser() if path else CONTROL_NODE_USER_DATA
    try:
        return source.read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read control node user data {source}: {e}") from e


def build_blueprint(config: WebfleetConfig) -> EnvironmentBlueprint:
    env = config.environment.name
    network = NetworkSpec(
        name=f"{env}-vpc",
        cidr=config.network.cidr,
        region=config.environment.region,
        availability_zones=tuple(config.network.availability_zones),
        public_subnet_count=config.network.public_subnet_count,
        private_subnet_count=config.network.private_subnet_count,
        subnet_prefix=config.network.subnet_prefix,
    )
    control_rules = SecurityRuleSet.from_ports(
        f"{env}-control-sg",
        config.control_node.ingress_rules,
        description="SSH access to the ansible control node",
    )
    managed_rules = SecurityRuleSet.from_ports(
        f"{env}-managed-sg",
        config.managed_nodes.ingress_rules,
        description="SSH and HTTP access to the web servers",
    )
    image = ImageQuery(
        name_pattern=config.image.name_pattern,
        owners=tuple(config.image.owners),
        image_id=config.image.image_id,
    )
    subnet = network.public_subnets()[0].name

    control = InstanceSpec(
        role=InstanceRole.CONTROL,
        name=config.control_node.name,
        image=image,
        instance_type=config.control_node.instance_type,
        key_name=config.ssh.key_name,
        subnet=subnet,
        rule_set=control_rules.name,
        user_data=_read_user_data(config.control_node.user_data_path),
    )
    managed = InstanceSpec(
        role=InstanceRole.MANAGED,
        name=config.managed_nodes.name,
        image=image,
        instance_type=config.managed_nodes.instance_type,
        key_name=config.ssh.key_name,
        subnet=subnet,
        rule_set=managed_rules.name,
        count=config.managed_nodes.count,
    )

    logger.debug(
        "Blueprint for %s: %d subnet(s), %d managed node(s)",
        env,
        len(network.subnets()),
        managed.count,
    )
    return EnvironmentBlueprint(
        name=env,
        network=network,
        control_rules=control_rules,
        managed_rules=managed_rules,
        control=control,
        managed=managed,
        inventory_template=config.orchestration.inventory_template,
    )
