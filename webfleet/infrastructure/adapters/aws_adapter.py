"""
AWS Cloud Provider Adapter

Architectural Intent:
- Implements CloudProviderPort for AWS EC2 through a boto3 client
- Every resource carries Name, Environment and ManagedBy tags; lookups by
  those tags make each ensure_* call find-or-create, so apply is re-runnable
- Blocking boto3 calls run in the default executor so independent steps of
  the apply DAG overlap

Design Decisions:
- __init__ accepts a ready client so tests can pass a MagicMock; otherwise a
  boto3 Session is built lazily from region/profile
- botocore ClientError/BotoCoreError are converted to ProviderError with the
  failing operation name; nothing is retried here
- The default security group egress rule is re-asserted explicitly; a
  duplicate-permission answer means it is already in place
- An existing group converges to exactly the configured ingress rules: missing
  ones are authorized, ones no longer configured are revoked
- destroy_environment walks the dependency graph backwards: instances,
  security groups, internet gateway, subnets, route tables, VPC
"""

import asyncio
import functools
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from webfleet.domain.entities.environment import NetworkHandle, ObservedEnvironment
from webfleet.domain.entities.instance import (
    ImageQuery,
    InstanceRole,
    InstanceSpec,
    ProvisionedInstance,
)
from webfleet.domain.entities.network import NetworkSpec
from webfleet.domain.entities.security import SecurityRuleSet
from webfleet.domain.errors import ProviderError

logger = logging.getLogger(__name__)

MANAGED_BY = "webfleet"
LIVE_STATES = ["pending", "running", "stopping", "stopped"]


def _tags(environment: str, name: str, **extra: str) -> list[dict[str, str]]:
    tags = {"Name": name, "Environment": environment, "ManagedBy": MANAGED_BY}
    tags.update(extra)
    return [{"Key": k, "Value": v} for k, v in tags.items()]


def _tag_spec(resource_type: str, environment: str, name: str, **extra: str) -> list[dict]:
    return [{"ResourceType": resource_type, "Tags": _tags(environment, name, **extra)}]


def _env_filters(environment: str) -> list[dict[str, Any]]:
    return [
        {"Name": "tag:Environment", "Values": [environment]},
        {"Name": "tag:ManagedBy", "Values": [MANAGED_BY]},
    ]


def _tag_dict(resource: dict) -> dict[str, str]:
    return {t["Key"]: t["Value"] for t in resource.get("Tags", [])}


def _to_instance(raw: dict) -> ProvisionedInstance:
    tags = _tag_dict(raw)
    try:
        role = InstanceRole(tags.get("Role", InstanceRole.MANAGED.value))
    except ValueError:
        role = InstanceRole.MANAGED
    return ProvisionedInstance(
        instance_id=raw["InstanceId"],
        name=tags.get("Name", raw["InstanceId"]),
        role=role,
        public_ip=raw.get("PublicIpAddress") or "",
        private_ip=raw.get("PrivateIpAddress") or "",
        public_dns=raw.get("PublicDnsName") or "",
        private_dns=raw.get("PrivateDnsName") or "",
        availability_zone=raw.get("Placement", {}).get("AvailabilityZone", ""),
        tags=tags,
    )


def _ingress_ports(group: dict) -> set[tuple[str, int]]:
    return {
        (perm.get("IpProtocol", ""), perm.get("FromPort", 0))
        for perm in group.get("IpPermissions", [])
    }


class AWSAdapter:
    """
    AWS EC2 cloud provider adapter.

    Configuration parameters
    ------------------------
    region : str
        AWS region name (e.g. "us-east-1").
    profile : str | None
        AWS credentials profile name passed to boto3.Session.
    client : botocore client | None
        Pre-built EC2 client; built lazily from region/profile when omitted.
    waiter_delay, waiter_max_attempts : int
        Polling settings for the instance_running/terminated waiters.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: Optional[str] = None,
        client: Any = None,
        waiter_delay: int = 5,
        waiter_max_attempts: int = 60,
    ) -> None:
        self.region = region
        self.profile = profile
        self.waiter_delay = waiter_delay
        self.waiter_max_attempts = waiter_max_attempts
        self._client = client

        logger.debug("AWSAdapter initialised (region=%s, profile=%s)", region, profile)

    @property
    def client(self) -> Any:
        if self._client is None:
            session = boto3.session.Session(
                profile_name=self.profile, region_name=self.region
            )
            self._client = session.client("ec2")
        return self._client

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _call(self, operation: str, **params: Any) -> dict:
        method = getattr(self.client, operation)
        logger.debug("EC2 %s %s", operation, params)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(method, **params))
        except ClientError as e:
            error = e.response.get("Error", {})
            raise ProviderError(
                operation, error.get("Message", str(e)), error.get("Code")
            ) from e
        except BotoCoreError as e:
            raise ProviderError(operation, str(e)) from e

    async def _wait(self, waiter_name: str, **params: Any) -> None:
        waiter = self.client.get_waiter(waiter_name)
        config = {"Delay": self.waiter_delay, "MaxAttempts": self.waiter_max_attempts}
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None, functools.partial(waiter.wait, WaiterConfig=config, **params)
            )
        except (ClientError, BotoCoreError) as e:
            raise ProviderError(f"wait:{waiter_name}", str(e)) from e

    async def _describe_instances(self, filters: list[dict]) -> list[dict]:
        response = await self._call("describe_instances", Filters=filters)
        return [
            instance
            for reservation in response.get("Reservations", [])
            for instance in reservation.get("Instances", [])
        ]

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    async def _find_vpc(self, environment: str) -> Optional[dict]:
        response = await self._call("describe_vpcs", Filters=_env_filters(environment))
        vpcs = response.get("Vpcs", [])
        return vpcs[0] if vpcs else None

    async def _ensure_internet_gateway(
        self, environment: str, vpc_id: str, name: str
    ) -> str:
        response = await self._call(
            "describe_internet_gateways",
            Filters=[{"Name": "attachment.vpc-id", "Values": [vpc_id]}],
        )
        gateways = response.get("InternetGateways", [])
        if gateways:
            return gateways[0]["InternetGatewayId"]

        created = await self._call(
            "create_internet_gateway",
            TagSpecifications=_tag_spec("internet-gateway", environment, f"{name}-igw"),
        )
        igw_id = created["InternetGateway"]["InternetGatewayId"]
        await self._call("attach_internet_gateway", InternetGatewayId=igw_id, VpcId=vpc_id)
        logger.info("Created internet gateway %s for %s", igw_id, vpc_id)
        return igw_id

    async def _ensure_public_route_table(
        self, environment: str, vpc_id: str, igw_id: str, name: str
    ) -> str:
        table_name = f"{name}-public"
        response = await self._call(
            "describe_route_tables",
            Filters=[
                {"Name": "vpc-id", "Values": [vpc_id]},
                {"Name": "tag:Name", "Values": [table_name]},
            ],
        )
        tables = response.get("RouteTables", [])
        if tables:
            return tables[0]["RouteTableId"]

        created = await self._call(
            "create_route_table",
            VpcId=vpc_id,
            TagSpecifications=_tag_spec("route-table", environment, table_name),
        )
        rtb_id = created["RouteTable"]["RouteTableId"]
        await self._call(
            "create_route",
            RouteTableId=rtb_id,
            DestinationCidrBlock="0.0.0.0/0",
            GatewayId=igw_id,
        )
        return rtb_id

    async def ensure_network(self, environment: str, spec: NetworkSpec) -> NetworkHandle:
        logger.info("Ensuring network %s (%s) in %s", spec.name, spec.cidr, self.region)

        vpc = await self._find_vpc(environment)
        if vpc is not None:
            vpc_id = vpc["VpcId"]
            if vpc.get("CidrBlock") and vpc["CidrBlock"] != spec.cidr:
                logger.warning(
                    "VPC %s has range %s, configuration asks for %s",
                    vpc_id,
                    vpc["CidrBlock"],
                    spec.cidr,
                )
        else:
            created = await self._call(
                "create_vpc",
                CidrBlock=spec.cidr,
                TagSpecifications=_tag_spec("vpc", environment, spec.name),
            )
            vpc_id = created["Vpc"]["VpcId"]
            await self._call(
                "modify_vpc_attribute", VpcId=vpc_id, EnableDnsSupport={"Value": True}
            )
            await self._call(
                "modify_vpc_attribute", VpcId=vpc_id, EnableDnsHostnames={"Value": True}
            )
            logger.info("Created VPC %s", vpc_id)

        igw_id = await self._ensure_internet_gateway(environment, vpc_id, spec.name)
        rtb_id = await self._ensure_public_route_table(environment, vpc_id, igw_id, spec.name)

        response = await self._call(
            "describe_subnets", Filters=[{"Name": "vpc-id", "Values": [vpc_id]}]
        )
        existing = {
            _tag_dict(s).get("Name", s["SubnetId"]): s["SubnetId"]
            for s in response.get("Subnets", [])
        }

        subnet_ids: dict[str, str] = {}
        for subnet in spec.subnets():
            if subnet.name in existing:
                subnet_ids[subnet.name] = existing[subnet.name]
                continue
            created = await self._call(
                "create_subnet",
                VpcId=vpc_id,
                CidrBlock=subnet.cidr,
                AvailabilityZone=subnet.availability_zone,
                TagSpecifications=_tag_spec(
                    "subnet",
                    environment,
                    subnet.name,
                    Tier="public" if subnet.public else "private",
                ),
            )
            subnet_id = created["Subnet"]["SubnetId"]
            if subnet.public:
                await self._call(
                    "modify_subnet_attribute",
                    SubnetId=subnet_id,
                    MapPublicIpOnLaunch={"Value": True},
                )
                await self._call(
                    "associate_route_table", RouteTableId=rtb_id, SubnetId=subnet_id
                )
            subnet_ids[subnet.name] = subnet_id
            logger.info("Created subnet %s %s (%s)", subnet.name, subnet.cidr, subnet_id)

        return NetworkHandle(vpc_id=vpc_id, subnet_ids=subnet_ids)

    # ------------------------------------------------------------------
    # Security groups
    # ------------------------------------------------------------------

    async def ensure_security_group(
        self, environment: str, network: NetworkHandle, rule_set: SecurityRuleSet
    ) -> str:
        response = await self._call(
            "describe_security_groups",
            Filters=[
                {"Name": "vpc-id", "Values": [network.vpc_id]},
                {"Name": "group-name", "Values": [rule_set.name]},
            ],
        )
        groups = response.get("SecurityGroups", [])

        if groups:
            group = groups[0]
            group_id = group["GroupId"]
            present = _ingress_ports(group)
            wanted = {(rule.protocol, rule.port) for rule in rule_set.ingress}
            missing = [
                rule for rule in rule_set.ingress
                if (rule.protocol, rule.port) not in present
            ]
            surplus = [
                perm for perm in group.get("IpPermissions", [])
                if (perm.get("IpProtocol", ""), perm.get("FromPort", 0)) not in wanted
            ]
            if surplus:
                logger.info(
                    "Revoking %d stale ingress rule(s) from %s", len(surplus), group_id
                )
                await self._call(
                    "revoke_security_group_ingress",
                    GroupId=group_id,
                    IpPermissions=surplus,
                )
        else:
            created = await self._call(
                "create_security_group",
                GroupName=rule_set.name,
                Description=rule_set.description,
                VpcId=network.vpc_id,
                TagSpecifications=_tag_spec("security-group", environment, rule_set.name),
            )
            group_id = created["GroupId"]
            missing = list(rule_set.ingress)
            logger.info("Created security group %s (%s)", rule_set.name, group_id)

        if missing:
            await self._call(
                "authorize_security_group_ingress",
                GroupId=group_id,
                IpPermissions=[rule.to_ip_permission() for rule in missing],
            )

        try:
            await self._call(
                "authorize_security_group_egress",
                GroupId=group_id,
                IpPermissions=rule_set.egress_permissions(),
            )
        except ProviderError as e:
            if e.code != "InvalidPermission.Duplicate":
                raise

        return group_id

    # ------------------------------------------------------------------
    # Images and instances
    # ------------------------------------------------------------------

    async def resolve_image(self, query: ImageQuery) -> str:
        if query.pinned:
            return query.image_id

        response = await self._call(
            "describe_images",
            Owners=list(query.owners),
            Filters=[
                {"Name": "name", "Values": [query.name_pattern]},
                {"Name": "state", "Values": ["available"]},
            ],
        )
        images = response.get("Images", [])
        if not images:
            raise ProviderError(
                "describe_images", f"No image matches {query.name_pattern!r}"
            )
        newest = max(images, key=lambda i: i.get("CreationDate", ""))
        logger.info(
            "Resolved image %s (%s) for pattern %s",
            newest["ImageId"],
            newest.get("Name", ""),
            query.name_pattern,
        )
        return newest["ImageId"]

    async def _launch(
        self,
        environment: str,
        spec: InstanceSpec,
        name: str,
        image_id: str,
        subnet_id: str,
        security_group_ids: list[str],
    ) -> str:
        params: dict[str, Any] = dict(
            ImageId=image_id,
            InstanceType=spec.instance_type,
            KeyName=spec.key_name,
            SubnetId=subnet_id,
            SecurityGroupIds=security_group_ids,
            MinCount=1,
            MaxCount=1,
            TagSpecifications=_tag_spec(
                "instance", environment, name, Role=spec.role.value
            ),
        )
        if spec.user_data:
            params["UserData"] = spec.user_data
        response = await self._call("run_instances", **params)
        instance_id = response["Instances"][0]["InstanceId"]
        logger.info("Launched %s as %s (%s)", name, instance_id, spec.instance_type)
        return instance_id

    async def ensure_instances(
        self,
        environment: str,
        spec: InstanceSpec,
        image_id: str,
        subnet_id: str,
        security_group_ids: list[str],
    ) -> list[ProvisionedInstance]:
        filters = _env_filters(environment) + [
            {"Name": "tag:Role", "Values": [spec.role.value]},
            {"Name": "instance-state-name", "Values": LIVE_STATES},
        ]
        existing = {
            _tag_dict(raw).get("Name", raw["InstanceId"]): raw
            for raw in await self._describe_instances(filters)
        }
        wanted = spec.display_names()

        surplus = [raw["InstanceId"] for name, raw in existing.items() if name not in wanted]
        if surplus:
            logger.info("Terminating surplus %s instance(s): %s", spec.role.value, surplus)
            await self._call("terminate_instances", InstanceIds=surplus)

        stopped = [
            existing[name]["InstanceId"]
            for name in wanted
            if name in existing and existing[name]["State"]["Name"] in ("stopping", "stopped")
        ]
        if stopped:
            await self._wait("instance_stopped", InstanceIds=stopped)
            await self._call("start_instances", InstanceIds=stopped)

        launched = await asyncio.gather(
            *(
                self._launch(environment, spec, name, image_id, subnet_id, security_group_ids)
                for name in wanted
                if name not in existing
            )
        )
        instance_ids = [existing[n]["InstanceId"] for n in wanted if n in existing]
        instance_ids += list(launched)

        await self._wait("instance_running", InstanceIds=instance_ids)
        # Status checks pass once the OS is up and sshd is listening
        await self._wait("instance_status_ok", InstanceIds=instance_ids)
        response = await self._call("describe_instances", InstanceIds=instance_ids)
        instances = [
            _to_instance(raw)
            for reservation in response.get("Reservations", [])
            for raw in reservation.get("Instances", [])
        ]
        order = {name: index for index, name in enumerate(wanted)}
        instances.sort(key=lambda i: order.get(i.name, len(order)))
        return instances

    # ------------------------------------------------------------------
    # Whole-environment operations
    # ------------------------------------------------------------------

    async def describe_environment(self, environment: str) -> ObservedEnvironment:
        vpc = await self._find_vpc(environment)
        instances = await self._describe_instances(
            _env_filters(environment)
            + [{"Name": "instance-state-name", "Values": LIVE_STATES}]
        )
        if vpc is None:
            return ObservedEnvironment(
                environment=environment,
                instances=tuple(_to_instance(raw) for raw in instances),
            )

        vpc_id = vpc["VpcId"]
        vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]
        subnets = (await self._call("describe_subnets", Filters=vpc_filter)).get("Subnets", [])
        groups = (
            await self._call("describe_security_groups", Filters=vpc_filter)
        ).get("SecurityGroups", [])

        return ObservedEnvironment(
            environment=environment,
            network_name=_tag_dict(vpc).get("Name"),
            vpc_id=vpc_id,
            subnets={_tag_dict(s).get("Name", s["SubnetId"]): s["SubnetId"] for s in subnets},
            security_groups={
                g["GroupName"]: g["GroupId"] for g in groups if g["GroupName"] != "default"
            },
            instances=tuple(_to_instance(raw) for raw in instances),
        )

    async def destroy_environment(self, environment: str) -> list[str]:
        deleted: list[str] = []

        instances = await self._describe_instances(
            _env_filters(environment)
            + [{"Name": "instance-state-name", "Values": LIVE_STATES}]
        )
        instance_ids = [raw["InstanceId"] for raw in instances]
        if instance_ids:
            logger.info("Terminating %d instance(s)", len(instance_ids))
            await self._call("terminate_instances", InstanceIds=instance_ids)
            await self._wait("instance_terminated", InstanceIds=instance_ids)
            deleted += instance_ids

        vpc = await self._find_vpc(environment)
        if vpc is None:
            return deleted
        vpc_id = vpc["VpcId"]
        vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]

        groups = (
            await self._call("describe_security_groups", Filters=vpc_filter)
        ).get("SecurityGroups", [])
        for group in groups:
            if group["GroupName"] == "default":
                continue
            await self._call("delete_security_group", GroupId=group["GroupId"])
            deleted.append(group["GroupId"])

        gateways = (
            await self._call(
                "describe_internet_gateways",
                Filters=[{"Name": "attachment.vpc-id", "Values": [vpc_id]}],
            )
        ).get("InternetGateways", [])
        for gateway in gateways:
            igw_id = gateway["InternetGatewayId"]
            await self._call("detach_internet_gateway", InternetGatewayId=igw_id, VpcId=vpc_id)
            await self._call("delete_internet_gateway", InternetGatewayId=igw_id)
            deleted.append(igw_id)

        subnets = (await self._call("describe_subnets", Filters=vpc_filter)).get("Subnets", [])
        for subnet in subnets:
            await self._call("delete_subnet", SubnetId=subnet["SubnetId"])
            deleted.append(subnet["SubnetId"])

        tables = (await self._call("describe_route_tables", Filters=vpc_filter)).get(
            "RouteTables", []
        )
        for table in tables:
            if any(a.get("Main") for a in table.get("Associations", [])):
                continue
            await self._call("delete_route_table", RouteTableId=table["RouteTableId"])
            deleted.append(table["RouteTableId"])

        await self._call("delete_vpc", VpcId=vpc_id)
        deleted.append(vpc_id)
        logger.info("Destroyed environment %s (%d resources)", environment, len(deleted))
        return deleted
