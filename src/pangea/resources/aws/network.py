"""VPC networking resources: VPCs, subnets, gateways, routing and security groups."""

from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import Field, model_validator
from ..base import (
    BaseAttributes,
    NestedBlock,
    merge_attributes,
    mutually_exclusive,
    validate_attributes,
    write_attributes,
    write_meta_arguments,
)
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import AvailabilityZone, CidrBlock, Ipv6CidrBlock, SubnetCidrBlock, Tags, VpcCidrBlock
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.network")

VPC_OUTPUTS = [
    "id", "arn", "cidr_block", "default_security_group_id", "default_route_table_id",
    "default_network_acl_id", "main_route_table_id", "owner_id",
]
SUBNET_OUTPUTS = ["id", "arn", "availability_zone", "availability_zone_id", "cidr_block", "vpc_id", "owner_id"]
INTERNET_GATEWAY_OUTPUTS = ["id", "arn", "owner_id"]
EIP_OUTPUTS = ["id", "allocation_id", "association_id", "public_ip", "private_ip", "public_dns"]
NAT_GATEWAY_OUTPUTS = ["id", "allocation_id", "subnet_id", "network_interface_id", "private_ip", "public_ip"]
ROUTE_TABLE_OUTPUTS = {"id": "id", "arn": "arn", "owner_id": "owner_id", "route_table_id": "id"}
SECURITY_GROUP_OUTPUTS = ["id", "arn", "vpc_id", "owner_id", "name"]

ROUTE_TARGETS = [
    "gateway_id",
    "nat_gateway_id",
    "network_interface_id",
    "transit_gateway_id",
    "vpc_peering_connection_id",
    "egress_only_gateway_id",
    "vpc_endpoint_id",
    "carrier_gateway_id",
    "local_gateway_id",
]

VALID_PROTOCOLS = ["tcp", "udp", "icmp", "icmpv6", "-1"]


class VpcAttributes(BaseAttributes):
    cidr_block: VpcCidrBlock
    enable_dns_hostnames: bool = True
    enable_dns_support: bool = True
    instance_tenancy: Literal["default", "dedicated", "host"] = "default"
    assign_generated_ipv6_cidr_block: Optional[bool] = None
    tags: Tags = Field(default_factory=dict)


class SubnetAttributes(BaseAttributes):
    vpc_id: str
    cidr_block: SubnetCidrBlock
    availability_zone: AvailabilityZone
    map_public_ip_on_launch: bool = False
    ipv6_cidr_block: Optional[Ipv6CidrBlock] = None
    assign_ipv6_address_on_creation: Optional[bool] = None
    tags: Tags = Field(default_factory=dict)


class InternetGatewayAttributes(BaseAttributes):
    vpc_id: Optional[str] = None
    tags: Tags = Field(default_factory=dict)


class EipAttributes(BaseAttributes):
    domain: Literal["vpc", "standard"] = "vpc"
    instance: Optional[str] = None
    network_interface: Optional[str] = None
    associate_with_private_ip: Optional[str] = None
    public_ipv4_pool: Optional[str] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_association(self) -> "EipAttributes":
        mutually_exclusive(self, "instance", "network_interface")
        return self


class NatGatewayAttributes(BaseAttributes):
    subnet_id: str
    allocation_id: Optional[str] = None
    connectivity_type: Literal["public", "private"] = "public"
    private_ip: Optional[str] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_allocation(self) -> "NatGatewayAttributes":
        if self.allocation_id is not None and self.connectivity_type == "private":
            raise ValueError("allocation_id can only be used with public NAT gateways")
        return self

    @property
    def requires_elastic_ip(self) -> bool:
        return self.connectivity_type == "public" and self.allocation_id is None


class Route(NestedBlock):
    cidr_block: Optional[CidrBlock] = None
    ipv6_cidr_block: Optional[Ipv6CidrBlock] = None
    gateway_id: Optional[str] = None
    nat_gateway_id: Optional[str] = None
    network_interface_id: Optional[str] = None
    transit_gateway_id: Optional[str] = None
    vpc_peering_connection_id: Optional[str] = None
    egress_only_gateway_id: Optional[str] = None
    vpc_endpoint_id: Optional[str] = None
    carrier_gateway_id: Optional[str] = None
    local_gateway_id: Optional[str] = None

    @model_validator(mode="after")
    def check_destination_and_target(self) -> "Route":
        if self.cidr_block is None and self.ipv6_cidr_block is None:
            raise ValueError("Route must have either cidr_block or ipv6_cidr_block")
        targets = [target for target in ROUTE_TARGETS if getattr(self, target) is not None]
        if not targets:
            raise ValueError("Route must specify exactly one target")
        if len(targets) > 1:
            raise ValueError("Route can only have one target, but multiple were specified")
        return self


class RouteTableAttributes(BaseAttributes):
    vpc_id: str
    routes: List[Route] = Field(default_factory=list)
    propagating_vgws: List[str] = Field(default_factory=list)
    tags: Tags = Field(default_factory=dict)

    @property
    def route_count(self) -> int:
        return len(self.routes)

    @property
    def has_internet_route(self) -> bool:
        return any(route.cidr_block == "0.0.0.0/0" and route.gateway_id for route in self.routes)

    @property
    def has_nat_route(self) -> bool:
        return any(route.nat_gateway_id for route in self.routes)


class RouteTableAssociationAttributes(BaseAttributes):
    route_table_id: str
    subnet_id: Optional[str] = None
    gateway_id: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "RouteTableAssociationAttributes":
        if (self.subnet_id is None) == (self.gateway_id is None):
            raise ValueError("Must specify exactly one of 'subnet_id' or 'gateway_id'")
        return self


class SecurityGroupRule(NestedBlock):
    from_port: int = Field(..., ge=-1, le=65535)
    to_port: int = Field(..., ge=-1, le=65535)
    protocol: str
    cidr_blocks: List[CidrBlock] = Field(default_factory=list)
    ipv6_cidr_blocks: List[Ipv6CidrBlock] = Field(default_factory=list)
    prefix_list_ids: List[str] = Field(default_factory=list)
    security_groups: List[str] = Field(default_factory=list)
    self_reference: bool = Field(False, alias="self")
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def check_required(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            missing = [key for key in ("from_port", "to_port", "protocol") if data.get(key) is None]
            if missing:
                raise ValueError(f"Security group rule is missing required fields: {', '.join(missing)}")
        return data

    @model_validator(mode="after")
    def check_rule(self) -> "SecurityGroupRule":
        if self.protocol not in VALID_PROTOCOLS:
            raise ValueError(
                f"protocol '{self.protocol}' is not valid; expected one of: {', '.join(VALID_PROTOCOLS)}"
            )
        if self.from_port > self.to_port:
            raise ValueError(f"from_port ({self.from_port}) cannot be greater than to_port ({self.to_port})")
        return self


class SecurityGroupAttributes(BaseAttributes):
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    vpc_id: Optional[str] = None
    ingress_rules: List[SecurityGroupRule] = Field(default_factory=list)
    egress_rules: List[SecurityGroupRule] = Field(default_factory=list)
    revoke_rules_on_delete: Optional[bool] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_name(self) -> "SecurityGroupAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self


@register_resource("aws_vpc", VpcAttributes, category="network", outputs=VPC_OUTPUTS)
def aws_vpc(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
            **kwargs: Any) -> ResourceReference:
    """AWS Virtual Private Cloud."""
    attrs = validate_attributes(VpcAttributes, "aws_vpc", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_vpc", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_vpc", name, attrs, VPC_OUTPUTS)


@register_resource("aws_subnet", SubnetAttributes, category="network", outputs=SUBNET_OUTPUTS)
def aws_subnet(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
               **kwargs: Any) -> ResourceReference:
    """Subnet inside a VPC."""
    attrs = validate_attributes(SubnetAttributes, "aws_subnet", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_subnet", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_subnet", name, attrs, SUBNET_OUTPUTS)


@register_resource("aws_internet_gateway", InternetGatewayAttributes, category="network",
                   outputs=INTERNET_GATEWAY_OUTPUTS)
def aws_internet_gateway(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                         **kwargs: Any) -> ResourceReference:
    """Internet gateway, optionally attached to a VPC."""
    attrs = validate_attributes(InternetGatewayAttributes, "aws_internet_gateway", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_internet_gateway", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_internet_gateway", name, attrs, INTERNET_GATEWAY_OUTPUTS)


@register_resource("aws_eip", EipAttributes, category="network", outputs=EIP_OUTPUTS)
def aws_eip(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
            **kwargs: Any) -> ResourceReference:
    """Elastic IP address."""
    attrs = validate_attributes(EipAttributes, "aws_eip", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_eip", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_eip", name, attrs, EIP_OUTPUTS)


@register_resource("aws_nat_gateway", NatGatewayAttributes, category="network", outputs=NAT_GATEWAY_OUTPUTS)
def aws_nat_gateway(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                    **kwargs: Any) -> ResourceReference:
    """NAT gateway, public (with an Elastic IP) or private."""
    attrs = validate_attributes(NatGatewayAttributes, "aws_nat_gateway", name, merge_attributes(attributes, kwargs))
    if attrs.requires_elastic_ip:
        logger.debug(f"aws_nat_gateway.{name} is public without allocation_id; AWS will allocate an address")
    with synth.resource("aws_nat_gateway", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_nat_gateway", name, attrs, NAT_GATEWAY_OUTPUTS)


@register_resource("aws_route_table", RouteTableAttributes, category="network", outputs=list(ROUTE_TABLE_OUTPUTS))
def aws_route_table(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                    **kwargs: Any) -> ResourceReference:
    """Route table with inline routes."""
    attrs = validate_attributes(RouteTableAttributes, "aws_route_table", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_route_table", name) as r:
        r.vpc_id(attrs.vpc_id)
        for route in attrs.routes:
            with r.block("route") as block:
                block.update(route.to_dict())
        if attrs.propagating_vgws:
            r.propagating_vgws(attrs.propagating_vgws)
        if attrs.tags:
            r.tags(attrs.tags)
        write_meta_arguments(r, attrs)
    return ResourceReference.build("aws_route_table", name, attrs, ROUTE_TABLE_OUTPUTS)


@register_resource("aws_route_table_association", RouteTableAssociationAttributes, category="network")
def aws_route_table_association(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                                **kwargs: Any) -> ResourceReference:
    """Association between a route table and a subnet or gateway."""
    attrs = validate_attributes(RouteTableAssociationAttributes, "aws_route_table_association", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_route_table_association", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_route_table_association", name, attrs, ["id"])


def _security_group_rule(rule: SecurityGroupRule) -> Dict[str, Any]:
    # Inline rules are attributes, so every field must be present
    return {
        "from_port": rule.from_port,
        "to_port": rule.to_port,
        "protocol": rule.protocol,
        "cidr_blocks": list(rule.cidr_blocks),
        "ipv6_cidr_blocks": list(rule.ipv6_cidr_blocks),
        "prefix_list_ids": list(rule.prefix_list_ids),
        "security_groups": list(rule.security_groups),
        "self": rule.self_reference,
        "description": rule.description,
    }


@register_resource("aws_security_group", SecurityGroupAttributes, category="network",
                   outputs=SECURITY_GROUP_OUTPUTS)
def aws_security_group(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                       **kwargs: Any) -> ResourceReference:
    """
    Security group with inline ingress and egress rules.

    Note that ``ref.name`` is the resource name; use ``ref.ref("name")``
    for the group name interpolation.
    """
    attrs = validate_attributes(SecurityGroupAttributes, "aws_security_group", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_security_group", name) as r:
        write_attributes(r, attrs, skip=("ingress_rules", "egress_rules"))
        if attrs.ingress_rules:
            r.ingress([_security_group_rule(rule) for rule in attrs.ingress_rules])
        if attrs.egress_rules:
            r.egress([_security_group_rule(rule) for rule in attrs.egress_rules])
    return ResourceReference.build("aws_security_group", name, attrs, SECURITY_GROUP_OUTPUTS)
