"""VPC with public and private subnets in every availability zone."""

import ipaddress
import math
from typing import Any, Dict, List, Optional

from .references import CompositeVpcReference
from ..registry import register_composition
from ..types import is_interpolation
from ...utils.errors import SynthesisError
from ...utils.logging import get_logger

logger = get_logger("resources.composition.vpc")


def split_vpc_cidr(vpc_cidr: str, az_count: int) -> List[str]:
    """
    Split a VPC range into ``2 * az_count`` equal subnets.

    The first ``az_count`` entries are meant for public subnets and the
    rest for private ones.

    Args:
        vpc_cidr: Literal IPv4 CIDR of the VPC
        az_count: Number of availability zones

    Returns:
        CIDR strings in address order

    Raises:
        SynthesisError: If the CIDR is not a literal or the split does not fit
    """
    if is_interpolation(vpc_cidr):
        raise SynthesisError("Subnet CIDRs must be given explicitly when vpc_cidr is an interpolation")
    network = ipaddress.IPv4Network(vpc_cidr, strict=True)
    extra_bits = math.ceil(math.log2(2 * az_count))
    if network.prefixlen + extra_bits > 32:
        raise SynthesisError(f"{vpc_cidr} is too small to hold {2 * az_count} subnets")
    subnets = network.subnets(prefixlen_diff=extra_bits)
    return [str(subnet) for _, subnet in zip(range(2 * az_count), subnets)]


def _tags(base: Dict[str, str], attributes: Dict[str, Any], key: str) -> Dict[str, str]:
    tags = dict(base)
    tags.update(attributes.get(key) or {})
    return tags


@register_composition("vpc_with_subnets")
def vpc_with_subnets(t: Any, name_prefix: str, vpc_cidr: str, availability_zones: List[str],
                     public_subnet_cidrs: Optional[List[str]] = None,
                     private_subnet_cidrs: Optional[List[str]] = None,
                     attributes: Optional[Dict[str, Any]] = None) -> CompositeVpcReference:
    """
    Build a VPC with an internet gateway, one public and one private subnet
    per availability zone, a NAT gateway per zone and the routing between them.

    ``attributes`` may carry extra tags under ``vpc_tags``, ``igw_tags``,
    ``public_subnet_tags``, ``private_subnet_tags``, ``nat_tags`` and
    ``route_table_tags``.
    """
    if not availability_zones:
        raise SynthesisError("At least one availability zone must be specified")
    attributes = attributes or {}
    az_count = len(availability_zones)
    logger.info(f"Building VPC composition '{name_prefix}' across {az_count} availability zones")

    vpc = t.aws_vpc(f"{name_prefix}_vpc", {
        "cidr_block": vpc_cidr,
        "enable_dns_hostnames": True,
        "enable_dns_support": True,
        "tags": _tags({"Name": f"{name_prefix}-vpc"}, attributes, "vpc_tags"),
    })
    igw = t.aws_internet_gateway(f"{name_prefix}_igw", {
        "vpc_id": vpc.id,
        "tags": _tags({"Name": f"{name_prefix}-igw"}, attributes, "igw_tags"),
    })

    public_cidrs = list(public_subnet_cidrs or [])
    private_cidrs = list(private_subnet_cidrs or [])
    if len(public_cidrs) < az_count or len(private_cidrs) < az_count:
        defaults = split_vpc_cidr(vpc_cidr, az_count)
        public_cidrs += defaults[len(public_cidrs):az_count]
        private_cidrs += defaults[az_count + len(private_cidrs):]

    public_subnets = []
    private_subnets = []
    for index, zone in enumerate(availability_zones):
        public_subnets.append(t.aws_subnet(f"{name_prefix}_public_subnet_{index}", {
            "vpc_id": vpc.id,
            "cidr_block": public_cidrs[index],
            "availability_zone": zone,
            "map_public_ip_on_launch": True,
            "tags": _tags({"Name": f"{name_prefix}-public-{index}", "Type": "public"},
                          attributes, "public_subnet_tags"),
        }))
        private_subnets.append(t.aws_subnet(f"{name_prefix}_private_subnet_{index}", {
            "vpc_id": vpc.id,
            "cidr_block": private_cidrs[index],
            "availability_zone": zone,
            "map_public_ip_on_launch": False,
            "tags": _tags({"Name": f"{name_prefix}-private-{index}", "Type": "private"},
                          attributes, "private_subnet_tags"),
        }))

    nat_eips = []
    nat_gateways = []
    for index, subnet in enumerate(public_subnets):
        eip = t.aws_eip(f"{name_prefix}_nat_eip_{index}", {
            "domain": "vpc",
            "tags": _tags({"Name": f"{name_prefix}-nat-eip-{index}"}, attributes, "nat_tags"),
        })
        nat_eips.append(eip)
        nat_gateways.append(t.aws_nat_gateway(f"{name_prefix}_nat_{index}", {
            "subnet_id": subnet.id,
            "allocation_id": eip.ref("allocation_id"),
            "tags": _tags({"Name": f"{name_prefix}-nat-{index}"}, attributes, "nat_tags"),
        }))

    public_route_table = t.aws_route_table(f"{name_prefix}_public_rt", {
        "vpc_id": vpc.id,
        "routes": [{"cidr_block": "0.0.0.0/0", "gateway_id": igw.id}],
        "tags": _tags({"Name": f"{name_prefix}-public-rt"}, attributes, "route_table_tags"),
    })
    associations = []
    private_route_tables = []
    for index, subnet in enumerate(public_subnets):
        associations.append(t.aws_route_table_association(f"{name_prefix}_public_rta_{index}", {
            "subnet_id": subnet.id,
            "route_table_id": public_route_table.id,
        }))
    for index, subnet in enumerate(private_subnets):
        route_table = t.aws_route_table(f"{name_prefix}_private_rt_{index}", {
            "vpc_id": vpc.id,
            "routes": [{"cidr_block": "0.0.0.0/0", "nat_gateway_id": nat_gateways[index].id}],
            "tags": _tags({"Name": f"{name_prefix}-private-rt-{index}"}, attributes, "route_table_tags"),
        })
        private_route_tables.append(route_table)
        associations.append(t.aws_route_table_association(f"{name_prefix}_private_rta_{index}", {
            "subnet_id": subnet.id,
            "route_table_id": route_table.id,
        }))

    return CompositeVpcReference(
        name=name_prefix,
        vpc=vpc,
        internet_gateway=igw,
        public_subnets=public_subnets,
        private_subnets=private_subnets,
        nat_eips=nat_eips,
        nat_gateways=nat_gateways,
        public_route_table=public_route_table,
        private_route_tables=private_route_tables,
        route_table_associations=associations,
    )
