"""Computed attribute views derived from a resource's validated attributes."""

import ipaddress
from typing import Any, Dict, Mapping, Optional

from .types import cidr_prefix, is_interpolation

RFC1918_NETWORKS = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
)

# Addresses AWS reserves in every subnet
AWS_RESERVED_IPS = 5


def _literal_cidr(value: Any) -> Optional[str]:
    if not isinstance(value, str) or is_interpolation(value) or "/" not in value:
        return None
    return value


class ComputedAttributes:
    """Base for read-only views over ``resource_attributes``."""

    properties: tuple = ()

    def __init__(self, attributes: Mapping[str, Any]):
        self.attributes = dict(attributes)

    def as_dict(self) -> Dict[str, Any]:
        return {prop: getattr(self, prop) for prop in self.properties}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_dict()})"


class VpcComputedAttributes(ComputedAttributes):
    properties = ("is_private_cidr", "estimated_subnet_capacity")

    @property
    def is_private_cidr(self) -> bool:
        """True if the CIDR block lies inside an RFC1918 range."""
        cidr = _literal_cidr(self.attributes.get("cidr_block"))
        if cidr is None:
            return False
        network = ipaddress.IPv4Network(cidr, strict=False)
        return any(network.subnet_of(private) for private in RFC1918_NETWORKS)

    @property
    def estimated_subnet_capacity(self) -> int:
        """Number of /24 subnets that fit in the VPC."""
        cidr = _literal_cidr(self.attributes.get("cidr_block"))
        if cidr is None:
            return 0
        prefix = cidr_prefix(cidr)
        return 2 ** (24 - prefix) if prefix <= 24 else 0


class SubnetComputedAttributes(ComputedAttributes):
    properties = ("is_public", "is_private", "subnet_type", "ip_capacity")

    @property
    def is_public(self) -> bool:
        return self.attributes.get("map_public_ip_on_launch") is True

    @property
    def is_private(self) -> bool:
        return not self.is_public

    @property
    def subnet_type(self) -> str:
        return "public" if self.is_public else "private"

    @property
    def ip_capacity(self) -> Optional[int]:
        """Usable addresses after the AWS reserved ones."""
        cidr = _literal_cidr(self.attributes.get("cidr_block"))
        if cidr is None:
            return None
        return 2 ** (32 - cidr_prefix(cidr)) - AWS_RESERVED_IPS


class InstanceComputedAttributes(ComputedAttributes):
    properties = ("will_have_public_ip", "compute_family", "compute_size")

    @property
    def will_have_public_ip(self) -> bool:
        explicit = self.attributes.get("associate_public_ip_address")
        if explicit is not None:
            return bool(explicit)
        subnet_id = self.attributes.get("subnet_id")
        return isinstance(subnet_id, str) and "public" in subnet_id

    @property
    def compute_family(self) -> Optional[str]:
        instance_type = self.attributes.get("instance_type")
        if not instance_type:
            return None
        return instance_type.split(".")[0]

    @property
    def compute_size(self) -> Optional[str]:
        instance_type = self.attributes.get("instance_type")
        if not instance_type or "." not in instance_type:
            return None
        return instance_type.split(".", 1)[1]


COMPUTED_VIEWS = {
    "aws_vpc": VpcComputedAttributes,
    "aws_subnet": SubnetComputedAttributes,
    "aws_instance": InstanceComputedAttributes,
}


def computed_view(resource_type: str, attributes: Mapping[str, Any]) -> Optional[ComputedAttributes]:
    """Return the computed view for a resource type, or None if it has none."""
    view_class = COMPUTED_VIEWS.get(resource_type)
    if view_class is None:
        return None
    return view_class(attributes)
