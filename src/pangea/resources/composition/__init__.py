"""Compositions: functions that define a group of related resources at once."""

from .auto_scaling_web_tier import DEFAULT_CONFIG, auto_scaling_web_tier
from .references import CompositeAutoScalingReference, CompositeVpcReference
from .vpc_with_subnets import split_vpc_cidr, vpc_with_subnets

__all__ = [
    "DEFAULT_CONFIG",
    "auto_scaling_web_tier",
    "CompositeAutoScalingReference",
    "CompositeVpcReference",
    "split_vpc_cidr",
    "vpc_with_subnets",
]
