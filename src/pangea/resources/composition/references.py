"""Grouped references returned by compositions."""

from typing import List, Optional

from pydantic import Field
from ..reference import CompositeReference, ResourceReference


class CompositeVpcReference(CompositeReference):
    """Everything created by ``vpc_with_subnets``; lists are ordered by availability zone."""
    vpc: ResourceReference
    internet_gateway: ResourceReference
    public_subnets: List[ResourceReference] = Field(default_factory=list)
    private_subnets: List[ResourceReference] = Field(default_factory=list)
    nat_eips: List[ResourceReference] = Field(default_factory=list)
    nat_gateways: List[ResourceReference] = Field(default_factory=list)
    public_route_table: ResourceReference
    private_route_tables: List[ResourceReference] = Field(default_factory=list)
    route_table_associations: List[ResourceReference] = Field(default_factory=list)

    @property
    def public_subnet_ids(self) -> List[str]:
        return [subnet.id for subnet in self.public_subnets]

    @property
    def private_subnet_ids(self) -> List[str]:
        return [subnet.id for subnet in self.private_subnets]

    @property
    def availability_zone_count(self) -> int:
        return len(self.public_subnets)


class CompositeAutoScalingReference(CompositeReference):
    """Everything created by ``auto_scaling_web_tier``."""
    security_group: ResourceReference
    launch_template: ResourceReference
    target_group: ResourceReference
    auto_scaling_group: ResourceReference
    asg_attachment: ResourceReference
    scale_up_policy: ResourceReference
    scale_down_policy: ResourceReference
    cpu_high_alarm: ResourceReference
    cpu_low_alarm: ResourceReference
    listener: Optional[ResourceReference] = None
