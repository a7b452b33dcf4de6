"""EC2 compute resources: instances, launch templates and auto scaling."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import AvailabilityZone, Tags
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.compute")

INSTANCE_OUTPUTS = [
    "id", "arn", "public_ip", "private_ip", "public_dns", "private_dns", "instance_state",
    "subnet_id", "availability_zone", "key_name", "vpc_security_group_ids",
]
LAUNCH_TEMPLATE_OUTPUTS = ["id", "arn", "latest_version", "default_version", "name"]
AUTOSCALING_GROUP_OUTPUTS = [
    "id", "arn", "name", "min_size", "max_size", "desired_capacity", "default_cooldown",
    "availability_zones", "load_balancers", "target_group_arns", "health_check_type",
    "health_check_grace_period", "vpc_zone_identifier",
]
AUTOSCALING_POLICY_OUTPUTS = ["id", "arn", "name", "autoscaling_group_name", "policy_type"]

VolumeType = Literal["standard", "gp2", "gp3", "io1", "io2", "sc1", "st1"]


class RootBlockDevice(NestedBlock):
    volume_type: Optional[VolumeType] = None
    volume_size: Optional[int] = Field(None, gt=0)
    iops: Optional[int] = None
    throughput: Optional[int] = None
    delete_on_termination: Optional[bool] = None
    encrypted: Optional[bool] = None
    kms_key_id: Optional[str] = None

    @model_validator(mode="after")
    def check_performance(self) -> "RootBlockDevice":
        if self.iops is not None and self.volume_type not in ("io1", "io2", "gp3"):
            raise ValueError("IOPS can only be specified for io1, io2 or gp3 volume types")
        if self.throughput is not None and self.volume_type != "gp3":
            raise ValueError("Throughput can only be specified for gp3 volume type")
        return self


class EbsBlockDevice(RootBlockDevice):
    device_name: str
    snapshot_id: Optional[str] = None


class InstanceAttributes(BaseAttributes):
    ami: str
    instance_type: str
    subnet_id: Optional[str] = None
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    availability_zone: Optional[AvailabilityZone] = None
    associate_public_ip_address: Optional[bool] = None
    key_name: Optional[str] = None
    user_data: Optional[str] = None
    user_data_base64: Optional[str] = None
    iam_instance_profile: Optional[str] = None
    root_block_device: Optional[RootBlockDevice] = None
    ebs_block_device: List[EbsBlockDevice] = Field(default_factory=list)
    instance_initiated_shutdown_behavior: Optional[Literal["stop", "terminate"]] = None
    monitoring: bool = False
    ebs_optimized: bool = False
    source_dest_check: Optional[bool] = None
    disable_api_termination: bool = False
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_user_data(self) -> "InstanceAttributes":
        mutually_exclusive(self, "user_data", "user_data_base64")
        return self


class IamInstanceProfileSpecification(NestedBlock):
    arn: Optional[str] = None
    name: Optional[str] = None


class EbsSpecification(NestedBlock):
    volume_type: Optional[VolumeType] = None
    volume_size: Optional[int] = Field(None, gt=0)
    iops: Optional[int] = None
    throughput: Optional[int] = None
    delete_on_termination: Optional[bool] = None
    encrypted: Optional[bool] = None
    kms_key_id: Optional[str] = None
    snapshot_id: Optional[str] = None


class BlockDeviceMapping(NestedBlock):
    device_name: str
    no_device: Optional[str] = None
    virtual_name: Optional[str] = None
    ebs: Optional[EbsSpecification] = None


class NetworkInterfaceSpecification(NestedBlock):
    device_index: int = 0
    associate_public_ip_address: Optional[bool] = None
    delete_on_termination: Optional[bool] = None
    description: Optional[str] = None
    security_groups: List[str] = Field(default_factory=list)
    subnet_id: Optional[str] = None
    private_ip_address: Optional[str] = None


class TagSpecification(NestedBlock):
    resource_type: Literal["instance", "volume", "network-interface", "spot-instances-request"]
    tags: Tags = Field(default_factory=dict)


class LaunchTemplateData(NestedBlock):
    image_id: Optional[str] = None
    instance_type: Optional[str] = None
    key_name: Optional[str] = None
    user_data: Optional[str] = None
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    iam_instance_profile: Optional[IamInstanceProfileSpecification] = None
    instance_initiated_shutdown_behavior: Optional[Literal["stop", "terminate"]] = None
    disable_api_termination: Optional[bool] = None
    monitoring: Optional[bool] = None
    block_device_mappings: List[BlockDeviceMapping] = Field(default_factory=list)
    network_interfaces: List[NetworkInterfaceSpecification] = Field(default_factory=list)
    tag_specifications: List[TagSpecification] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_security_groups(self) -> "LaunchTemplateData":
        if self.vpc_security_group_ids and self.network_interfaces:
            raise ValueError("Cannot specify vpc_security_group_ids together with network_interfaces; "
                             "set security_groups on the network interface instead")
        return self


class LaunchTemplateAttributes(BaseAttributes):
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    update_default_version: Optional[bool] = None
    launch_template_data: LaunchTemplateData = Field(default_factory=LaunchTemplateData)
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_name(self) -> "LaunchTemplateAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self


class LaunchTemplateSpecification(NestedBlock):
    id: Optional[str] = None
    name: Optional[str] = None
    version: str = "$Latest"

    @model_validator(mode="after")
    def check_identifier(self) -> "LaunchTemplateSpecification":
        if (self.id is None) == (self.name is None):
            raise ValueError("Launch template specification requires exactly one of 'id' or 'name'")
        return self


class AutoScalingTag(NestedBlock):
    key: str
    value: str
    propagate_at_launch: bool = True


class AutoScalingGroupAttributes(BaseAttributes):
    min_size: int = Field(..., ge=0)
    max_size: int = Field(..., ge=0)
    desired_capacity: Optional[int] = Field(None, ge=0)
    default_cooldown: Optional[int] = None
    launch_configuration: Optional[str] = None
    launch_template: Optional[LaunchTemplateSpecification] = None
    mixed_instances_policy: Optional[Dict[str, Any]] = None
    vpc_zone_identifier: List[str] = Field(default_factory=list)
    availability_zones: List[AvailabilityZone] = Field(default_factory=list)
    health_check_type: Literal["EC2", "ELB"] = "EC2"
    health_check_grace_period: int = 300
    termination_policies: List[Literal[
        "OldestInstance", "NewestInstance", "OldestLaunchConfiguration", "OldestLaunchTemplate",
        "ClosestToNextInstanceHour", "AllocationStrategy", "Default",
    ]] = Field(default_factory=list)
    enabled_metrics: List[str] = Field(default_factory=list)
    wait_for_capacity_timeout: str = "10m"
    protect_from_scale_in: Optional[bool] = None
    max_instance_lifetime: Optional[int] = None
    capacity_rebalance: Optional[bool] = None
    target_group_arns: List[str] = Field(default_factory=list)
    load_balancers: List[str] = Field(default_factory=list)
    tags: List[AutoScalingTag] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_group(self) -> "AutoScalingGroupAttributes":
        if self.min_size > self.max_size:
            raise ValueError(f"min_size ({self.min_size}) cannot be greater than max_size ({self.max_size})")
        if self.desired_capacity is not None and not self.min_size <= self.desired_capacity <= self.max_size:
            raise ValueError(
                f"desired_capacity ({self.desired_capacity}) must be between "
                f"min_size ({self.min_size}) and max_size ({self.max_size})"
            )
        sources = [s for s in (self.launch_configuration, self.launch_template, self.mixed_instances_policy)
                   if s is not None]
        if not sources:
            raise ValueError("Auto Scaling Group must specify one of: launch_configuration, "
                             "launch_template, or mixed_instances_policy")
        if len(sources) > 1:
            raise ValueError("Auto Scaling Group can only specify one of: launch_configuration, "
                             "launch_template, or mixed_instances_policy")
        if not self.vpc_zone_identifier and not self.availability_zones:
            raise ValueError("Auto Scaling Group must specify either vpc_zone_identifier or availability_zones")
        return self

    @property
    def uses_launch_template(self) -> bool:
        return self.launch_template is not None

    @property
    def uses_target_groups(self) -> bool:
        return bool(self.target_group_arns)


class AutoScalingAttachmentAttributes(BaseAttributes):
    autoscaling_group_name: str
    lb_target_group_arn: Optional[str] = None
    elb: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "AutoScalingAttachmentAttributes":
        if (self.lb_target_group_arn is None) == (self.elb is None):
            raise ValueError("Must specify exactly one of 'lb_target_group_arn' or 'elb'")
        return self


class StepAdjustment(NestedBlock):
    scaling_adjustment: int
    metric_interval_lower_bound: Optional[float] = None
    metric_interval_upper_bound: Optional[float] = None


class PredefinedMetricSpecification(NestedBlock):
    predefined_metric_type: Literal[
        "ASGAverageCPUUtilization", "ASGAverageNetworkIn", "ASGAverageNetworkOut", "ALBRequestCountPerTarget",
    ]
    resource_label: Optional[str] = None


class TargetTrackingConfiguration(NestedBlock):
    target_value: float
    disable_scale_in: Optional[bool] = None
    predefined_metric_specification: Optional[PredefinedMetricSpecification] = None
    customized_metric_specification: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_metric(self) -> "TargetTrackingConfiguration":
        if (self.predefined_metric_specification is None) == (self.customized_metric_specification is None):
            raise ValueError("Target tracking requires exactly one of predefined_metric_specification "
                             "or customized_metric_specification")
        return self


class AutoScalingPolicyAttributes(BaseAttributes):
    name: str
    autoscaling_group_name: str
    policy_type: Literal["SimpleScaling", "StepScaling", "TargetTrackingScaling", "PredictiveScaling"] = "SimpleScaling"
    adjustment_type: Optional[Literal["ChangeInCapacity", "ExactCapacity", "PercentChangeInCapacity"]] = None
    scaling_adjustment: Optional[int] = None
    cooldown: Optional[int] = None
    min_adjustment_magnitude: Optional[int] = None
    metric_aggregation_type: Optional[Literal["Average", "Minimum", "Maximum"]] = None
    step_adjustments: List[StepAdjustment] = Field(default_factory=list)
    estimated_instance_warmup: Optional[int] = None
    target_tracking_configuration: Optional[TargetTrackingConfiguration] = None
    predictive_scaling_configuration: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_policy(self) -> "AutoScalingPolicyAttributes":
        if self.policy_type == "SimpleScaling":
            if self.adjustment_type is None or self.scaling_adjustment is None:
                raise ValueError("SimpleScaling policy requires adjustment_type and scaling_adjustment")
        elif self.policy_type == "StepScaling":
            if self.adjustment_type is None or not self.step_adjustments:
                raise ValueError("StepScaling policy requires adjustment_type and step_adjustments")
            if self.scaling_adjustment is not None:
                raise ValueError("StepScaling policy cannot use scaling_adjustment (use step_adjustments instead)")
        elif self.policy_type == "TargetTrackingScaling":
            if self.target_tracking_configuration is None:
                raise ValueError("TargetTrackingScaling policy requires target_tracking_configuration")
            if self.adjustment_type is not None or self.scaling_adjustment is not None:
                raise ValueError("TargetTrackingScaling policy cannot use adjustment_type or scaling_adjustment")
        elif self.predictive_scaling_configuration is None:
            raise ValueError("PredictiveScaling policy requires predictive_scaling_configuration")
        return self


@register_resource("aws_instance", InstanceAttributes, category="compute", outputs=INSTANCE_OUTPUTS)
def aws_instance(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                 **kwargs: Any) -> ResourceReference:
    """EC2 instance with optional root and EBS block devices."""
    attrs = validate_attributes(InstanceAttributes, "aws_instance", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_instance", name) as r:
        write_attributes(r, attrs, blocks=("root_block_device", "ebs_block_device"))
    return ResourceReference.build("aws_instance", name, attrs, INSTANCE_OUTPUTS)


@register_resource("aws_launch_template", LaunchTemplateAttributes, category="compute",
                   outputs=LAUNCH_TEMPLATE_OUTPUTS)
def aws_launch_template(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                        **kwargs: Any) -> ResourceReference:
    """EC2 launch template."""
    attrs = validate_attributes(LaunchTemplateAttributes, "aws_launch_template", name,
                                merge_attributes(attributes, kwargs))
    data = attrs.launch_template_data
    with synth.resource("aws_launch_template", name) as r:
        write_attributes(r, attrs, skip=("launch_template_data", "tags"))
        # launch templates take their settings at the top level in JSON
        write_attributes(r, data, blocks=(
            "iam_instance_profile", "block_device_mappings", "network_interfaces", "tag_specifications",
        ), skip=("monitoring",))
        if data.monitoring is not None:
            with r.monitoring() as monitoring:
                monitoring.enabled(data.monitoring)
        if attrs.tags:
            r.tags(attrs.tags)
    return ResourceReference.build("aws_launch_template", name, attrs, LAUNCH_TEMPLATE_OUTPUTS)


@register_resource("aws_autoscaling_group", AutoScalingGroupAttributes, category="compute",
                   outputs=AUTOSCALING_GROUP_OUTPUTS)
def aws_autoscaling_group(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                          **kwargs: Any) -> ResourceReference:
    """Auto Scaling group."""
    attrs = validate_attributes(AutoScalingGroupAttributes, "aws_autoscaling_group", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_autoscaling_group", name) as r:
        write_attributes(r, attrs, blocks=("launch_template",), skip=("tags",))
        for tag in attrs.tags:
            with r.tag() as block:
                block.update(tag.to_dict())
    return ResourceReference.build("aws_autoscaling_group", name, attrs, AUTOSCALING_GROUP_OUTPUTS)


@register_resource("aws_autoscaling_attachment", AutoScalingAttachmentAttributes, category="compute")
def aws_autoscaling_attachment(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                               **kwargs: Any) -> ResourceReference:
    """Attach an Auto Scaling group to a target group or classic load balancer."""
    attrs = validate_attributes(AutoScalingAttachmentAttributes, "aws_autoscaling_attachment", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_autoscaling_attachment", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_autoscaling_attachment", name, attrs, ["id"])


@register_resource("aws_autoscaling_policy", AutoScalingPolicyAttributes, category="compute",
                   outputs=AUTOSCALING_POLICY_OUTPUTS)
def aws_autoscaling_policy(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                           **kwargs: Any) -> ResourceReference:
    """
    Auto Scaling policy.

    The policy's own ``name`` attribute clashes with the resource name
    parameter, so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(AutoScalingPolicyAttributes, "aws_autoscaling_policy", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_autoscaling_policy", name) as r:
        write_attributes(r, attrs, blocks=("target_tracking_configuration",), skip=("step_adjustments",))
        for step in attrs.step_adjustments:
            with r.step_adjustment() as block:
                block.update(step.to_dict())
    return ResourceReference.build("aws_autoscaling_policy", name, attrs, AUTOSCALING_POLICY_OUTPUTS)
