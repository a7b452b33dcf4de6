"""Auto-scaled web tier behind a target group, with CPU-driven scaling."""

from typing import Any, Dict, List, Optional

from .references import CompositeAutoScalingReference
from ..reference import ResourceReference
from ..registry import register_composition
from ...utils.errors import SynthesisError
from ...utils.logging import get_logger

logger = get_logger("resources.composition.web_tier")

DEFAULT_CONFIG: Dict[str, Any] = {
    "instance_type": "t3.micro",
    "min_instances": 1,
    "max_instances": 10,
    "desired_instances": 2,
    "ami_id": "ami-0c55b159cbfafe1f0",
    "key_name": None,
    "user_data": None,
    "health_check_path": "/",
    "scale_up_threshold": 70.0,
    "scale_down_threshold": 30.0,
    "tags": {},
}


def _resolve_config(overrides: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(overrides) - set(DEFAULT_CONFIG))
    if unknown:
        raise SynthesisError(
            f"Unknown auto_scaling_web_tier options: {', '.join(unknown)}; "
            f"expected any of: {', '.join(sorted(DEFAULT_CONFIG))}"
        )
    config = dict(DEFAULT_CONFIG)
    config.update(overrides)
    return config


def _cpu_alarm(t: Any, name: str, suffix: str, operator: str, threshold: float,
               policy: ResourceReference, group: ResourceReference, description: str) -> ResourceReference:
    return t.aws_cloudwatch_metric_alarm(f"{name}_cpu_{suffix}", {
        "alarm_name": f"{name}-cpu-{suffix}",
        "alarm_description": description,
        "comparison_operator": operator,
        "evaluation_periods": 2,
        "metric_name": "CPUUtilization",
        "namespace": "AWS/EC2",
        "period": 300,
        "statistic": "Average",
        "threshold": threshold,
        "alarm_actions": [policy.ref("arn")],
        "dimensions": {"AutoScalingGroupName": group.ref("name")},
    })


@register_composition("auto_scaling_web_tier")
def auto_scaling_web_tier(t: Any, name: str, vpc_ref: ResourceReference, subnet_refs: List[ResourceReference],
                          load_balancer_ref: Optional[ResourceReference] = None,
                          **config: Any) -> CompositeAutoScalingReference:
    """
    Build a web tier: security group, launch template, target group,
    Auto Scaling group attached to the target group, step-by-one scaling
    policies and the CPU alarms that drive them.

    When ``load_balancer_ref`` is given an HTTP listener forwarding to the
    target group is added as well.

    Args:
        t: Template to define resources on
        name: Prefix for every resource name
        vpc_ref: VPC the tier runs in
        subnet_refs: Subnets for the Auto Scaling group
        load_balancer_ref: Optional load balancer to listen on
        **config: Overrides for DEFAULT_CONFIG

    Returns:
        CompositeAutoScalingReference
    """
    if not subnet_refs:
        raise SynthesisError("auto_scaling_web_tier requires at least one subnet")
    config = _resolve_config(config)
    tags: Dict[str, str] = dict(config["tags"])
    logger.info(f"Building web tier '{name}' with {config['min_instances']}-{config['max_instances']} "
                f"{config['instance_type']} instances")

    security_group = t.aws_security_group(f"{name}_sg", {
        "name_prefix": f"{name}-sg-",
        "vpc_id": vpc_ref.id,
        "description": f"Security group for {name} auto scaling group",
        "ingress_rules": [
            {"from_port": 80, "to_port": 80, "protocol": "tcp", "cidr_blocks": ["0.0.0.0/0"], "description": "HTTP"},
            {"from_port": 443, "to_port": 443, "protocol": "tcp", "cidr_blocks": ["0.0.0.0/0"],
             "description": "HTTPS"},
        ],
        "egress_rules": [
            {"from_port": 0, "to_port": 0, "protocol": "-1", "cidr_blocks": ["0.0.0.0/0"],
             "description": "All outbound traffic"},
        ],
        "tags": {"Name": f"{name}-security-group", **tags},
    })

    launch_template = t.aws_launch_template(f"{name}_launch_template", {
        "name_prefix": f"{name}-lt-",
        "launch_template_data": {
            "image_id": config["ami_id"],
            "instance_type": config["instance_type"],
            "key_name": config["key_name"],
            "user_data": config["user_data"],
            "vpc_security_group_ids": [security_group.id],
        },
        "tags": {"Name": f"{name}-launch-template", **tags},
    })

    target_group = t.aws_lb_target_group(f"{name}_target_group", {
        "port": 80,
        "protocol": "HTTP",
        "vpc_id": vpc_ref.id,
        "target_type": "instance",
        "health_check": {
            "enabled": True,
            "healthy_threshold": 2,
            "unhealthy_threshold": 2,
            "timeout": 5,
            "interval": 30,
            "path": config["health_check_path"],
            "matcher": "200",
        },
        "tags": {"Name": f"{name}-target-group", **tags},
    })

    group = t.aws_autoscaling_group(f"{name}_asg", {
        "min_size": config["min_instances"],
        "max_size": config["max_instances"],
        "desired_capacity": config["desired_instances"],
        "vpc_zone_identifier": [subnet.id for subnet in subnet_refs],
        "launch_template": {"id": launch_template.id, "version": "$Latest"},
        "health_check_type": "ELB",
        "health_check_grace_period": 300,
        "tags": [{"key": "Name", "value": f"{name}-instance", "propagate_at_launch": True}]
        + [{"key": key, "value": value, "propagate_at_launch": True} for key, value in tags.items()],
    })
    attachment = t.aws_autoscaling_attachment(f"{name}_asg_attachment", {
        "autoscaling_group_name": group.ref("name"),
        "lb_target_group_arn": target_group.arn,
    })

    scale_up = t.aws_autoscaling_policy(f"{name}_scale_up", {
        "name": f"{name}-scale-up",
        "autoscaling_group_name": group.ref("name"),
        "adjustment_type": "ChangeInCapacity",
        "scaling_adjustment": 1,
        "cooldown": 300,
    })
    scale_down = t.aws_autoscaling_policy(f"{name}_scale_down", {
        "name": f"{name}-scale-down",
        "autoscaling_group_name": group.ref("name"),
        "adjustment_type": "ChangeInCapacity",
        "scaling_adjustment": -1,
        "cooldown": 300,
    })

    cpu_high = _cpu_alarm(t, name, "high", "GreaterThanThreshold", config["scale_up_threshold"], scale_up, group,
                          f"Trigger scale up when CPU exceeds {config['scale_up_threshold']:g}%")
    cpu_low = _cpu_alarm(t, name, "low", "LessThanThreshold", config["scale_down_threshold"], scale_down, group,
                         f"Trigger scale down when CPU drops below {config['scale_down_threshold']:g}%")

    listener = None
    if load_balancer_ref is not None:
        listener = t.aws_lb_listener(f"{name}_http_listener", {
            "load_balancer_arn": load_balancer_ref.arn,
            "port": 80,
            "protocol": "HTTP",
            "default_action": [{"type": "forward", "target_group_arn": target_group.arn}],
        })

    return CompositeAutoScalingReference(
        name=name,
        security_group=security_group,
        launch_template=launch_template,
        target_group=target_group,
        auto_scaling_group=group,
        asg_attachment=attachment,
        scale_up_policy=scale_up,
        scale_down_policy=scale_down,
        cpu_high_alarm=cpu_high,
        cpu_low_alarm=cpu_low,
        listener=listener,
    )
