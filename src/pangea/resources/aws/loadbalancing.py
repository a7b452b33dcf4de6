"""Elastic Load Balancing v2: load balancers, target groups and listeners."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import Port, Tags
from ...synthesizer.abstract import BlockContext
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.loadbalancing")

LB_OUTPUTS = ["id", "arn", "arn_suffix", "dns_name", "zone_id", "name"]
TARGET_GROUP_OUTPUTS = ["id", "arn", "arn_suffix", "name"]
LISTENER_OUTPUTS = ["id", "arn"]

TargetProtocol = Literal["HTTP", "HTTPS", "TCP", "TLS", "UDP", "TCP_UDP", "GENEVE"]
HTTP_PROTOCOLS = ("HTTP", "HTTPS")
TLS_PROTOCOLS = ("HTTPS", "TLS")


class AccessLogs(NestedBlock):
    bucket: str
    prefix: Optional[str] = None
    enabled: bool = True


class SubnetMapping(NestedBlock):
    subnet_id: str
    allocation_id: Optional[str] = None
    private_ipv4_address: Optional[str] = None


class LoadBalancerAttributes(BaseAttributes):
    name: Optional[str] = Field(None, max_length=32)
    name_prefix: Optional[str] = Field(None, max_length=6)
    internal: bool = False
    load_balancer_type: Literal["application", "network", "gateway"] = "application"
    security_groups: List[str] = Field(default_factory=list)
    subnets: List[str] = Field(default_factory=list)
    subnet_mapping: List[SubnetMapping] = Field(default_factory=list)
    ip_address_type: Optional[Literal["ipv4", "dualstack"]] = None
    idle_timeout: Optional[int] = Field(None, ge=1, le=4000)
    enable_deletion_protection: bool = False
    enable_cross_zone_load_balancing: Optional[bool] = None
    enable_http2: Optional[bool] = None
    access_logs: Optional[AccessLogs] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_lb(self) -> "LoadBalancerAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        if not self.subnets and not self.subnet_mapping:
            raise ValueError("Load balancer requires subnets or subnet_mapping")
        if self.subnets and self.subnet_mapping:
            raise ValueError("Cannot specify both 'subnets' and 'subnet_mapping'")
        if self.load_balancer_type == "application":
            if len(self.subnets) + len(self.subnet_mapping) < 2:
                raise ValueError("Application load balancers require at least 2 subnets")
        elif self.idle_timeout is not None or self.enable_http2 is not None:
            raise ValueError("idle_timeout and enable_http2 can only be set for application load balancers")
        if self.load_balancer_type == "gateway" and self.security_groups:
            raise ValueError("Gateway load balancers do not support security groups")
        return self


class HealthCheck(NestedBlock):
    enabled: bool = True
    interval: int = Field(30, ge=5, le=300)
    path: str = "/"
    port: str = "traffic-port"
    protocol: TargetProtocol = "HTTP"
    timeout: int = Field(5, ge=2, le=120)
    healthy_threshold: int = Field(5, ge=2, le=10)
    unhealthy_threshold: int = Field(2, ge=2, le=10)
    matcher: str = "200"

    @model_validator(mode="after")
    def check_timing(self) -> "HealthCheck":
        if self.timeout >= self.interval:
            raise ValueError(f"Health check timeout ({self.timeout}) must be less than interval ({self.interval})")
        return self


class Stickiness(NestedBlock):
    enabled: bool = False
    type: Literal["lb_cookie", "app_cookie", "source_ip"] = "lb_cookie"
    cookie_duration: Optional[int] = Field(None, ge=1, le=604800)
    cookie_name: Optional[str] = None

    @model_validator(mode="after")
    def check_cookie(self) -> "Stickiness":
        if self.type == "app_cookie" and not self.cookie_name:
            raise ValueError("cookie_name is required when stickiness type is 'app_cookie'")
        return self


class TargetGroupAttributes(BaseAttributes):
    name: Optional[str] = Field(None, max_length=32)
    name_prefix: Optional[str] = Field(None, max_length=6)
    port: Optional[Port] = None
    protocol: Optional[TargetProtocol] = None
    vpc_id: Optional[str] = None
    target_type: Literal["instance", "ip", "lambda", "alb"] = "instance"
    deregistration_delay: int = Field(300, ge=0, le=3600)
    slow_start: Optional[int] = Field(None, ge=0, le=900)
    proxy_protocol_v2: Optional[bool] = None
    preserve_client_ip: Optional[bool] = None
    ip_address_type: Optional[Literal["ipv4", "ipv6"]] = None
    protocol_version: Optional[Literal["HTTP1", "HTTP2", "GRPC"]] = None
    health_check: Optional[HealthCheck] = None
    stickiness: Optional[Stickiness] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_target_group(self) -> "TargetGroupAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        if self.target_type != "lambda":
            missing = [key for key in ("port", "protocol", "vpc_id") if getattr(self, key) is None]
            if missing:
                raise ValueError(f"{', '.join(missing)} required for target_type '{self.target_type}'")
        if self.protocol == "GENEVE" and self.port != 6081:
            raise ValueError("GENEVE protocol requires port 6081")
        if self.protocol_version is not None and not self.is_http:
            raise ValueError("protocol_version can only be set for HTTP/HTTPS protocols")
        if self.stickiness is not None and self.stickiness.enabled and not self.is_http:
            if self.stickiness.type != "source_ip":
                raise ValueError("Stickiness can only be enabled for HTTP/HTTPS target groups")
        if self.health_check is not None and self.health_check.path != "/" and not self.is_http:
            raise ValueError("Health check path can only be set for HTTP/HTTPS target groups")
        return self

    @property
    def is_http(self) -> bool:
        return self.protocol in HTTP_PROTOCOLS

    @property
    def is_network_load_balancer(self) -> bool:
        return self.protocol in ("TCP", "TLS", "UDP", "TCP_UDP")


class ForwardTarget(NestedBlock):
    arn: str
    weight: Optional[int] = Field(None, ge=0, le=999)


class ForwardStickiness(NestedBlock):
    enabled: bool = False
    duration: int = Field(..., ge=1, le=604800)


class ForwardConfig(NestedBlock):
    target_group: List[ForwardTarget] = Field(..., min_length=1, max_length=5)
    stickiness: Optional[ForwardStickiness] = None


class RedirectConfig(NestedBlock):
    status_code: Literal["HTTP_301", "HTTP_302"]
    protocol: Optional[str] = None
    port: Optional[str] = None
    host: Optional[str] = None
    path: Optional[str] = None
    query: Optional[str] = None


class FixedResponseConfig(NestedBlock):
    content_type: Literal["text/plain", "text/css", "text/html", "application/javascript", "application/json"]
    message_body: Optional[str] = Field(None, max_length=1024)
    status_code: Optional[str] = None


class ListenerAction(NestedBlock):
    type: Literal["forward", "redirect", "fixed-response", "authenticate-cognito", "authenticate-oidc"]
    target_group_arn: Optional[str] = None
    forward: Optional[ForwardConfig] = None
    redirect: Optional[RedirectConfig] = None
    fixed_response: Optional[FixedResponseConfig] = None
    authenticate_cognito: Optional[Dict[str, Any]] = None
    authenticate_oidc: Optional[Dict[str, Any]] = None
    order: Optional[int] = Field(None, ge=1, le=50000)

    @model_validator(mode="after")
    def check_action(self) -> "ListenerAction":
        if self.type == "forward" and self.target_group_arn is None and self.forward is None:
            raise ValueError("forward action requires either target_group_arn or forward configuration")
        required = {
            "redirect": "redirect",
            "fixed-response": "fixed_response",
            "authenticate-cognito": "authenticate_cognito",
            "authenticate-oidc": "authenticate_oidc",
        }.get(self.type)
        if required is not None and getattr(self, required) is None:
            raise ValueError(f"{self.type} action requires {required} configuration")
        return self


class ListenerAttributes(BaseAttributes):
    load_balancer_arn: str
    port: Port
    protocol: TargetProtocol = "HTTP"
    ssl_policy: Optional[str] = None
    certificate_arn: Optional[str] = None
    alpn_policy: Optional[Literal["HTTP1Only", "HTTP2Only", "HTTP2Optional", "HTTP2Preferred", "None"]] = None
    default_action: List[ListenerAction] = Field(..., min_length=1)
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_listener(self) -> "ListenerAttributes":
        if self.protocol in TLS_PROTOCOLS:
            if self.certificate_arn is None:
                raise ValueError(f"certificate_arn is required for {self.protocol} listeners")
        elif self.ssl_policy is not None or self.certificate_arn is not None:
            raise ValueError("ssl_policy and certificate_arn can only be specified for HTTPS/TLS listeners")
        if self.alpn_policy is not None and self.protocol != "TLS":
            raise ValueError("alpn_policy can only be specified for TLS listeners")
        return self


def _write_action(block: BlockContext, action: ListenerAction) -> None:
    write_attributes(block, action, blocks=("redirect", "fixed_response", "authenticate_cognito",
                                            "authenticate_oidc"), skip=("forward",))
    if action.forward is not None:
        with block.forward() as forward:
            write_attributes(forward, action.forward, blocks=("target_group", "stickiness"))


@register_resource("aws_lb", LoadBalancerAttributes, category="loadbalancing", outputs=LB_OUTPUTS)
def aws_lb(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
           **kwargs: Any) -> ResourceReference:
    """Application, network or gateway load balancer."""
    attrs = validate_attributes(LoadBalancerAttributes, "aws_lb", name, merge_attributes(attributes, kwargs))
    if not attrs.internal:
        logger.debug(f"aws_lb.{name} is internet-facing")
    with synth.resource("aws_lb", name) as r:
        write_attributes(r, attrs, blocks=("subnet_mapping", "access_logs"))
    return ResourceReference.build("aws_lb", name, attrs, LB_OUTPUTS)


@register_resource("aws_lb_target_group", TargetGroupAttributes, category="loadbalancing",
                   outputs=TARGET_GROUP_OUTPUTS)
def aws_lb_target_group(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                        **kwargs: Any) -> ResourceReference:
    """
    Load balancer target group.

    The group ``name`` attribute clashes with the resource name parameter,
    so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(TargetGroupAttributes, "aws_lb_target_group", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_lb_target_group", name) as r:
        write_attributes(r, attrs, blocks=("health_check", "stickiness"))
    return ResourceReference.build("aws_lb_target_group", name, attrs, TARGET_GROUP_OUTPUTS)


@register_resource("aws_lb_listener", ListenerAttributes, category="loadbalancing", outputs=LISTENER_OUTPUTS)
def aws_lb_listener(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                    **kwargs: Any) -> ResourceReference:
    """Listener with one or more default actions."""
    attrs = validate_attributes(ListenerAttributes, "aws_lb_listener", name, merge_attributes(attributes, kwargs))
    if attrs.protocol in TLS_PROTOCOLS and attrs.ssl_policy is None:
        logger.debug(f"aws_lb_listener.{name} uses the provider's default ssl_policy")
    with synth.resource("aws_lb_listener", name) as r:
        write_attributes(r, attrs, skip=("default_action",))
        for action in attrs.default_action:
            with r.default_action() as block:
                _write_action(block, action)
    return ResourceReference.build("aws_lb_listener", name, attrs, LISTENER_OUTPUTS)
