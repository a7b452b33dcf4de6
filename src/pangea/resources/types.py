"""Shared constrained attribute types for resource schemas."""

import ipaddress
import json
import re
from typing import Annotated, Any, Callable, Dict

from pydantic import AfterValidator, BeforeValidator, Field


def is_interpolation(value: Any) -> bool:
    """Return True if value contains a Terraform interpolation (``${...}``)."""
    return isinstance(value, str) and "${" in value and "}" in value


def _passthrough_interpolation(check: Callable[[str], str]) -> Callable[[str], str]:
    def validator(value: str) -> str:
        if is_interpolation(value):
            return value
        return check(value)
    return validator


def _matching(pattern: str, message: str) -> Callable[[str], str]:
    compiled = re.compile(pattern)

    def check(value: str) -> str:
        if not compiled.match(value):
            raise ValueError(message.format(value=value))
        return value
    return _passthrough_interpolation(check)


def _check_cidr(value: str) -> str:
    try:
        ipaddress.IPv4Network(value, strict=True)
    except ValueError:
        raise ValueError(f"invalid CIDR block '{value}'")
    if "/" not in value:
        raise ValueError(f"invalid CIDR block '{value}': missing prefix length")
    return value


def _check_ipv6_cidr(value: str) -> str:
    try:
        ipaddress.IPv6Network(value, strict=True)
    except ValueError:
        raise ValueError(f"invalid IPv6 CIDR block '{value}'")
    return value


def cidr_prefix(value: str) -> int:
    """Prefix length of a CIDR string."""
    return int(value.split("/", 1)[1])


def _check_vpc_cidr(value: str) -> str:
    _check_cidr(value)
    prefix = cidr_prefix(value)
    if prefix < 16:
        raise ValueError(f"CIDR block {value} is too large; VPC CIDR blocks must be between /16 and /28")
    if prefix > 28:
        raise ValueError(f"CIDR block {value} is too small; VPC CIDR blocks must be between /16 and /28")
    return value


def _check_subnet_cidr(value: str) -> str:
    _check_cidr(value)
    if not 16 <= cidr_prefix(value) <= 28:
        raise ValueError(f"Subnet CIDR block {value} must be between /16 and /28")
    return value


def _check_tags(tags: Dict[str, str]) -> Dict[str, str]:
    for key, value in tags.items():
        if not key or len(key) > 128:
            raise ValueError(f"tag key '{key}' must be between 1 and 128 characters")
        if key.lower().startswith("aws:"):
            raise ValueError(f"tag key '{key}' uses the reserved 'aws:' prefix")
        if len(value) > 256:
            raise ValueError(f"tag value for '{key}' exceeds 256 characters")
    return tags


def _policy_to_string(value: Any) -> Any:
    if isinstance(value, dict):
        return json.dumps(value)
    return value


def _json_object_check(label: str) -> Callable[[str], str]:
    def check(value: str) -> str:
        try:
            document = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"{label} must be valid JSON: {e}")
        if not isinstance(document, dict):
            raise ValueError(f"{label} must be a JSON object")
        return value
    return _passthrough_interpolation(check)


def json_document(label: str) -> Any:
    """JSON object string type; dicts are serialized before validation."""
    return Annotated[str, BeforeValidator(_policy_to_string), AfterValidator(_json_object_check(label))]


CidrBlock = Annotated[str, AfterValidator(_passthrough_interpolation(_check_cidr))]
Ipv6CidrBlock = Annotated[str, AfterValidator(_passthrough_interpolation(_check_ipv6_cidr))]
VpcCidrBlock = Annotated[str, AfterValidator(_passthrough_interpolation(_check_vpc_cidr))]
SubnetCidrBlock = Annotated[str, AfterValidator(_passthrough_interpolation(_check_subnet_cidr))]

Port = Annotated[int, Field(ge=0, le=65535)]

AwsRegion = Annotated[str, AfterValidator(_matching(
    r"^[a-z]{2}(-gov)?-[a-z]+-\d$", "'{value}' is not a valid AWS region"))]
AvailabilityZone = Annotated[str, AfterValidator(_matching(
    r"^[a-z]{2}(-gov)?-[a-z]+-\d[a-z]$", "'{value}' is not a valid availability zone"))]
Arn = Annotated[str, AfterValidator(_matching(
    r"^arn:aws[a-z-]*:[a-z0-9-]+:", "'{value}' is not a valid ARN"))]

Tags = Annotated[Dict[str, str], AfterValidator(_check_tags)]


def _check_policy_statement_shapes(value: str) -> str:
    statements = json.loads(value).get("Statement")
    if statements is None:
        return value
    for statement in statements if isinstance(statements, list) else [statements]:
        if not isinstance(statement, dict):
            raise ValueError("policy Statement entries must be JSON objects")
    return value


PolicyDocument = Annotated[
    json_document("policy"), AfterValidator(_passthrough_interpolation(_check_policy_statement_shapes))
]


def resource_id(prefix: str) -> Any:
    """Constrained string type for AWS resource ids such as ``vpc-0abc1234``."""
    return Annotated[str, AfterValidator(_matching(
        rf"^{prefix}-[0-9a-f]{{8,17}}$", f"'{{value}}' is not a valid {prefix} id"))]


VpcId = resource_id("vpc")
SubnetId = resource_id("subnet")
SecurityGroupId = resource_id("sg")
InternetGatewayId = resource_id("igw")
NatGatewayId = resource_id("nat")
AllocationId = resource_id("eipalloc")
RouteTableId = resource_id("rtb")
AmiId = resource_id("ami")
LaunchTemplateId = resource_id("lt")
