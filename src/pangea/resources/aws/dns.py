"""Route 53 hosted zones and records."""

import ipaddress
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import AwsRegion, Tags, is_interpolation
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.dns")

ROUTE53_ZONE_OUTPUTS = {"id": "id", "zone_id": "zone_id", "arn": "arn", "name_servers": "name_servers"}
ROUTE53_RECORD_OUTPUTS = ["id", "name", "fqdn"]

ZONE_ID_PATTERN = re.compile(r"^[A-Z0-9]+$")
HEALTH_CHECK_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")
RECORD_NAME_PATTERN = re.compile(r"^(\*\.)?([a-zA-Z0-9_]([a-zA-Z0-9_-]{0,61}[a-zA-Z0-9_])?\.)*[a-zA-Z0-9_-]{1,63}\.?$")

ROUTING_POLICIES = [
    "weighted_routing_policy",
    "latency_routing_policy",
    "failover_routing_policy",
    "geolocation_routing_policy",
    "geoproximity_routing_policy",
]


class ZoneVpc(NestedBlock):
    vpc_id: str
    vpc_region: Optional[AwsRegion] = None


class Route53ZoneAttributes(BaseAttributes):
    name: str = Field(..., max_length=255)
    comment: Optional[str] = Field(None, max_length=256)
    delegation_set_id: Optional[str] = None
    force_destroy: Optional[bool] = None
    vpc: List[ZoneVpc] = Field(default_factory=list)
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_zone(self) -> "Route53ZoneAttributes":
        if self.vpc and self.delegation_set_id is not None:
            raise ValueError("delegation_set_id cannot be used with private hosted zones")
        return self

    @property
    def is_private(self) -> bool:
        return bool(self.vpc)

    @property
    def zone_type(self) -> str:
        return "private" if self.is_private else "public"


class AliasTarget(NestedBlock):
    name: str
    zone_id: str
    evaluate_target_health: bool = False


class WeightedRoutingPolicy(NestedBlock):
    weight: int

    @field_validator("weight")
    @classmethod
    def check_weight(cls, value: int) -> int:
        if not 0 <= value <= 255:
            raise ValueError(f"Weighted routing policy weight must be between 0 and 255, got: {value}")
        return value


class LatencyRoutingPolicy(NestedBlock):
    region: AwsRegion


class FailoverRoutingPolicy(NestedBlock):
    type: Literal["PRIMARY", "SECONDARY"]


class GeolocationRoutingPolicy(NestedBlock):
    continent: Optional[str] = None
    country: Optional[str] = None
    subdivision: Optional[str] = None


class Coordinates(NestedBlock):
    latitude: str
    longitude: str


class GeoproximityRoutingPolicy(NestedBlock):
    aws_region: Optional[AwsRegion] = None
    bias: Optional[int] = Field(None, ge=-99, le=99)
    coordinates: Optional[Coordinates] = None


class Route53RecordAttributes(BaseAttributes):
    zone_id: str
    name: str
    type: Literal["A", "AAAA", "CAA", "CNAME", "DS", "MX", "NAPTR", "NS", "PTR", "SOA", "SPF", "SRV", "TXT"]
    ttl: Optional[int] = Field(None, ge=0, le=2147483647)
    records: List[str] = Field(default_factory=list)
    set_identifier: Optional[str] = None
    health_check_id: Optional[str] = None
    multivalue_answer_routing_policy: Optional[bool] = None
    allow_overwrite: Optional[bool] = None
    alias: Optional[AliasTarget] = None
    weighted_routing_policy: Optional[WeightedRoutingPolicy] = None
    latency_routing_policy: Optional[LatencyRoutingPolicy] = None
    failover_routing_policy: Optional[FailoverRoutingPolicy] = None
    geolocation_routing_policy: Optional[GeolocationRoutingPolicy] = None
    geoproximity_routing_policy: Optional[GeoproximityRoutingPolicy] = None

    @field_validator("zone_id")
    @classmethod
    def check_zone_id(cls, value: str) -> str:
        if not is_interpolation(value) and not ZONE_ID_PATTERN.match(value):
            raise ValueError(f"Invalid hosted zone ID format: {value}")
        return value

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not is_interpolation(value) and (len(value) > 253 or not RECORD_NAME_PATTERN.match(value)):
            raise ValueError(f"Invalid DNS record name format: {value}")
        return value

    @field_validator("health_check_id")
    @classmethod
    def check_health_check_id(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_interpolation(value) and not HEALTH_CHECK_ID_PATTERN.match(value):
            raise ValueError(f"Invalid health check ID format: {value}")
        return value

    @model_validator(mode="after")
    def check_record(self) -> "Route53RecordAttributes":
        if self.alias is not None:
            if self.ttl is not None or self.records:
                raise ValueError("Alias records cannot have TTL or records values")
        else:
            if not self.records:
                raise ValueError("Non-alias records must have at least one record value")
            if self.ttl is None:
                raise ValueError("Non-alias records must have a TTL value")
            self._check_record_values()

        policies = self.routing_policies
        if len(policies) > 1:
            raise ValueError("Only one routing policy can be specified per record")
        if policies and not self.multivalue_answer_routing_policy and self.set_identifier is None:
            raise ValueError("set_identifier is required when using routing policies")
        return self

    def _check_record_values(self) -> None:
        literal = [record for record in self.records if not is_interpolation(record)]
        if self.type == "CNAME" and len(self.records) != 1:
            raise ValueError("CNAME records must have exactly one record value")
        if self.type in ("A", "AAAA"):
            version = 4 if self.type == "A" else 6
            for record in literal:
                try:
                    address = ipaddress.ip_address(record)
                except ValueError:
                    address = None
                if address is None or address.version != version:
                    raise ValueError(f"{self.type} record value '{record}' is not a valid IPv{version} address")

    @property
    def routing_policies(self) -> List[str]:
        return [policy for policy in ROUTING_POLICIES if getattr(self, policy) is not None]

    @property
    def is_alias(self) -> bool:
        return self.alias is not None

    @property
    def is_wildcard(self) -> bool:
        return self.name.startswith("*.")


@register_resource("aws_route53_zone", Route53ZoneAttributes, category="dns", outputs=list(ROUTE53_ZONE_OUTPUTS))
def aws_route53_zone(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                     **kwargs: Any) -> ResourceReference:
    """
    Public or private hosted zone.

    The zone ``name`` (the domain) clashes with the resource name
    parameter, so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(Route53ZoneAttributes, "aws_route53_zone", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_route53_zone", name) as r:
        write_attributes(r, attrs, blocks=("vpc",))
    logger.debug(f"aws_route53_zone.{name} is a {attrs.zone_type} zone for {attrs.name}")
    return ResourceReference.build("aws_route53_zone", name, attrs, ROUTE53_ZONE_OUTPUTS)


@register_resource("aws_route53_record", Route53RecordAttributes, category="dns", outputs=ROUTE53_RECORD_OUTPUTS)
def aws_route53_record(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                       **kwargs: Any) -> ResourceReference:
    """
    DNS record, plain or alias, with an optional routing policy.

    The record ``name`` clashes with the resource name parameter, so pass
    it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(Route53RecordAttributes, "aws_route53_record", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_route53_record", name) as r:
        write_attributes(r, attrs, blocks=["alias", *ROUTING_POLICIES])
    return ResourceReference.build("aws_route53_record", name, attrs, ROUTE53_RECORD_OUTPUTS)
