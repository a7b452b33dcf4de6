"""Storage resources: S3 buckets and DynamoDB tables."""

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import PolicyDocument, Tags, is_interpolation
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.storage")

S3_BUCKET_OUTPUTS = [
    "id", "arn", "bucket", "bucket_domain_name", "bucket_regional_domain_name",
    "hosted_zone_id", "region", "website_endpoint", "website_domain",
]
DYNAMODB_TABLE_OUTPUTS = ["id", "arn", "name", "stream_arn", "stream_label", "hash_key", "range_key"]

BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")


class Versioning(NestedBlock):
    enabled: bool = False
    mfa_delete: Optional[bool] = None


class ServerSideEncryption(NestedBlock):
    sse_algorithm: Literal["AES256", "aws:kms", "aws:kms:dsse"] = "AES256"
    kms_master_key_id: Optional[str] = None
    bucket_key_enabled: Optional[bool] = None

    @model_validator(mode="after")
    def check_kms_key(self) -> "ServerSideEncryption":
        if self.sse_algorithm.startswith("aws:kms") and self.kms_master_key_id is None:
            raise ValueError("kms_master_key_id is required when using aws:kms encryption")
        return self


class LifecycleTransition(NestedBlock):
    days: int = Field(..., ge=0)
    storage_class: Literal["STANDARD_IA", "ONEZONE_IA", "INTELLIGENT_TIERING", "GLACIER", "GLACIER_IR", "DEEP_ARCHIVE"]


class LifecycleRule(NestedBlock):
    id: str
    enabled: bool = True
    prefix: Optional[str] = None
    expiration_days: Optional[int] = Field(None, gt=0)
    noncurrent_version_expiration_days: Optional[int] = Field(None, gt=0)
    abort_incomplete_multipart_upload_days: Optional[int] = Field(None, gt=0)
    transitions: List[LifecycleTransition] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_action(self) -> "LifecycleRule":
        actions = [self.expiration_days, self.noncurrent_version_expiration_days,
                   self.abort_incomplete_multipart_upload_days]
        if all(action is None for action in actions) and not self.transitions:
            raise ValueError(
                f"Lifecycle rule '{self.id}' must specify at least one action "
                "(expiration, transition, noncurrent version expiration or abort incomplete multipart upload)"
            )
        return self


class CorsRule(NestedBlock):
    allowed_methods: List[Literal["GET", "PUT", "POST", "DELETE", "HEAD"]] = Field(..., min_length=1)
    allowed_origins: List[str] = Field(..., min_length=1)
    allowed_headers: List[str] = Field(default_factory=list)
    expose_headers: List[str] = Field(default_factory=list)
    max_age_seconds: Optional[int] = Field(None, ge=0)


class RedirectAllRequestsTo(NestedBlock):
    host_name: str
    protocol: Optional[Literal["http", "https"]] = None


class Website(NestedBlock):
    index_document: Optional[str] = None
    error_document: Optional[str] = None
    redirect_all_requests_to: Optional[RedirectAllRequestsTo] = None
    routing_rules: Optional[str] = None

    @model_validator(mode="after")
    def check_redirect(self) -> "Website":
        if self.redirect_all_requests_to is not None and (self.index_document or self.error_document):
            raise ValueError("Cannot specify both redirect_all_requests_to and index/error documents")
        return self


class BucketLogging(NestedBlock):
    target_bucket: str
    target_prefix: Optional[str] = None


class S3BucketAttributes(BaseAttributes):
    bucket: Optional[str] = None
    bucket_prefix: Optional[str] = None
    acl: Literal["private", "public-read", "public-read-write", "authenticated-read", "log-delivery-write"] = "private"
    force_destroy: Optional[bool] = None
    versioning: Optional[Versioning] = None
    server_side_encryption: Optional[ServerSideEncryption] = None
    lifecycle_rules: List[LifecycleRule] = Field(default_factory=list)
    cors_rules: List[CorsRule] = Field(default_factory=list)
    website: Optional[Website] = None
    logging: Optional[BucketLogging] = None
    object_lock_enabled: Optional[bool] = None
    policy: Optional[PolicyDocument] = None
    tags: Tags = Field(default_factory=dict)

    @field_validator("bucket")
    @classmethod
    def check_bucket_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None or is_interpolation(value):
            return value
        if not BUCKET_NAME_PATTERN.match(value) or ".." in value:
            raise ValueError(
                f"bucket name '{value}' must be 3-63 characters of lowercase letters, digits, dots and hyphens"
            )
        return value

    @model_validator(mode="after")
    def check_bucket(self) -> "S3BucketAttributes":
        mutually_exclusive(self, "bucket", "bucket_prefix")
        if self.object_lock_enabled and not (self.versioning and self.versioning.enabled):
            raise ValueError("Object lock requires versioning to be enabled")
        return self


class DynamoAttribute(NestedBlock):
    name: str
    type: Literal["S", "N", "B"]


class GlobalSecondaryIndex(NestedBlock):
    name: str
    hash_key: str
    range_key: Optional[str] = None
    projection_type: Literal["ALL", "KEYS_ONLY", "INCLUDE"] = "ALL"
    non_key_attributes: List[str] = Field(default_factory=list)
    read_capacity: Optional[int] = Field(None, gt=0)
    write_capacity: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_projection(self) -> "GlobalSecondaryIndex":
        if self.non_key_attributes and self.projection_type != "INCLUDE":
            raise ValueError(f"Index '{self.name}': non_key_attributes require projection_type INCLUDE")
        return self


class TimeToLive(NestedBlock):
    attribute_name: str
    enabled: bool = True


class TableEncryption(NestedBlock):
    enabled: bool = True
    kms_key_arn: Optional[str] = None


class DynamoDbTableAttributes(BaseAttributes):
    name: str
    hash_key: str
    range_key: Optional[str] = None
    attribute: List[DynamoAttribute] = Field(..., min_length=1)
    billing_mode: Literal["PAY_PER_REQUEST", "PROVISIONED"] = "PAY_PER_REQUEST"
    read_capacity: Optional[int] = Field(None, gt=0)
    write_capacity: Optional[int] = Field(None, gt=0)
    global_secondary_index: List[GlobalSecondaryIndex] = Field(default_factory=list)
    ttl: Optional[TimeToLive] = None
    point_in_time_recovery: Optional[bool] = None
    server_side_encryption: Optional[TableEncryption] = None
    stream_enabled: Optional[bool] = None
    stream_view_type: Optional[Literal["KEYS_ONLY", "NEW_IMAGE", "OLD_IMAGE", "NEW_AND_OLD_IMAGES"]] = None
    deletion_protection_enabled: Optional[bool] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_table(self) -> "DynamoDbTableAttributes":
        defined = {attr.name for attr in self.attribute}
        keys = [self.hash_key, self.range_key]
        for index in self.global_secondary_index:
            keys.extend([index.hash_key, index.range_key])
        for key in keys:
            if key is not None and key not in defined:
                raise ValueError(f"Key '{key}' must be defined in attribute")

        if self.billing_mode == "PROVISIONED":
            if self.read_capacity is None or self.write_capacity is None:
                raise ValueError("read_capacity and write_capacity are required when billing_mode is PROVISIONED")
        elif self.read_capacity is not None or self.write_capacity is not None:
            raise ValueError("read_capacity and write_capacity cannot be set when billing_mode is PAY_PER_REQUEST")

        if self.stream_enabled and self.stream_view_type is None:
            raise ValueError("stream_view_type is required when stream_enabled is true")
        return self


@register_resource("aws_s3_bucket", S3BucketAttributes, category="storage", outputs=S3_BUCKET_OUTPUTS)
def aws_s3_bucket(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                  **kwargs: Any) -> ResourceReference:
    """S3 bucket with inline versioning, encryption, lifecycle, CORS, website and logging."""
    attrs = validate_attributes(S3BucketAttributes, "aws_s3_bucket", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_s3_bucket", name) as r:
        write_attributes(r, attrs, blocks=("versioning", "website", "logging"), skip=(
            "server_side_encryption", "lifecycle_rules", "cors_rules", "tags",
        ))

        sse = attrs.server_side_encryption
        if sse is not None:
            with r.server_side_encryption_configuration() as config:
                with config.rule() as rule:
                    with rule.apply_server_side_encryption_by_default() as default:
                        default.sse_algorithm(sse.sse_algorithm)
                        if sse.kms_master_key_id:
                            default.kms_master_key_id(sse.kms_master_key_id)
                    if sse.bucket_key_enabled is not None:
                        rule.bucket_key_enabled(sse.bucket_key_enabled)

        for lifecycle in attrs.lifecycle_rules:
            with r.lifecycle_rule() as rule:
                rule.id(lifecycle.id)
                rule.enabled(lifecycle.enabled)
                if lifecycle.prefix is not None:
                    rule.prefix(lifecycle.prefix)
                if lifecycle.abort_incomplete_multipart_upload_days:
                    rule.abort_incomplete_multipart_upload_days(lifecycle.abort_incomplete_multipart_upload_days)
                if lifecycle.expiration_days:
                    with rule.expiration() as expiration:
                        expiration.days(lifecycle.expiration_days)
                if lifecycle.noncurrent_version_expiration_days:
                    with rule.noncurrent_version_expiration() as expiration:
                        expiration.days(lifecycle.noncurrent_version_expiration_days)
                for transition in lifecycle.transitions:
                    with rule.transition() as block:
                        block.update(transition.to_dict())

        for cors in attrs.cors_rules:
            with r.cors_rule() as rule:
                rule.update({key: value for key, value in cors.to_dict().items() if value != []})

        if attrs.tags:
            r.tags(attrs.tags)
    return ResourceReference.build("aws_s3_bucket", name, attrs, S3_BUCKET_OUTPUTS)


@register_resource("aws_dynamodb_table", DynamoDbTableAttributes, category="storage", outputs=DYNAMODB_TABLE_OUTPUTS)
def aws_dynamodb_table(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                       **kwargs: Any) -> ResourceReference:
    """
    DynamoDB table.

    The table ``name`` attribute clashes with the resource name parameter,
    so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(DynamoDbTableAttributes, "aws_dynamodb_table", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_dynamodb_table", name) as r:
        write_attributes(r, attrs, blocks=("attribute", "global_secondary_index", "ttl", "server_side_encryption"),
                         skip=("point_in_time_recovery",))
        if attrs.point_in_time_recovery is not None:
            with r.point_in_time_recovery() as pitr:
                pitr.enabled(attrs.point_in_time_recovery)
    return ResourceReference.build("aws_dynamodb_table", name, attrs, DYNAMODB_TABLE_OUTPUTS)
