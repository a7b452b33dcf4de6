"""Messaging resources: SNS topics and subscriptions, SQS queues."""

import json
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import Tags, is_interpolation, json_document
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.messaging")

SQS_QUEUE_OUTPUTS = ["id", "arn", "name", "url"]
SNS_TOPIC_OUTPUTS = ["id", "arn", "name", "owner", "beginning_archive_time"]
SNS_SUBSCRIPTION_OUTPUTS = ["id", "arn", "owner_id", "confirmation_was_authenticated", "pending_confirmation"]

FEEDBACK_PROTOCOLS = ["application", "http", "lambda", "sqs", "firehose"]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")

Policy = json_document("policy")
DeliveryPolicy = json_document("delivery_policy")
FilterPolicy = json_document("filter_policy")
SubscriptionRedrivePolicy = json_document("redrive_policy")
DataProtectionPolicy = json_document("message_data_protection_policy")


class RedrivePolicy(NestedBlock):
    dead_letter_target_arn: str
    max_receive_count: int = Field(..., ge=1, le=1000)


class RedriveAllowPolicy(NestedBlock):
    redrive_permission: Literal["allowAll", "denyAll", "byQueue"]
    source_queue_arns: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_sources(self) -> "RedriveAllowPolicy":
        if self.redrive_permission == "byQueue" and not self.source_queue_arns:
            raise ValueError("sourceQueueArns must be specified when redrivePermission is 'byQueue'")
        return self


class SqsQueueAttributes(BaseAttributes):
    name: str
    fifo_queue: bool = False
    content_based_deduplication: Optional[bool] = None
    visibility_timeout_seconds: Optional[int] = Field(None, ge=0, le=43200)
    message_retention_seconds: Optional[int] = Field(None, ge=60, le=1209600)
    max_message_size: Optional[int] = Field(None, ge=1024, le=262144)
    delay_seconds: Optional[int] = Field(None, ge=0, le=900)
    receive_wait_time_seconds: Optional[int] = Field(None, ge=0, le=20)
    redrive_policy: Optional[RedrivePolicy] = None
    redrive_allow_policy: Optional[RedriveAllowPolicy] = None
    kms_master_key_id: Optional[str] = None
    kms_data_key_reuse_period_seconds: Optional[int] = Field(None, ge=60, le=86400)
    sqs_managed_sse_enabled: Optional[bool] = None
    deduplication_scope: Optional[Literal["messageGroup", "queue"]] = None
    fifo_throughput_limit: Optional[Literal["perMessageGroupId", "perQueue"]] = None
    policy: Optional[Policy] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_queue(self) -> "SqsQueueAttributes":
        literal_name = not is_interpolation(self.name)
        if self.fifo_queue and literal_name and not self.name.endswith(".fifo"):
            raise ValueError("FIFO queue names must end with '.fifo' suffix")
        if not self.fifo_queue:
            if literal_name and self.name.endswith(".fifo"):
                raise ValueError("Standard queue names cannot end with '.fifo' suffix")
            if self.content_based_deduplication:
                raise ValueError("content_based_deduplication is only valid for FIFO queues")
            if self.deduplication_scope is not None:
                raise ValueError("deduplication_scope is only valid for FIFO queues")
            if self.fifo_throughput_limit is not None:
                raise ValueError("fifo_throughput_limit is only valid for FIFO queues")
        if self.kms_master_key_id is not None and self.sqs_managed_sse_enabled:
            raise ValueError("Cannot enable both KMS encryption and SQS managed server-side encryption")
        return self

    @property
    def queue_type(self) -> str:
        return "FIFO" if self.fifo_queue else "Standard"


class SnsTopicAttributes(BaseAttributes):
    name: Optional[str] = None
    display_name: Optional[str] = None
    kms_master_key_id: Optional[str] = None
    fifo_topic: bool = False
    content_based_deduplication: Optional[bool] = None
    delivery_policy: Optional[DeliveryPolicy] = None
    policy: Optional[Policy] = None
    application_success_feedback_role_arn: Optional[str] = None
    application_success_feedback_sample_rate: Optional[int] = Field(None, ge=0, le=100)
    application_failure_feedback_role_arn: Optional[str] = None
    http_success_feedback_role_arn: Optional[str] = None
    http_success_feedback_sample_rate: Optional[int] = Field(None, ge=0, le=100)
    http_failure_feedback_role_arn: Optional[str] = None
    lambda_success_feedback_role_arn: Optional[str] = None
    lambda_success_feedback_sample_rate: Optional[int] = Field(None, ge=0, le=100)
    lambda_failure_feedback_role_arn: Optional[str] = None
    sqs_success_feedback_role_arn: Optional[str] = None
    sqs_success_feedback_sample_rate: Optional[int] = Field(None, ge=0, le=100)
    sqs_failure_feedback_role_arn: Optional[str] = None
    firehose_success_feedback_role_arn: Optional[str] = None
    firehose_success_feedback_sample_rate: Optional[int] = Field(None, ge=0, le=100)
    firehose_failure_feedback_role_arn: Optional[str] = None
    message_data_protection_policy: Optional[DataProtectionPolicy] = None
    tracing_config: Optional[Literal["Active", "PassThrough"]] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_topic(self) -> "SnsTopicAttributes":
        if self.name is not None and not is_interpolation(self.name):
            if self.fifo_topic and not self.name.endswith(".fifo"):
                raise ValueError("FIFO topic names must end with '.fifo' suffix")
            if not self.fifo_topic and self.name.endswith(".fifo"):
                raise ValueError("Standard topic names cannot end with '.fifo' suffix")
        if not self.fifo_topic and self.content_based_deduplication:
            raise ValueError("content_based_deduplication is only valid for FIFO topics")
        for protocol in FEEDBACK_PROTOCOLS:
            sample_rate = f"{protocol}_success_feedback_sample_rate"
            role_arn = f"{protocol}_success_feedback_role_arn"
            if getattr(self, sample_rate) is not None and getattr(self, role_arn) is None:
                raise ValueError(f"{sample_rate} requires {role_arn} to be set")
        return self


class SnsSubscriptionAttributes(BaseAttributes):
    topic_arn: str
    protocol: Literal["sqs", "lambda", "http", "https", "email", "email-json", "sms", "application", "firehose"]
    endpoint: str
    raw_message_delivery: Optional[bool] = None
    filter_policy: Optional[FilterPolicy] = None
    filter_policy_scope: Optional[Literal["MessageAttributes", "MessageBody"]] = None
    redrive_policy: Optional[SubscriptionRedrivePolicy] = None
    delivery_policy: Optional[DeliveryPolicy] = None
    subscription_role_arn: Optional[str] = None
    confirmation_timeout_in_minutes: Optional[int] = Field(None, ge=1)
    endpoint_auto_confirms: Optional[bool] = None

    @model_validator(mode="after")
    def check_subscription(self) -> "SnsSubscriptionAttributes":
        self._check_endpoint()
        if self.protocol == "firehose" and self.subscription_role_arn is None:
            raise ValueError("Firehose protocol requires subscription_role_arn")
        if self.redrive_policy is not None and not is_interpolation(self.redrive_policy):
            if "deadLetterTargetArn" not in json.loads(self.redrive_policy):
                raise ValueError("redrive_policy must contain deadLetterTargetArn")
        if self.raw_message_delivery and self.protocol not in ("sqs", "lambda", "http", "https", "firehose"):
            raise ValueError("raw_message_delivery is only valid for sqs, lambda, http, https, and firehose protocols")
        if self.filter_policy_scope == "MessageBody" and self.protocol not in ("sqs", "lambda", "firehose"):
            raise ValueError("MessageBody filter scope is only valid for sqs, lambda, and firehose protocols")
        if self.delivery_policy is not None and self.protocol not in ("http", "https"):
            raise ValueError("delivery_policy is only valid for http and https protocols")
        return self

    def _check_endpoint(self) -> None:
        endpoint = self.endpoint
        if is_interpolation(endpoint):
            return
        protocol = self.protocol
        if protocol in ("email", "email-json") and not EMAIL_PATTERN.match(endpoint):
            raise ValueError("Email protocol requires valid email address")
        if protocol == "sms" and not PHONE_PATTERN.match(endpoint):
            raise ValueError("SMS protocol requires valid phone number (E.164 format)")
        if protocol == "http" and not endpoint.startswith("http://"):
            raise ValueError("HTTP protocol requires endpoint starting with http://")
        if protocol == "https" and not endpoint.startswith("https://"):
            raise ValueError("HTTPS protocol requires endpoint starting with https://")
        if protocol == "sqs" and not endpoint.startswith("arn:aws:sqs:"):
            raise ValueError("SQS protocol requires valid SQS queue ARN")
        if protocol == "lambda" and not endpoint.startswith("arn:aws:lambda:"):
            raise ValueError("Lambda protocol requires valid Lambda function ARN")
        if protocol == "firehose" and not endpoint.startswith("arn:aws:firehose:"):
            raise ValueError("Firehose protocol requires valid delivery stream ARN")


def _redrive_json(policy: RedrivePolicy) -> str:
    return json.dumps({
        "deadLetterTargetArn": policy.dead_letter_target_arn,
        "maxReceiveCount": policy.max_receive_count,
    })


def _redrive_allow_json(policy: RedriveAllowPolicy) -> str:
    document: Dict[str, Any] = {"redrivePermission": policy.redrive_permission}
    if policy.source_queue_arns:
        document["sourceQueueArns"] = list(policy.source_queue_arns)
    return json.dumps(document)


@register_resource("aws_sqs_queue", SqsQueueAttributes, category="messaging", outputs=SQS_QUEUE_OUTPUTS)
def aws_sqs_queue(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                  **kwargs: Any) -> ResourceReference:
    """
    SQS queue.

    Redrive policies are given as structured blocks and rendered as the
    JSON strings SQS expects. Pass the queue ``name`` in ``attributes``.
    """
    attrs = validate_attributes(SqsQueueAttributes, "aws_sqs_queue", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_sqs_queue", name) as r:
        write_attributes(r, attrs, skip=("fifo_queue", "redrive_policy", "redrive_allow_policy", "tags"))
        if attrs.fifo_queue:
            r.fifo_queue(True)
        if attrs.redrive_policy is not None:
            r.redrive_policy(_redrive_json(attrs.redrive_policy))
        if attrs.redrive_allow_policy is not None:
            r.redrive_allow_policy(_redrive_allow_json(attrs.redrive_allow_policy))
        if attrs.tags:
            r.tags(attrs.tags)
    return ResourceReference.build("aws_sqs_queue", name, attrs, SQS_QUEUE_OUTPUTS)


@register_resource("aws_sns_topic", SnsTopicAttributes, category="messaging", outputs=SNS_TOPIC_OUTPUTS)
def aws_sns_topic(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                  **kwargs: Any) -> ResourceReference:
    """SNS topic, standard or FIFO."""
    attrs = validate_attributes(SnsTopicAttributes, "aws_sns_topic", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_sns_topic", name) as r:
        write_attributes(r, attrs, skip=("fifo_topic",))
        if attrs.fifo_topic:
            r.fifo_topic(True)
    return ResourceReference.build("aws_sns_topic", name, attrs, SNS_TOPIC_OUTPUTS)


@register_resource("aws_sns_subscription", SnsSubscriptionAttributes, category="messaging",
                   outputs=SNS_SUBSCRIPTION_OUTPUTS)
def aws_sns_subscription(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                         **kwargs: Any) -> ResourceReference:
    """Subscription of an endpoint to an SNS topic."""
    attrs = validate_attributes(SnsSubscriptionAttributes, "aws_sns_subscription", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_sns_subscription", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_sns_subscription", name, attrs, SNS_SUBSCRIPTION_OUTPUTS)
