"""CloudWatch log groups and metric alarms."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import Tags
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.monitoring")

LOG_GROUP_OUTPUTS = ["id", "arn", "name"]
METRIC_ALARM_OUTPUTS = ["id", "arn", "alarm_name"]

# Values accepted by CloudWatch Logs; 0 means never expire
RETENTION_DAYS = [
    0, 1, 3, 5, 7, 14, 30, 60, 90, 120, 150, 180, 365, 400, 545, 731,
    1096, 1827, 2192, 2557, 2922, 3288, 3653,
]

ComparisonOperator = Literal[
    "GreaterThanOrEqualToThreshold", "GreaterThanThreshold", "LessThanThreshold",
    "LessThanOrEqualToThreshold", "LessThanLowerOrGreaterThanUpperThreshold",
    "LessThanLowerThreshold", "GreaterThanUpperThreshold",
]
Statistic = Literal["SampleCount", "Average", "Sum", "Minimum", "Maximum"]


class CloudWatchLogGroupAttributes(BaseAttributes):
    name: Optional[str] = Field(None, max_length=512)
    name_prefix: Optional[str] = None
    retention_in_days: Optional[int] = None
    kms_key_id: Optional[str] = None
    log_group_class: Optional[Literal["STANDARD", "INFREQUENT_ACCESS"]] = None
    skip_destroy: Optional[bool] = None
    tags: Tags = Field(default_factory=dict)

    @field_validator("retention_in_days")
    @classmethod
    def check_retention(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in RETENTION_DAYS:
            raise ValueError(
                f"retention_in_days {value} is not supported; expected one of: "
                f"{', '.join(str(days) for days in RETENTION_DAYS)}"
            )
        return value

    @model_validator(mode="after")
    def check_name(self) -> "CloudWatchLogGroupAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self


class MetricStat(NestedBlock):
    metric_name: str
    namespace: str
    period: int = Field(..., gt=0)
    stat: str
    unit: Optional[str] = None
    dimensions: Dict[str, str] = Field(default_factory=dict)


class MetricQuery(NestedBlock):
    id: str
    expression: Optional[str] = None
    label: Optional[str] = None
    return_data: Optional[bool] = None
    metric: Optional[MetricStat] = None

    @model_validator(mode="after")
    def check_source(self) -> "MetricQuery":
        if (self.expression is None) == (self.metric is None):
            raise ValueError(f"Metric query '{self.id}' must specify exactly one of 'expression' or 'metric'")
        return self


class CloudWatchMetricAlarmAttributes(BaseAttributes):
    alarm_name: str
    alarm_description: Optional[str] = None
    comparison_operator: ComparisonOperator
    evaluation_periods: int = Field(..., ge=1)
    datapoints_to_alarm: Optional[int] = Field(None, ge=1)
    threshold: Optional[float] = None
    threshold_metric_id: Optional[str] = None
    metric_name: Optional[str] = None
    namespace: Optional[str] = None
    period: Optional[int] = Field(None, gt=0)
    statistic: Optional[Statistic] = None
    extended_statistic: Optional[str] = None
    unit: Optional[str] = None
    dimensions: Dict[str, str] = Field(default_factory=dict)
    metric_query: List[MetricQuery] = Field(default_factory=list)
    actions_enabled: bool = True
    alarm_actions: List[str] = Field(default_factory=list)
    ok_actions: List[str] = Field(default_factory=list)
    insufficient_data_actions: List[str] = Field(default_factory=list)
    treat_missing_data: Literal["missing", "ignore", "breaching", "notBreaching"] = "missing"
    evaluate_low_sample_count_percentiles: Optional[Literal["evaluate", "ignore"]] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_alarm(self) -> "CloudWatchMetricAlarmAttributes":
        if self.datapoints_to_alarm is not None and self.datapoints_to_alarm > self.evaluation_periods:
            raise ValueError("datapoints_to_alarm cannot be greater than evaluation_periods")

        if self.metric_query:
            if self.metric_name is not None or self.namespace is not None:
                raise ValueError("Cannot specify metric_name or namespace together with metric_query")
            if sum(1 for query in self.metric_query if query.return_data) != 1:
                raise ValueError("Exactly one metric_query must set return_data to true")
            return self

        missing = [key for key in ("metric_name", "namespace", "period", "threshold") if getattr(self, key) is None]
        if missing:
            raise ValueError(f"Metric alarm requires {', '.join(missing)} when metric_query is not used")
        if (self.statistic is None) == (self.extended_statistic is None):
            raise ValueError("Must specify exactly one of 'statistic' or 'extended_statistic'")
        return self

    @property
    def is_metric_math_alarm(self) -> bool:
        return bool(self.metric_query)

    @property
    def is_traditional_alarm(self) -> bool:
        return not self.metric_query


@register_resource("aws_cloudwatch_log_group", CloudWatchLogGroupAttributes, category="monitoring",
                   outputs=LOG_GROUP_OUTPUTS)
def aws_cloudwatch_log_group(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                             **kwargs: Any) -> ResourceReference:
    """
    CloudWatch Logs log group.

    The log group ``name`` attribute clashes with the resource name
    parameter, so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(CloudWatchLogGroupAttributes, "aws_cloudwatch_log_group", name,
                                merge_attributes(attributes, kwargs))
    if attrs.retention_in_days is None:
        logger.debug(f"aws_cloudwatch_log_group.{name} keeps logs forever")
    with synth.resource("aws_cloudwatch_log_group", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_cloudwatch_log_group", name, attrs, LOG_GROUP_OUTPUTS)


@register_resource("aws_cloudwatch_metric_alarm", CloudWatchMetricAlarmAttributes, category="monitoring",
                   outputs=METRIC_ALARM_OUTPUTS)
def aws_cloudwatch_metric_alarm(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                                **kwargs: Any) -> ResourceReference:
    """CloudWatch alarm on a single metric or a metric math expression."""
    attrs = validate_attributes(CloudWatchMetricAlarmAttributes, "aws_cloudwatch_metric_alarm", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_cloudwatch_metric_alarm", name) as r:
        write_attributes(r, attrs, skip=("metric_query",))
        for query in attrs.metric_query:
            with r.metric_query() as block:
                write_attributes(block, query, blocks=("metric",))
    return ResourceReference.build("aws_cloudwatch_metric_alarm", name, attrs, METRIC_ALARM_OUTPUTS)
