"""AWS resource functions. Importing this package registers every resource type."""

from . import compute, database, dns, iam, loadbalancing, messaging, monitoring, network, security, serverless, storage
from .compute import (
    aws_autoscaling_attachment,
    aws_autoscaling_group,
    aws_autoscaling_policy,
    aws_instance,
    aws_launch_template,
)
from .database import aws_db_instance, aws_db_subnet_group
from .dns import aws_route53_record, aws_route53_zone
from .iam import aws_iam_policy, aws_iam_role, aws_iam_role_policy_attachment
from .loadbalancing import aws_lb, aws_lb_listener, aws_lb_target_group
from .messaging import aws_sns_subscription, aws_sns_topic, aws_sqs_queue
from .monitoring import aws_cloudwatch_log_group, aws_cloudwatch_metric_alarm
from .network import (
    aws_eip,
    aws_internet_gateway,
    aws_nat_gateway,
    aws_route_table,
    aws_route_table_association,
    aws_security_group,
    aws_subnet,
    aws_vpc,
)
from .security import aws_kms_key, aws_secretsmanager_secret
from .serverless import aws_lambda_function
from .storage import aws_dynamodb_table, aws_s3_bucket

__all__ = [
    "compute", "database", "dns", "iam", "loadbalancing", "messaging",
    "monitoring", "network", "security", "serverless", "storage",
    "aws_autoscaling_attachment", "aws_autoscaling_group", "aws_autoscaling_policy",
    "aws_instance", "aws_launch_template",
    "aws_db_instance", "aws_db_subnet_group",
    "aws_route53_record", "aws_route53_zone",
    "aws_iam_policy", "aws_iam_role", "aws_iam_role_policy_attachment",
    "aws_lb", "aws_lb_listener", "aws_lb_target_group",
    "aws_sns_subscription", "aws_sns_topic", "aws_sqs_queue",
    "aws_cloudwatch_log_group", "aws_cloudwatch_metric_alarm",
    "aws_eip", "aws_internet_gateway", "aws_nat_gateway", "aws_route_table",
    "aws_route_table_association", "aws_security_group", "aws_subnet", "aws_vpc",
    "aws_kms_key", "aws_secretsmanager_secret",
    "aws_lambda_function",
    "aws_dynamodb_table", "aws_s3_bucket",
]
