"""Lambda functions."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import Arn, Tags
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.serverless")

LAMBDA_FUNCTION_OUTPUTS = [
    "id", "arn", "function_name", "qualified_arn", "qualified_invoke_arn", "invoke_arn",
    "version", "last_modified", "source_code_hash", "source_code_size",
]

LambdaRuntime = Literal[
    "python3.9", "python3.10", "python3.11", "python3.12", "python3.13",
    "nodejs18.x", "nodejs20.x", "nodejs22.x",
    "java11", "java17", "java21",
    "dotnet8", "ruby3.2", "ruby3.3",
    "provided.al2", "provided.al2023",
]

# Set by the Lambda runtime itself
RESERVED_ENVIRONMENT_VARIABLES = {
    "_HANDLER", "AWS_REGION", "AWS_EXECUTION_ENV", "AWS_LAMBDA_FUNCTION_NAME",
    "AWS_LAMBDA_FUNCTION_MEMORY_SIZE", "AWS_LAMBDA_FUNCTION_VERSION", "AWS_LAMBDA_LOG_GROUP_NAME",
    "AWS_LAMBDA_LOG_STREAM_NAME", "AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN",
    "LAMBDA_TASK_ROOT", "LAMBDA_RUNTIME_DIR",
}


class VpcConfig(NestedBlock):
    subnet_ids: List[str] = Field(..., min_length=1)
    security_group_ids: List[str] = Field(..., min_length=1)


class DeadLetterConfig(NestedBlock):
    target_arn: str


class ImageConfig(NestedBlock):
    entry_point: List[str] = Field(default_factory=list)
    command: List[str] = Field(default_factory=list)
    working_directory: Optional[str] = None


class LambdaFunctionAttributes(BaseAttributes):
    function_name: str
    role: Arn
    package_type: Literal["Zip", "Image"] = "Zip"
    handler: Optional[str] = None
    runtime: Optional[LambdaRuntime] = None
    filename: Optional[str] = None
    source_code_hash: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_key: Optional[str] = None
    s3_object_version: Optional[str] = None
    image_uri: Optional[str] = None
    image_config: Optional[ImageConfig] = None
    description: Optional[str] = None
    timeout: int = Field(3, ge=1, le=900)
    memory_size: int = Field(128, ge=128, le=10240)
    publish: Optional[bool] = None
    architectures: List[Literal["x86_64", "arm64"]] = Field(default_factory=lambda: ["x86_64"], max_length=1)
    reserved_concurrent_executions: Optional[int] = Field(None, ge=-1)
    layers: List[str] = Field(default_factory=list, max_length=5)
    environment: Dict[str, str] = Field(default_factory=dict)
    vpc_config: Optional[VpcConfig] = None
    dead_letter_config: Optional[DeadLetterConfig] = None
    tracing_mode: Optional[Literal["Active", "PassThrough"]] = None
    ephemeral_storage_size: Optional[int] = Field(None, ge=512, le=10240)
    kms_key_arn: Optional[str] = None
    tags: Tags = Field(default_factory=dict)

    @field_validator("environment")
    @classmethod
    def check_environment(cls, value: Dict[str, str]) -> Dict[str, str]:
        for key in value:
            if key in RESERVED_ENVIRONMENT_VARIABLES:
                raise ValueError(f"Environment variable '{key}' is reserved by Lambda")
        return value

    @model_validator(mode="after")
    def check_package(self) -> "LambdaFunctionAttributes":
        if self.package_type == "Image":
            if self.image_uri is None:
                raise ValueError("image_uri is required for Image packages")
            if self.filename is not None or self.s3_bucket is not None:
                raise ValueError("Image packages cannot use filename or s3_bucket")
            return self

        if self.handler is None or self.runtime is None:
            raise ValueError("handler and runtime are required for Zip packages")
        if self.image_uri is not None or self.image_config is not None:
            raise ValueError("image_uri and image_config are only valid for Image packages")
        if (self.s3_key is None) != (self.s3_bucket is None):
            raise ValueError("s3_bucket and s3_key must be specified together")
        if (self.filename is None) == (self.s3_bucket is None):
            raise ValueError("Specify exactly one of filename or s3_bucket/s3_key for Zip packages")
        return self


@register_resource("aws_lambda_function", LambdaFunctionAttributes, category="serverless",
                   outputs=LAMBDA_FUNCTION_OUTPUTS)
def aws_lambda_function(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                        **kwargs: Any) -> ResourceReference:
    """Lambda function from a Zip archive or a container image."""
    attrs = validate_attributes(LambdaFunctionAttributes, "aws_lambda_function", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_lambda_function", name) as r:
        write_attributes(r, attrs, blocks=("image_config", "vpc_config", "dead_letter_config"), skip=(
            "environment", "tracing_mode", "ephemeral_storage_size", "tags",
        ))
        if attrs.environment:
            with r.environment() as environment:
                environment.variables(attrs.environment)
        if attrs.tracing_mode:
            with r.tracing_config() as tracing:
                tracing.mode(attrs.tracing_mode)
        if attrs.ephemeral_storage_size:
            with r.ephemeral_storage() as storage:
                storage.size(attrs.ephemeral_storage_size)
        if attrs.tags:
            r.tags(attrs.tags)
    return ResourceReference.build("aws_lambda_function", name, attrs, LAMBDA_FUNCTION_OUTPUTS)
