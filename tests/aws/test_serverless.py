"""Tests for Lambda functions."""

import pytest
from pangea.template import Template
from pangea.utils.errors import ResourceValidationError

ROLE_ARN = "arn:aws:iam::123456789012:role/lambda-exec"


@pytest.fixture
def template():
    return Template("serverless")


@pytest.fixture
def zip_function():
    return {
        "function_name": "api",
        "role": ROLE_ARN,
        "handler": "app.handler",
        "runtime": "python3.12",
        "filename": "build/api.zip",
    }


def body(template, name):
    return template.synthesis["resource"]["aws_lambda_function"][name]


class TestLambdaFunction:
    """Test aws_lambda_function."""

    def test_zip_function(self, template, zip_function):
        """Test zip function."""
        function = template.aws_lambda_function("api", zip_function, environment={"STAGE": "prod"},
                                                tracing_mode="Active", ephemeral_storage_size=1024)

        assert body(template, "api") == {
            "function_name": "api",
            "role": ROLE_ARN,
            "package_type": "Zip",
            "handler": "app.handler",
            "runtime": "python3.12",
            "filename": "build/api.zip",
            "timeout": 3,
            "memory_size": 128,
            "architectures": ["x86_64"],
            "environment": {"variables": {"STAGE": "prod"}},
            "tracing_config": {"mode": "Active"},
            "ephemeral_storage": {"size": 1024},
        }
        assert function.invoke_arn == "${aws_lambda_function.api.invoke_arn}"

    def test_role_reference(self, template, zip_function):
        """Test role reference."""
        role = template.aws_iam_role("exec", assume_role_policy={
            "Version": "2012-10-17",
            "Statement": [{"Effect": "Allow", "Principal": {"Service": "lambda.amazonaws.com"},
                           "Action": "sts:AssumeRole"}],
        })
        zip_function["role"] = role.arn
        template.aws_lambda_function("api", zip_function)

        assert body(template, "api")["role"] == "${aws_iam_role.exec.arn}"

    def test_image_function(self, template):
        """Test image function."""
        template.aws_lambda_function("worker", {
            "function_name": "worker",
            "role": ROLE_ARN,
            "package_type": "Image",
            "image_uri": "123456789012.dkr.ecr.us-east-1.amazonaws.com/worker:latest",
            "image_config": {"command": ["app.handler"]},
            "vpc_config": {"subnet_ids": ["subnet-1"], "security_group_ids": ["sg-1"]},
        })

        function = body(template, "worker")
        assert function["image_config"] == {"command": ["app.handler"]}
        assert function["vpc_config"] == {"subnet_ids": ["subnet-1"], "security_group_ids": ["sg-1"]}
        assert "handler" not in function

    def test_reserved_environment_variable(self, template, zip_function):
        """Test reserved environment variable."""
        with pytest.raises(ResourceValidationError, match="Environment variable 'AWS_REGION' is reserved by Lambda"):
            template.aws_lambda_function("api", zip_function, environment={"AWS_REGION": "us-east-1"})

    def test_zip_requires_handler(self, template, zip_function):
        """Test zip requires handler."""
        del zip_function["handler"]
        with pytest.raises(ResourceValidationError, match="handler and runtime are required for Zip packages"):
            template.aws_lambda_function("api", zip_function)

    def test_zip_requires_one_source(self, template, zip_function):
        """Test zip requires one source."""
        zip_function.update(s3_bucket="artifacts", s3_key="api.zip")
        with pytest.raises(ResourceValidationError, match="Specify exactly one of filename or s3_bucket/s3_key"):
            template.aws_lambda_function("api", zip_function)

    def test_image_requires_uri(self, template):
        """Test image requires uri."""
        with pytest.raises(ResourceValidationError, match="image_uri is required for Image packages"):
            template.aws_lambda_function("worker", function_name="worker", role=ROLE_ARN, package_type="Image")

    def test_invalid_role(self, template, zip_function):
        """Test invalid role."""
        zip_function["role"] = "lambda-exec"
        with pytest.raises(ResourceValidationError, match="'lambda-exec' is not a valid ARN"):
            template.aws_lambda_function("api", zip_function)

    def test_memory_limits(self, template, zip_function):
        """Test memory limits."""
        with pytest.raises(ResourceValidationError, match="memory_size"):
            template.aws_lambda_function("api", zip_function, memory_size=64)
