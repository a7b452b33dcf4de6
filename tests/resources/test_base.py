"""Tests for attribute validation and attribute writing."""

from typing import Dict, List, Optional
import pytest
from pydantic import Field, ValidationError, model_validator
from pangea.resources.base import (
    BaseAttributes,
    NestedBlock,
    merge_attributes,
    mutually_exclusive,
    validate_attributes,
    write_attributes,
)
from pangea.resources.reference import ResourceReference
from pangea.synthesizer import TerraformSynthesizer
from pangea.utils.errors import ResourceValidationError


class Rule(NestedBlock):
    port: int
    cidr_blocks: List[str] = Field(default_factory=list)


class SampleAttributes(BaseAttributes):
    vpc_id: str
    description: Optional[str] = None
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    rules: List[Rule] = Field(default_factory=list)
    tags: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_name(self) -> "SampleAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self


class TestValidateAttributes:
    """Test validate_attributes."""

    def test_valid_attributes(self):
        """Test valid attributes."""
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": "vpc-1"})

        assert attrs.vpc_id == "vpc-1"
        assert attrs.to_dict() == {"vpc_id": "vpc-1", "rules": [], "tags": {}}

    def test_unknown_key_rejected(self):
        """Test unknown key rejected."""
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": "vpc-1", "colour": "red"})

        error = exc_info.value
        assert error.resource_type == "aws_sample"
        assert error.name == "main"
        assert "Invalid attributes for aws_sample.main" in str(error)
        assert error.errors[0].startswith("colour:")

    def test_missing_required_field(self):
        """Test missing required field."""
        with pytest.raises(ResourceValidationError, match="vpc_id"):
            validate_attributes(SampleAttributes, "aws_sample", "main", {})

    def test_cross_field_rule_message(self):
        """Test cross field rule message."""
        with pytest.raises(ResourceValidationError) as exc_info:
            validate_attributes(SampleAttributes, "aws_sample", "main",
                                {"vpc_id": "vpc-1", "name": "a", "name_prefix": "a-"})

        assert exc_info.value.errors == ["attributes: Cannot specify both 'name' and 'name_prefix'"]

    def test_references_become_id_interpolations(self):
        """Test references become ID interpolations."""
        vpc = ResourceReference.build("aws_vpc", "main", {"cidr_block": "10.0.0.0/16"})
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": vpc})

        assert attrs.vpc_id == "${aws_vpc.main.id}"

    def test_attributes_are_frozen(self):
        """Test attributes are frozen."""
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": "vpc-1"})
        with pytest.raises(ValidationError):
            attrs.vpc_id = "vpc-2"


class TestWriteAttributes:
    """Test write_attributes."""

    def test_unset_and_empty_values_omitted(self):
        """Test unset and empty values omitted."""
        synth = TerraformSynthesizer()
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": "vpc-1"})
        with synth.resource("aws_sample", "main") as r:
            write_attributes(r, attrs)

        assert synth.synthesis["resource"]["aws_sample"]["main"] == {"vpc_id": "vpc-1"}

    def test_blocks_written_per_entry(self):
        """Test blocks written per entry."""
        synth = TerraformSynthesizer()
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {
            "vpc_id": "vpc-1",
            "rules": [{"port": 80}, {"port": 443, "cidr_blocks": ["0.0.0.0/0"]}],
            "tags": {"Name": "sample"},
        })
        with synth.resource("aws_sample", "main") as r:
            write_attributes(r, attrs, blocks=("rules",), skip=("tags",))

        body = synth.synthesis["resource"]["aws_sample"]["main"]
        assert body["rules"] == [{"port": 80}, {"port": 443, "cidr_blocks": ["0.0.0.0/0"]}]
        assert "tags" not in body


class TestHelpers:
    """Test attribute helpers."""

    def test_merge_attributes_keywords_win(self):
        """Test merge attributes keywords win."""
        assert merge_attributes({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}
        assert merge_attributes(None, {"a": 1}) == {"a": 1}


class TestMetaArguments:
    """Test depends_on, lifecycle and provider on resource records."""

    def test_meta_arguments_written_last(self):
        """Test that meta-arguments follow the resource's own attributes."""
        synth = TerraformSynthesizer()
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {
            "vpc_id": "vpc-1",
            "depends_on": ["aws_s3_bucket.logs"],
            "lifecycle": {"create_before_destroy": True, "ignore_changes": ["tags"]},
            "provider": "aws.eu",
        })
        with synth.resource("aws_sample", "main") as r:
            write_attributes(r, attrs)

        body = synth.synthesis["resource"]["aws_sample"]["main"]
        assert list(body) == ["vpc_id", "depends_on", "lifecycle", "provider"]
        assert body["depends_on"] == ["aws_s3_bucket.logs"]
        assert body["lifecycle"] == {"create_before_destroy": True, "ignore_changes": ["tags"]}
        assert body["provider"] == "aws.eu"

    def test_reference_in_depends_on_becomes_address(self):
        """Test that a reference in depends_on renders as its address."""
        bucket = ResourceReference.build("aws_s3_bucket", "logs", {})
        attrs = validate_attributes(SampleAttributes, "aws_sample", "main", {
            "vpc_id": "vpc-1",
            "depends_on": [bucket, "${aws_vpc.main}"],
        })

        assert attrs.depends_on == ["aws_s3_bucket.logs", "aws_vpc.main"]

    def test_invalid_depends_on_entry(self):
        """Test that depends_on entries must be addresses."""
        with pytest.raises(ResourceValidationError, match="depends_on: depends_on entry 'not an address'"):
            validate_attributes(SampleAttributes, "aws_sample", "main", {
                "vpc_id": "vpc-1",
                "depends_on": ["not an address"],
            })

    def test_invalid_provider(self):
        """Test provider reference format."""
        with pytest.raises(ResourceValidationError, match="must look like 'aws' or 'aws.<alias>'"):
            validate_attributes(SampleAttributes, "aws_sample", "main", {"vpc_id": "vpc-1", "provider": "aws/eu"})

    def test_unknown_lifecycle_key(self):
        """Test that lifecycle only takes Terraform's lifecycle settings."""
        with pytest.raises(ResourceValidationError, match="lifecycle.prevent_deletion"):
            validate_attributes(SampleAttributes, "aws_sample", "main", {
                "vpc_id": "vpc-1",
                "lifecycle": {"prevent_deletion": True},
            })

    def test_nested_blocks_do_not_take_meta_arguments(self):
        """Test that meta-arguments are rejected inside nested blocks."""
        with pytest.raises(ResourceValidationError, match="rules.0.depends_on"):
            validate_attributes(SampleAttributes, "aws_sample", "main", {
                "vpc_id": "vpc-1",
                "rules": [{"port": 80, "depends_on": ["aws_vpc.main"]}],
            })
