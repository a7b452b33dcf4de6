"""Tests for the pangea CLI commands."""

import json
import textwrap

import pytest
from click.testing import CliRunner
from pangea.cli.main import cli

NETWORK_TEMPLATE = textwrap.dedent("""\
    def build(t):
        vpc = t.aws_vpc("main", cidr_block="10.0.0.0/16")
        t.aws_internet_gateway("igw", vpc_id=vpc.id)
""")

BROKEN_REFERENCE = textwrap.dedent("""\
    resources:
      - type: aws_subnet
        name: a
        attributes:
          vpc_id: ${aws_vpc.missing.id}
          cidr_block: 10.0.1.0/24
""")

INVALID_ATTRIBUTES = textwrap.dedent("""\
    resources:
      - type: aws_vpc
        name: main
        attributes:
          cidr_block: not-a-cidr
""")


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Working directory with an isolated home and a few templates."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    (tmp_path / "network.py").write_text(NETWORK_TEMPLATE)
    (tmp_path / "broken.yaml").write_text(BROKEN_REFERENCE)
    (tmp_path / "invalid.yaml").write_text(INVALID_ATTRIBUTES)
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


class TestSynthCommand:
    """Test synth command."""

    def test_synth_to_stdout(self, runner, workspace):
        """Test synth to stdout."""
        result = runner.invoke(cli, ["synth", "network.py", "--quiet"])

        assert result.exit_code == 0
        document = json.loads(result.output)
        assert document["resource"]["aws_vpc"]["main"]["cidr_block"] == "10.0.0.0/16"
        assert document["resource"]["aws_internet_gateway"]["igw"]["vpc_id"] == "${aws_vpc.main.id}"
        assert document["provider"]["aws"]["region"] == "us-east-1"
        assert document["terraform"]["required_providers"]["aws"]["source"] == "hashicorp/aws"

    def test_synth_to_file(self, runner, workspace):
        """Test synth to file."""
        result = runner.invoke(cli, ["synth", "network.py", "-o", "out/main.tf.json"])

        assert result.exit_code == 0
        assert "Synthesized network: 2 resource" in result.output
        assert "Output saved to:" in result.output
        document = json.loads((workspace / "out" / "main.tf.json").read_text())
        assert "aws_vpc" in document["resource"]

    def test_synth_with_config(self, runner, workspace):
        """Test synth with config."""
        (workspace / "pangea.yaml").write_text(
            "providers:\n  aws:\n    region: eu-west-1\noutput:\n  indent: 4\n"
        )
        result = runner.invoke(cli, ["synth", "network.py", "--config", "pangea.yaml", "-o", "main.tf.json"])

        assert result.exit_code == 0
        text = (workspace / "main.tf.json").read_text()
        assert json.loads(text)["provider"]["aws"]["region"] == "eu-west-1"
        assert '\n    "resource"' in text

    def test_synth_missing_reference(self, runner, workspace):
        """Test synth missing reference."""
        result = runner.invoke(cli, ["synth", "broken.yaml", "--quiet"])

        assert result.exit_code == 1
        assert "Undefined references: aws_subnet.a -> aws_vpc.missing" in result.output

    def test_synth_without_validation(self, runner, workspace):
        """Test synth without validation."""
        result = runner.invoke(cli, ["synth", "broken.yaml", "--quiet", "--no-validate", "-o", "main.tf.json"])

        assert result.exit_code == 0
        assert (workspace / "main.tf.json").exists()

    def test_synth_missing_file(self, runner, workspace):
        """Test synth missing file."""
        result = runner.invoke(cli, ["synth", "missing.yaml"])

        assert result.exit_code == 1
        assert "Error: File not found: missing.yaml" in result.output


class TestValidateCommand:
    """Test validate command."""

    def test_validate_valid_template(self, runner, workspace):
        """Test validate valid template."""
        result = runner.invoke(cli, ["validate", "network.py"])

        assert result.exit_code == 0
        assert "Template network is valid" in result.output
        assert "Resources: 2" in result.output
        assert "Dependencies: 1" in result.output
        assert "Creation order: aws_vpc.main -> aws_internet_gateway.igw" in result.output

    def test_validate_invalid_attributes(self, runner, workspace):
        """Test validate invalid attributes."""
        result = runner.invoke(cli, ["validate", "invalid.yaml"])

        assert result.exit_code == 1
        assert "Invalid attributes for aws_vpc.main" in result.output
        assert "Tip: Fix the template" in result.output

    def test_validate_missing_reference(self, runner, workspace):
        """Test validate missing reference."""
        result = runner.invoke(cli, ["validate", "broken.yaml"])

        assert result.exit_code == 1
        assert "aws_vpc.missing" in result.output


class TestResourcesCommand:
    """Test resources command."""

    def test_list_resources(self, runner):
        """Test list resources."""
        result = runner.invoke(cli, ["resources"])

        assert result.exit_code == 0
        assert "network:" in result.output
        assert "aws_vpc" in result.output
        assert "compositions:" in result.output
        assert "vpc_with_subnets" in result.output

    def test_list_resources_json(self, runner):
        """Test list resources JSON."""
        result = runner.invoke(cli, ["resources", "--json"])

        assert result.exit_code == 0
        catalogue = json.loads(result.output)
        by_type = {entry["type"]: entry for entry in catalogue["resources"]}
        assert by_type["aws_vpc"]["category"] == "network"
        assert "id" in by_type["aws_vpc"]["outputs"]
        assert catalogue["compositions"] == ["auto_scaling_web_tier", "vpc_with_subnets"]

    def test_list_resources_by_category(self, runner):
        """Test list resources by category."""
        result = runner.invoke(cli, ["resources", "--category", "storage"])

        assert result.exit_code == 0
        assert "aws_s3_bucket" in result.output
        assert "aws_vpc" not in result.output
        assert "compositions:" not in result.output


class TestSchemaCommand:
    """Test schema command."""

    def test_schema(self, runner):
        """Test schema."""
        result = runner.invoke(cli, ["schema", "aws_vpc"])

        assert result.exit_code == 0
        assert "cidr_block" in json.loads(result.output)["properties"]

    def test_unknown_type(self, runner):
        """Test unknown type."""
        result = runner.invoke(cli, ["schema", "aws_bucket"])

        assert result.exit_code == 1
        assert "Unknown resource type 'aws_bucket'" in result.output
        assert "Similar types:" in result.output
        assert "aws_s3_bucket" in result.output


class TestVersionCommand:
    """Test version reporting."""

    def test_version_command(self, runner):
        """Test version command."""
        result = runner.invoke(cli, ["version"])

        assert result.exit_code == 0
        assert result.output.strip() == "pangea version 0.1.0"

    def test_version_option(self, runner):
        """Test version option."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "pangea version 0.1.0" in result.output
