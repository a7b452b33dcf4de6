"""Tests for template loading."""

import json
import textwrap

import pytest
from pangea.loader.template_loader import load_template
from pangea.loader.template_validator import validate_resource_entry, validate_template_structure
from pangea.template import Template
from pangea.utils.errors import TemplateLoadError, UnknownResourceError

NETWORK_YAML = textwrap.dedent("""\
    name: network
    provider:
      aws:
        region: us-west-2
    variable:
      environment:
        type: string
        default: dev
    resources:
      - type: aws_vpc
        name: main
        attributes:
          cidr_block: 10.0.0.0/16
          tags:
            Environment: ${var.environment}
      - type: aws_subnet
        name: public_a
        attributes:
          vpc_id: ${aws_vpc.main.id}
          cidr_block: 10.0.1.0/24
          availability_zone: us-west-2a
    output:
      vpc_id:
        value: ${aws_vpc.main.id}
        description: VPC id
""")

PYTHON_TEMPLATE = textwrap.dedent("""\
    def build(t):
        vpc = t.aws_vpc("main", cidr_block="10.0.0.0/16")
        t.aws_internet_gateway("igw", vpc_id=vpc.id)
        t.output("vpc_id", vpc.id)
""")


@pytest.fixture
def write_template(tmp_path):
    """Write a template file into tmp_path and return its path as a string."""
    def write(filename, content):
        path = tmp_path / filename
        path.write_text(content)
        return str(path)
    return write


def synthesize(loaded):
    template = Template(loaded.name)
    loaded.apply(template)
    return template.synthesis


class TestDocumentTemplates:
    """Test YAML and JSON templates."""

    def test_load_yaml_template(self, write_template):
        """Test load YAML template."""
        loaded = load_template(write_template("network.yaml", NETWORK_YAML))

        assert loaded.kind == "document"
        assert loaded.name == "network"
        assert len(loaded.document.resources) == 2

    def test_apply_yaml_template(self, write_template):
        """Test apply YAML template."""
        document = synthesize(load_template(write_template("network.yaml", NETWORK_YAML)))

        assert document["provider"]["aws"] == {"region": "us-west-2"}
        assert document["variable"]["environment"] == {"type": "string", "default": "dev"}
        assert document["resource"]["aws_vpc"]["main"]["tags"] == {"Environment": "${var.environment}"}
        assert document["resource"]["aws_subnet"]["public_a"]["vpc_id"] == "${aws_vpc.main.id}"
        assert document["output"]["vpc_id"] == {"value": "${aws_vpc.main.id}", "description": "VPC id"}

    def test_load_json_template(self, write_template):
        """Test load JSON template."""
        content = json.dumps({
            "resources": [{"type": "aws_s3_bucket", "name": "logs", "attributes": {"bucket": "acme-logs"}}],
            "data": {"aws_caller_identity": {"current": {}}},
            "locals": {"prefix": "acme"},
        })
        loaded = load_template(write_template("storage.tf.json", content))
        document = synthesize(loaded)

        assert loaded.name == "storage"
        assert document["resource"]["aws_s3_bucket"]["logs"]["bucket"] == "acme-logs"
        assert document["data"]["aws_caller_identity"]["current"] == {}
        assert document["locals"] == {"prefix": "acme"}

    def test_compositions(self, write_template):
        """Test compositions."""
        content = textwrap.dedent("""\
            compositions:
              - composition: vpc_with_subnets
                args:
                  name_prefix: core
                  vpc_cidr: 10.0.0.0/16
                  availability_zones: [us-east-1a, us-east-1b]
        """)
        document = synthesize(load_template(write_template("core.yml", content)))

        assert "core_vpc" in document["resource"]["aws_vpc"]
        assert len(document["resource"]["aws_subnet"]) == 4

    def test_output_without_value(self, write_template):
        """Test output without value."""
        content = "output:\n  vpc_id:\n    description: missing\n"
        loaded = load_template(write_template("outputs.yaml", content))

        with pytest.raises(TemplateLoadError, match="Output 'vpc_id' must have a value"):
            synthesize(loaded)

    def test_unknown_resource_type(self, write_template):
        """Test unknown resource type."""
        content = "resources:\n  - type: aws_unicorn\n    name: one\n"
        loaded = load_template(write_template("unicorn.yaml", content))

        with pytest.raises(UnknownResourceError, match="Unknown resource type 'aws_unicorn'"):
            synthesize(loaded)

    def test_invalid_yaml(self, write_template):
        """Test invalid YAML."""
        with pytest.raises(TemplateLoadError, match="Invalid YAML in template"):
            load_template(write_template("broken.yaml", "resources: [\n"))

    def test_invalid_json(self, write_template):
        """Test invalid JSON."""
        with pytest.raises(TemplateLoadError, match="Invalid JSON in template"):
            load_template(write_template("broken.json", "{not json"))

    def test_unknown_composition_field(self, write_template):
        """Test unknown composition field."""
        content = "compositions:\n  - composition: vpc_with_subnets\n    arguments: {}\n"

        with pytest.raises(TemplateLoadError, match="Invalid template"):
            load_template(write_template("bad.yaml", content))

    def test_empty_document(self, write_template, caplog):
        """Test empty document."""
        loaded = load_template(write_template("empty.yaml", ""))

        assert synthesize(loaded) == {}
        assert "Template defines no resources" in caplog.text


class TestPythonTemplates:
    """Test Python templates."""

    def test_load_python_template(self, write_template):
        """Test load python template."""
        loaded = load_template(write_template("network.py", PYTHON_TEMPLATE))
        document = synthesize(loaded)

        assert loaded.kind == "python"
        assert loaded.name == "network"
        assert document["resource"]["aws_internet_gateway"]["igw"] == {"vpc_id": "${aws_vpc.main.id}"}
        assert document["output"]["vpc_id"] == {"value": "${aws_vpc.main.id}"}

    def test_missing_build_function(self, write_template):
        """Test missing build function."""
        with pytest.raises(TemplateLoadError, match="must define a build\\(template\\) function"):
            load_template(write_template("nobuild.py", "VALUE = 1\n"))

    def test_import_error(self, write_template):
        """Test import error."""
        with pytest.raises(TemplateLoadError, match="Error importing template"):
            load_template(write_template("broken.py", "import not_a_real_module_xyz\n"))


class TestTemplatePaths:
    """Test path checks."""

    def test_missing_file(self, tmp_path):
        """Test missing file."""
        with pytest.raises(TemplateLoadError, match="Template file not found"):
            load_template(str(tmp_path / "missing.yaml"))

    def test_directory(self, tmp_path):
        """Test directory."""
        with pytest.raises(TemplateLoadError, match="Path is not a file"):
            load_template(str(tmp_path))

    def test_unsupported_suffix(self, write_template):
        """Test unsupported suffix."""
        with pytest.raises(TemplateLoadError, match="Unsupported template type '.tf'"):
            load_template(write_template("main.tf", "resource {}"))


class TestTemplateValidator:
    """Test template structure validation."""

    def test_top_level_must_be_mapping(self):
        """Test top level must be mapping."""
        with pytest.raises(TemplateLoadError, match="must be a mapping at the top level"):
            validate_template_structure(["aws_vpc"])

    def test_unknown_sections(self):
        """Test unknown sections."""
        with pytest.raises(TemplateLoadError, match="unknown sections: resourcez"):
            validate_template_structure({"resourcez": []})

    def test_mapping_sections(self):
        """Test mapping sections."""
        with pytest.raises(TemplateLoadError, match="Template section 'provider' must be a mapping"):
            validate_template_structure({"provider": ["aws"]})

    def test_resources_must_be_list(self):
        """Test resources must be list."""
        with pytest.raises(TemplateLoadError, match="'resources' must be a list"):
            validate_template_structure({"resources": {"type": "aws_vpc"}})

    def test_duplicate_resources(self):
        """Test duplicate resources."""
        resource = {"type": "aws_vpc", "name": "main"}

        with pytest.raises(TemplateLoadError, match="resources\\[1\\]: duplicate resource aws_vpc.main"):
            validate_template_structure({"resources": [resource, dict(resource)]})

    def test_resource_entry_problems(self):
        """Test resource entry problems."""
        assert validate_resource_entry({"type": "aws_vpc", "name": "main", "attributes": {}}) == []
        assert validate_resource_entry("aws_vpc") == ["resource entry must be a mapping"]
        assert validate_resource_entry({"type": "aws_vpc"}) == ["missing required fields: name"]
        assert validate_resource_entry({"type": "aws_vpc", "name": "main", "attributes": []}) == [
            "'attributes' must be a mapping",
        ]
        assert validate_resource_entry({"type": "aws_vpc", "name": "main", "count": 2}) == ["unknown fields: count"]

    def test_problems_are_collected(self):
        """Test problems are collected."""
        with pytest.raises(TemplateLoadError) as exc_info:
            validate_template_structure({"resources": [{"type": "aws_vpc"}, {"name": "x"}]})

        message = str(exc_info.value)
        assert "resources[0]: missing required fields: name" in message
        assert "resources[1]: missing required fields: type" in message
