"""Tests for the public synthesis API."""

import logging
import textwrap

import pytest
from pangea import build_template, synthesize
from pangea.utils.errors import MissingReferenceError, PangeaError, ResourceValidationError
from pangea.utils.logging import set_log_level


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep user settings out of the synthesized documents."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def write_template(tmp_path):
    def write(filename, content):
        path = tmp_path / filename
        path.write_text(textwrap.dedent(content))
        return str(path)
    return write


class TestSynthesize:
    """Test synthesize and build_template."""

    def test_synthesize_yaml(self, write_template):
        """Test synthesize YAML."""
        path = write_template("queue.yaml", """\
            resources:
              - type: aws_sqs_queue
                name: jobs
                attributes:
                  name: jobs
        """)

        document = synthesize(path)

        assert document["resource"]["aws_sqs_queue"]["jobs"]["name"] == "jobs"
        assert document["provider"]["aws"]["default_tags"] == {"tags": {"ManagedBy": "pangea"}}

    def test_synthesize_with_config_file(self, write_template, tmp_path):
        """Test synthesize with config file."""
        path = write_template("queue.yaml", """\
            resources:
              - type: aws_sqs_queue
                name: jobs
                attributes:
                  name: jobs
        """)
        config_path = tmp_path / "pangea.yaml"
        config_path.write_text("default_tags:\n  Team: data\n")

        document = synthesize(path, config_path=str(config_path))

        assert document["provider"]["aws"]["default_tags"]["tags"] == {"ManagedBy": "pangea", "Team": "data"}

    def test_build_template(self, write_template):
        """Test build template."""
        path = write_template("app.py", """\
            def build(t):
                t.aws_s3_bucket("assets", bucket="acme-assets")
        """)

        template = build_template(path)

        assert template.name == "app"
        assert template.resource_addresses() == ["aws_s3_bucket.assets"]

    def test_missing_reference(self, write_template):
        """Test missing reference."""
        path = write_template("broken.py", """\
            def build(t):
                t.aws_subnet("a", vpc_id="${aws_vpc.missing.id}", cidr_block="10.0.1.0/24")
        """)

        with pytest.raises(MissingReferenceError, match="aws_subnet.a -> aws_vpc.missing"):
            build_template(path)

        template = build_template(path, validate=False)
        assert template.resource_addresses() == ["aws_subnet.a"]

    def test_validation_errors_pass_through(self, write_template):
        """Test validation errors pass through."""
        path = write_template("bad.py", """\
            def build(t):
                t.aws_vpc("main", cidr_block="10.0.0.0/8")
        """)

        with pytest.raises(ResourceValidationError, match="Invalid attributes for aws_vpc.main"):
            build_template(path)

    def test_unexpected_errors_are_wrapped(self, write_template):
        """Test unexpected errors are wrapped."""
        path = write_template("boom.py", """\
            def build(t):
                raise ValueError("boom")
        """)

        with pytest.raises(PangeaError, match="Synthesis failed: boom"):
            build_template(path)


class TestLogLevelFromConfig:
    """Test that build_template applies the configured log level."""

    @pytest.fixture
    def restore_level(self):
        """Put the pangea logger back to INFO after the test."""
        yield
        set_log_level("INFO")

    def test_config_level(self, write_template, tmp_path, restore_level):
        """Test that the logging section sets the pangea logger level."""
        path = write_template("app.py", """\
            def build(t):
                t.aws_s3_bucket("assets", bucket="acme-assets")
        """)
        config_path = tmp_path / "pangea.yaml"
        config_path.write_text("logging:\n  level: warning\n")

        synthesize(path, config_path=str(config_path))

        assert logging.getLogger("pangea").level == logging.WARNING
