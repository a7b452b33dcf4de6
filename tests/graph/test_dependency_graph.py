"""Tests for the resource dependency graph."""

import pytest
from pangea.graph.dependency_graph import (
    DependencyGraph,
    depends_on_address,
    extract_references,
    validate_references,
)
from pangea.utils.errors import DependencyCycleError, DependencyGraphError, MissingReferenceError


@pytest.fixture
def document():
    """A small document with a data source, a depends_on entry and a chain of references."""
    return {
        "data": {"aws_ami": {"ubuntu": {"most_recent": True}}},
        "resource": {
            "aws_vpc": {"main": {"cidr_block": "10.0.0.0/16"}},
            "aws_subnet": {"a": {"vpc_id": "${aws_vpc.main.id}", "cidr_block": "10.0.1.0/24"}},
            "aws_instance": {
                "web": {
                    "ami": "${data.aws_ami.ubuntu.id}",
                    "subnet_id": "${aws_subnet.a.id}",
                    "depends_on": ["aws_s3_bucket.logs"],
                },
            },
            "aws_s3_bucket": {"logs": {"bucket": "logs"}},
        },
    }


class TestExtractReferences:
    """Test interpolation parsing."""

    def test_resource_reference(self):
        """Test resource reference."""
        assert extract_references("${aws_vpc.main.id}") == {"aws_vpc.main"}

    def test_data_reference(self):
        """Test data reference."""
        assert extract_references("${data.aws_ami.ubuntu.id}") == {"data.aws_ami.ubuntu"}

    def test_variables_and_locals_are_ignored(self):
        """Test variables and locals are ignored."""
        assert extract_references("${var.environment}-${local.suffix}") == set()

    def test_text_outside_interpolation_is_ignored(self):
        """Test text outside interpolation is ignored."""
        assert extract_references("aws_vpc.main.id") == set()

    def test_function_call_and_splat(self):
        """Test function call and splat."""
        assert extract_references("${element(aws_subnet.private.*.id, 0)}") == {"aws_subnet.private"}

    def test_multiple_references(self):
        """Test multiple references."""
        value = "${aws_lb.web.dns_name}:${aws_lb_listener.http.port}"

        assert extract_references(value) == {"aws_lb.web", "aws_lb_listener.http"}


class TestDependencyGraph:
    """Test dependency graph construction and queries."""

    def test_build_from_document(self, document):
        """Test build from document."""
        graph = DependencyGraph().build_from_document(document)

        assert graph.graph.number_of_nodes() == 5
        assert graph.graph.number_of_edges() == 4
        assert graph.has_node("data.aws_ami.ubuntu")

    def test_direct_and_transitive_dependencies(self, document):
        """Test direct and transitive dependencies."""
        graph = DependencyGraph().build_from_document(document)

        assert graph.dependencies("aws_instance.web") == {
            "data.aws_ami.ubuntu", "aws_subnet.a", "aws_s3_bucket.logs",
        }
        assert "aws_vpc.main" in graph.dependencies("aws_instance.web", transitive=True)
        assert graph.dependencies("aws_unknown.x") == set()

    def test_dependents(self, document):
        """Test dependents."""
        graph = DependencyGraph().build_from_document(document)

        assert graph.dependents("aws_vpc.main") == {"aws_subnet.a", "aws_instance.web"}
        assert graph.dependents("aws_instance.web") == set()

    def test_topological_order(self, document):
        """Test topological order."""
        order = DependencyGraph().build_from_document(document).topological_order()

        assert len(order) == 5
        assert order.index("aws_vpc.main") < order.index("aws_subnet.a") < order.index("aws_instance.web")
        assert order.index("aws_s3_bucket.logs") < order.index("aws_instance.web")

    def test_self_reference_is_not_an_edge(self):
        """Test self reference is not an edge."""
        document = {"resource": {"aws_security_group": {"web": {"name": "${aws_security_group.web.id}"}}}}
        graph = DependencyGraph().build_from_document(document)

        assert graph.graph.number_of_edges() == 0
        assert graph.find_missing_references() == {}

    def test_interpolated_depends_on(self):
        """Test an interpolated depends_on entry."""
        document = {"resource": {
            "aws_s3_bucket": {"logs": {}},
            "aws_instance": {"web": {"depends_on": ["${aws_s3_bucket.logs}"]}},
        }}
        graph = DependencyGraph().build_from_document(document)

        assert graph.dependencies("aws_instance.web") == {"aws_s3_bucket.logs"}

    def test_malformed_document(self):
        """Test malformed document."""
        with pytest.raises(DependencyGraphError, match="Failed to build dependency graph"):
            DependencyGraph().build_from_document({"resource": {"aws_vpc": ["main"]}})


class TestValidateReferences:
    """Test validate_references."""

    def test_valid_document(self, document):
        """Test valid document."""
        graph = validate_references(document)

        assert isinstance(graph, DependencyGraph)

    def test_missing_reference(self):
        """Test missing reference."""
        document = {"resource": {"aws_subnet": {"a": {"vpc_id": "${aws_vpc.missing.id}"}}}}

        graph = DependencyGraph().build_from_document(document)
        assert graph.find_missing_references() == {"aws_subnet.a": ["aws_vpc.missing"]}
        with pytest.raises(MissingReferenceError, match="aws_subnet.a -> aws_vpc.missing"):
            validate_references(document)

    def test_cycle(self):
        """Test cycle."""
        document = {"resource": {
            "aws_security_group": {
                "a": {"ingress": [{"security_groups": ["${aws_security_group.b.id}"]}]},
                "b": {"ingress": [{"security_groups": ["${aws_security_group.a.id}"]}]},
            },
        }}

        with pytest.raises(DependencyCycleError, match="Dependency cycle detected"):
            validate_references(document)
        with pytest.raises(DependencyCycleError):
            DependencyGraph().build_from_document(document).topological_order()


class TestStringLiterals:
    """Test that quoted literals inside interpolations are not addresses."""

    def test_file_function(self):
        """Test that a file() path is not read as a resource."""
        assert extract_references('${file("init.sh")}') == set()

    def test_templatefile_function(self):
        """Test templatefile() with a path literal and a real reference."""
        value = '${templatefile("user_data.tpl", { bucket = aws_s3_bucket.logs.id })}'

        assert extract_references(value) == {"aws_s3_bucket.logs"}

    def test_escaped_quotes(self):
        """Test literals containing escaped quotes."""
        assert extract_references('${format("say \\"hi.there\\"", aws_vpc.main.id)}') == {"aws_vpc.main"}

    def test_user_data_validates(self):
        """Test that a document using file() passes reference validation."""
        document = {"resource": {"aws_instance": {"web": {
            "ami": "ami-12345678",
            "user_data": '${file("init.sh")}',
        }}}}

        assert validate_references(document).find_missing_references() == {}


class TestDependsOn:
    """Test depends_on handling."""

    @pytest.mark.parametrize("entry,address", [
        ("aws_vpc.main", "aws_vpc.main"),
        ("${aws_vpc.main}", "aws_vpc.main"),
        ("aws_vpc.main.id", "aws_vpc.main"),
        ("data.aws_ami.ubuntu", "data.aws_ami.ubuntu"),
        ("module.network", None),
        ("var.enabled", None),
        ("aws_vpc", None),
    ])
    def test_depends_on_address(self, entry, address):
        """Test the address a depends_on entry names."""
        assert depends_on_address(entry) == address

    def test_module_and_variable_entries_are_ignored(self):
        """Test that module and variable entries do not fail validation."""
        document = {"resource": {"aws_instance": {"web": {
            "ami": "ami-12345678",
            "depends_on": ["module.network", "var.x"],
        }}}}

        graph = validate_references(document)
        assert graph.dependencies("aws_instance.web") == set()

    def test_missing_depends_on_target(self):
        """Test that an undefined depends_on resource is still reported."""
        document = {"resource": {"aws_instance": {"web": {"depends_on": ["aws_s3_bucket.missing"]}}}}

        with pytest.raises(MissingReferenceError, match="aws_instance.web -> aws_s3_bucket.missing"):
            validate_references(document)
