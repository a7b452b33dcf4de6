"""Tests for VPC networking resources."""

import pytest
from pangea.template import Template
from pangea.utils.errors import ResourceValidationError


@pytest.fixture
def template():
    return Template("network")


@pytest.fixture
def vpc(template):
    return template.aws_vpc("main", cidr_block="10.0.0.0/16", tags={"Name": "main"})


def body(template, resource_type, name):
    return template.synthesis["resource"][resource_type][name]


class TestVpc:
    """Test aws_vpc."""

    def test_vpc_json_shape(self, template, vpc):
        """Test VPC JSON shape."""
        assert body(template, "aws_vpc", "main") == {
            "cidr_block": "10.0.0.0/16",
            "enable_dns_hostnames": True,
            "enable_dns_support": True,
            "instance_tenancy": "default",
            "tags": {"Name": "main"},
        }

    def test_vpc_reference(self, vpc):
        """Test VPC reference."""
        assert vpc.id == "${aws_vpc.main.id}"
        assert vpc.default_security_group_id == "${aws_vpc.main.default_security_group_id}"
        assert vpc.is_private_cidr is True

    def test_vpc_cidr_too_large(self, template):
        """Test VPC CIDR too large."""
        with pytest.raises(ResourceValidationError, match="too large"):
            template.aws_vpc("big", cidr_block="10.0.0.0/12")

    def test_vpc_invalid_tenancy(self, template):
        """Test VPC invalid tenancy."""
        with pytest.raises(ResourceValidationError, match="instance_tenancy"):
            template.aws_vpc("main", cidr_block="10.0.0.0/16", instance_tenancy="shared")


class TestSubnet:
    """Test aws_subnet."""

    def test_subnet_json_shape(self, template, vpc):
        """Test subnet JSON shape."""
        subnet = template.aws_subnet("a", vpc_id=vpc.id, cidr_block="10.0.1.0/24", availability_zone="us-east-1a")

        assert body(template, "aws_subnet", "a") == {
            "vpc_id": "${aws_vpc.main.id}",
            "cidr_block": "10.0.1.0/24",
            "availability_zone": "us-east-1a",
            "map_public_ip_on_launch": False,
        }
        assert subnet.is_private is True
        assert subnet.ip_capacity == 251

    def test_public_subnet(self, template, vpc):
        """Test public subnet."""
        subnet = template.aws_subnet("pub", vpc_id=vpc.id, cidr_block="10.0.0.0/24",
                                     availability_zone="us-east-1a", map_public_ip_on_launch=True)

        assert subnet.is_public is True
        assert subnet.subnet_type == "public"

    def test_subnet_prefix_out_of_range(self, template, vpc):
        """Test subnet prefix out of range."""
        with pytest.raises(ResourceValidationError, match="between /16 and /28"):
            template.aws_subnet("tiny", vpc_id=vpc.id, cidr_block="10.0.1.0/29", availability_zone="us-east-1a")

    def test_subnet_invalid_zone(self, template, vpc):
        """Test subnet invalid zone."""
        with pytest.raises(ResourceValidationError, match="not a valid availability zone"):
            template.aws_subnet("a", vpc_id=vpc.id, cidr_block="10.0.1.0/24", availability_zone="us-east-1")


class TestGateways:
    """Test internet gateways, Elastic IPs and NAT gateways."""

    def test_nat_gateway_with_eip(self, template, vpc):
        """Test NAT gateway with EIP."""
        eip = template.aws_eip("nat")
        nat = template.aws_nat_gateway("nat", subnet_id="subnet-0abc1234", allocation_id=eip.allocation_id)

        assert body(template, "aws_eip", "nat") == {"domain": "vpc"}
        assert body(template, "aws_nat_gateway", "nat") == {
            "subnet_id": "subnet-0abc1234",
            "allocation_id": "${aws_eip.nat.allocation_id}",
            "connectivity_type": "public",
        }
        assert nat.public_ip == "${aws_nat_gateway.nat.public_ip}"

    def test_private_nat_with_allocation(self, template):
        """Test private NAT with allocation."""
        with pytest.raises(ResourceValidationError, match="allocation_id can only be used with public NAT gateways"):
            template.aws_nat_gateway("nat", subnet_id="subnet-0abc1234", allocation_id="eipalloc-1",
                                     connectivity_type="private")

    def test_eip_instance_and_interface(self, template):
        """Test EIP instance and interface."""
        with pytest.raises(ResourceValidationError, match="Cannot specify both 'instance' and 'network_interface'"):
            template.aws_eip("ip", instance="i-1", network_interface="eni-1")


class TestRouting:
    """Test route tables and associations."""

    def test_single_route(self, template, vpc):
        """Test single route."""
        igw = template.aws_internet_gateway("igw", vpc_id=vpc.id)
        route_table = template.aws_route_table("public", vpc_id=vpc.id,
                                               routes=[{"cidr_block": "0.0.0.0/0", "gateway_id": igw.id}])

        assert body(template, "aws_route_table", "public") == {
            "vpc_id": "${aws_vpc.main.id}",
            "route": {"cidr_block": "0.0.0.0/0", "gateway_id": "${aws_internet_gateway.igw.id}"},
        }
        assert route_table.route_table_id == "${aws_route_table.public.id}"

    def test_multiple_routes_are_repeated_blocks(self, template, vpc):
        """Test multiple routes are repeated blocks."""
        template.aws_route_table("private", vpc_id=vpc.id, routes=[
            {"cidr_block": "0.0.0.0/0", "nat_gateway_id": "nat-0abc1234"},
            {"cidr_block": "192.168.0.0/16", "vpc_peering_connection_id": "pcx-1"},
        ])

        routes = body(template, "aws_route_table", "private")["route"]
        assert isinstance(routes, list)
        assert routes[1] == {"cidr_block": "192.168.0.0/16", "vpc_peering_connection_id": "pcx-1"}

    def test_route_without_target(self, template, vpc):
        """Test route without target."""
        with pytest.raises(ResourceValidationError, match="Route must specify exactly one target"):
            template.aws_route_table("rt", vpc_id=vpc.id, routes=[{"cidr_block": "0.0.0.0/0"}])

    def test_route_with_two_targets(self, template, vpc):
        """Test route with two targets."""
        with pytest.raises(ResourceValidationError, match="multiple were specified"):
            template.aws_route_table("rt", vpc_id=vpc.id, routes=[
                {"cidr_block": "0.0.0.0/0", "gateway_id": "igw-1", "nat_gateway_id": "nat-1"},
            ])

    def test_route_without_destination(self, template, vpc):
        """Test route without destination."""
        with pytest.raises(ResourceValidationError, match="either cidr_block or ipv6_cidr_block"):
            template.aws_route_table("rt", vpc_id=vpc.id, routes=[{"gateway_id": "igw-1"}])

    def test_association_requires_one_target(self, template):
        """Test association requires one target."""
        with pytest.raises(ResourceValidationError, match="exactly one of 'subnet_id' or 'gateway_id'"):
            template.aws_route_table_association("rta", route_table_id="rtb-1")

        template.aws_route_table_association("rta", route_table_id="rtb-1", subnet_id="subnet-1")
        assert body(template, "aws_route_table_association", "rta") == {
            "route_table_id": "rtb-1",
            "subnet_id": "subnet-1",
        }


class TestSecurityGroup:
    """Test aws_security_group."""

    def test_inline_rules(self, template, vpc):
        """Test inline rules."""
        template.aws_security_group("web", {
            "name": "web",
            "description": "Web servers",
            "vpc_id": vpc.id,
            "ingress_rules": [{"from_port": 443, "to_port": 443, "protocol": "tcp", "cidr_blocks": ["0.0.0.0/0"]}],
        })

        sg = body(template, "aws_security_group", "web")
        assert sg["name"] == "web"
        assert "egress" not in sg
        assert sg["ingress"] == [{
            "from_port": 443,
            "to_port": 443,
            "protocol": "tcp",
            "cidr_blocks": ["0.0.0.0/0"],
            "ipv6_cidr_blocks": [],
            "prefix_list_ids": [],
            "security_groups": [],
            "self": False,
            "description": "",
        }]

    def test_self_reference_alias(self, template):
        """Test self reference alias."""
        template.aws_security_group("db", ingress_rules=[
            {"from_port": 5432, "to_port": 5432, "protocol": "tcp", "self": True},
        ])

        assert body(template, "aws_security_group", "db")["ingress"][0]["self"] is True

    def test_port_order(self, template):
        """Test port order."""
        with pytest.raises(ResourceValidationError, match="from_port \\(443\\) cannot be greater than to_port"):
            template.aws_security_group("web", ingress_rules=[{"from_port": 443, "to_port": 80, "protocol": "tcp"}])

    def test_invalid_protocol(self, template):
        """Test invalid protocol."""
        with pytest.raises(ResourceValidationError, match="protocol 'http' is not valid"):
            template.aws_security_group("web", ingress_rules=[{"from_port": 80, "to_port": 80, "protocol": "http"}])

    def test_missing_rule_fields(self, template):
        """Test missing rule fields."""
        with pytest.raises(ResourceValidationError, match="missing required fields: to_port"):
            template.aws_security_group("web", ingress_rules=[{"from_port": 80, "protocol": "tcp"}])

    def test_name_and_prefix(self, template):
        """Test name and prefix."""
        with pytest.raises(ResourceValidationError, match="Cannot specify both 'name' and 'name_prefix'"):
            template.aws_security_group("web", {"name": "web", "name_prefix": "web-"})
