# tests/services/graph/test_business_flow.py

import pytest

from infraviz.services.graph.business_flow import (
    BusinessFlowBuilder,
    classify_environment,
    determine_criticality,
    has_public_access,
)
from infraviz.services.graph.schemas import (
    Criticality,
    FlowLayer,
    FlowType,
    RelationshipType,
    ResourceType,
    ViewMode,
)
from infraviz.services.graph_builder import GraphBuilder


def _build(resources, **kwargs):
    graph = GraphBuilder().build_graph(resources, "us-east-1")
    return BusinessFlowBuilder(**kwargs).build(graph, resources)


@pytest.mark.parametrize("tags, name, expected", [
    ({"Environment": "Production"}, "anything", "prod"),
    ({"env": "stag"}, None, "staging"),
    ({"environment": "development"}, "prod-api", "dev"),
    ({}, "api-prod-1", "prod"),
    (None, "staging-worker", "staging"),
    ({"Environment": "qa"}, "dev-box", "dev"),
    (None, "orders", "unknown"),
])
def test_classify_environment(tags, name, expected):
    assert classify_environment(tags, name) == expected


def test_determine_criticality():
    assert determine_criticality(ResourceType.EC2_INSTANCE, "dev", False) == Criticality.MEDIUM
    assert determine_criticality(ResourceType.EC2_INSTANCE, "prod", False) == Criticality.HIGH
    assert determine_criticality(ResourceType.RDS_INSTANCE, "prod", True) == Criticality.CRITICAL
    assert determine_criticality(ResourceType.S3_BUCKET, "unknown", True) == Criticality.HIGH
    assert determine_criticality(ResourceType.SECURITY_GROUP, "unknown", True) == Criticality.LOW


def test_has_public_access(web_stack):
    by_id = {r.id: r for r in web_stack}

    assert has_public_access(by_id["igw-1"])
    assert has_public_access(by_id["web-lb"])
    assert has_public_access(by_id["sg-web"])
    assert not has_public_access(by_id["sg-app"])
    assert not has_public_access(by_id["i-1"])
    assert not has_public_access(by_id["orders-db"])


class TestBusinessFlowBuilder:

    def test_nodes_are_projected_onto_flow_layers(self, web_stack):
        flow = _build(web_stack)
        nodes = {n.id: n for n in flow.nodes}

        assert flow.view_mode == ViewMode.BUSINESS_FLOW
        # Network plumbing is not part of the business view
        assert not {"vpc-1", "subnet-a", "rtb-1"} & set(nodes)
        assert nodes["igw-1"].flow_layer == FlowLayer.ENTRY
        assert nodes["web-lb"].flow_layer == FlowLayer.ENTRY
        assert nodes["sg-app"].flow_layer == FlowLayer.SECURITY
        assert nodes["i-1"].flow_layer == FlowLayer.COMPUTE
        assert nodes["orders-db"].flow_layer == FlowLayer.DATA
        assert nodes["orders-db"].environment == "prod"
        assert nodes["orders-db"].criticality == Criticality.CRITICAL
        assert nodes["web-lb"].public_access is True
        assert flow.metadata.total_resources == len(web_stack)

    def test_inferred_traffic_and_data_flows(self, web_stack):
        flow = _build(web_stack)
        links = {(l.source, l.target): l for l in flow.links}

        internet = links[("igw-1", "web-lb")]
        assert internet.type == RelationshipType.ROUTES_TO
        assert internet.flow_type == FlowType.TRAFFIC
        assert internet.ports == [443]
        assert internet.protocols == ["TCP"]
        assert internet.metadata == {"inferred": True}

        to_app = links[("web-lb", "i-1")]
        assert to_app.ports == [8080]

        to_db = links[("i-1", "orders-db")]
        assert to_db.type == RelationshipType.USES
        assert to_db.flow_type == FlowType.DATA
        assert to_db.ports == [5432]

    def test_scanned_links_get_flow_types(self, web_stack):
        flow = _build(web_stack)
        links = {(l.source, l.target): l for l in flow.links}

        assert links[("vol-1", "i-1")].flow_type == FlowType.DATA
        assert links[("sg-app", "i-1")].flow_type == FlowType.MANAGEMENT
        assert links[("web-role", "i-1")].flow_type == FlowType.MANAGEMENT
        # Links touching nodes outside the business view are dropped
        assert ("web-lb", "subnet-a") not in links

    def test_flow_path_from_internet_to_database(self, web_stack):
        flow = _build(web_stack)

        assert len(flow.flow_paths) == 1
        path = flow.flow_paths[0]
        assert path.id == "flow-path-1"
        assert path.node_ids == ["igw-1", "web-lb", "i-1", "orders-db"]
        assert path.name == "igw-1 to orders-db"
        assert path.flow_type == FlowType.DATA
        assert path.criticality == Criticality.CRITICAL

        main = {(l.source, l.target) for l in flow.links if l.is_main_path}
        assert main == {("igw-1", "web-lb"), ("web-lb", "i-1"), ("i-1", "orders-db")}

    def test_internet_gateway_falls_back_to_public_compute(self, make_resource):
        resources = [
            make_resource("vpc-1", ResourceType.VPC),
            make_resource("igw-1", ResourceType.INTERNET_GATEWAY, vpc_id="vpc-1"),
            make_resource("i-pub", ResourceType.EC2_INSTANCE, vpc_id="vpc-1", metadata={"public_ip_address": "3.3.3.3"}),
            make_resource("i-priv", ResourceType.EC2_INSTANCE, vpc_id="vpc-1"),
        ]
        flow = _build(resources)
        inferred = [(l.source, l.target, l.ports) for l in flow.links if l.metadata.get("inferred")]

        assert inferred == [("igw-1", "i-pub", [80])]
        assert [p.node_ids for p in flow.flow_paths] == [["igw-1", "i-pub"]]
        assert flow.flow_paths[0].flow_type == FlowType.TRAFFIC

    def test_database_port_falls_back_to_engine(self, make_resource):
        resources = [
            make_resource("fn", ResourceType.LAMBDA_FUNCTION, vpc_id="vpc-1"),
            make_resource("db", ResourceType.RDS_INSTANCE, vpc_id="vpc-1", metadata={"engine": "MySQL", "endpoint": None}),
        ]
        flow = _build(resources)
        [link] = flow.links

        assert (link.source, link.target) == ("fn", "db")
        assert link.ports == [3306]

    def test_flow_paths_are_capped(self, make_resource):
        resources = [make_resource("igw-1", ResourceType.INTERNET_GATEWAY, vpc_id="vpc-1")] + [
            make_resource(f"i-{n}", ResourceType.EC2_INSTANCE, vpc_id="vpc-1", metadata={"public_ip_address": f"3.3.3.{n}"})
            for n in range(5)
        ]
        flow = _build(resources, max_flow_paths=2)

        assert len(flow.flow_paths) == 2
        assert [p.id for p in flow.flow_paths] == ["flow-path-1", "flow-path-2"]

    def test_no_entry_points_means_no_paths(self, make_resource):
        resources = [
            make_resource("fn", ResourceType.LAMBDA_FUNCTION, vpc_id="vpc-1"),
            make_resource("db", ResourceType.RDS_INSTANCE, vpc_id="vpc-1", metadata={"engine": "postgres"}),
        ]
        flow = _build(resources)

        assert flow.flow_paths == []
        assert not any(l.is_main_path for l in flow.links)

    def test_repeated_id_keeps_first_resource(self, make_resource):
        resources = [
            make_resource("orders", ResourceType.S3_BUCKET),
            make_resource("i-1", ResourceType.EC2_INSTANCE, vpc_id="vpc-1"),
            make_resource("orders", ResourceType.RDS_INSTANCE, vpc_id="vpc-1", metadata={
                "engine": "postgres",
                "publicly_accessible": True,
                "endpoint": {"port": 5432},
            }),
        ]
        flow = _build(resources)
        nodes = {n.id: n for n in flow.nodes}

        assert nodes["orders"].type == ResourceType.S3_BUCKET
        assert nodes["orders"].public_access is False
        assert nodes["orders"].criticality == Criticality.MEDIUM
        assert not [l for l in flow.links if l.target == "orders" and l.flow_type == FlowType.DATA]

    def test_icmp_rules_do_not_contribute_ports(self, make_resource):
        def rule(protocol, port):
            return {"protocol": protocol, "from_port": port, "to_port": port, "cidr_blocks": ["10.0.0.0/8"]}

        def security_group(sg_id, *rules):
            return make_resource(sg_id, ResourceType.SECURITY_GROUP, vpc_id="vpc-1", metadata={
                "detailed_rules": {"inbound": list(rules), "outbound": []},
            })

        resources = [
            security_group("sg-ssh", rule("icmp", 8), rule("tcp", 22)),
            security_group("sg-ping", rule("icmpv6", 128), rule("1", 0)),
            make_resource("lb", ResourceType.ELASTIC_LOAD_BALANCER, vpc_id="vpc-1", metadata={"scheme": "internal"}),
            make_resource("i-ssh", ResourceType.EC2_INSTANCE, vpc_id="vpc-1", metadata={"security_group_ids": ["sg-ssh"]}),
            make_resource("i-ping", ResourceType.EC2_INSTANCE, vpc_id="vpc-1", metadata={"security_group_ids": ["sg-ping"]}),
        ]
        flow = _build(resources)
        links = {(l.source, l.target): l for l in flow.links}

        assert links[("lb", "i-ssh")].ports == [22]
        assert links[("lb", "i-ssh")].protocols == ["TCP"]
        # Nothing but ICMP admitted, so the instance defaults apply
        assert links[("lb", "i-ping")].ports == [80]
        assert links[("lb", "i-ping")].protocols == ["TCP"]
