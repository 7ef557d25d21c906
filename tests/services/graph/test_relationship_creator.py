# tests/services/graph/test_relationship_creator.py

from infraviz.services.graph.relationship_creator import discover_relationships, find_iam_role_associations
from infraviz.services.graph.schemas import RelationshipType, ResourceType
from infraviz.services.graph.utils import group_by_type, name_from_arn


def _triples(relationships):
    return {(r.source_id, r.target_id, r.type) for r in relationships}


def test_discover_relationships_web_stack(web_stack):
    triples = _triples(discover_relationships(web_stack))

    expected = {
        ("vpc-1", "subnet-a", RelationshipType.CONTAINS),
        ("vpc-1", "i-1", RelationshipType.CONTAINS),
        ("vpc-1", "orders-db", RelationshipType.CONTAINS),
        ("subnet-a", "i-1", RelationshipType.CONTAINS),
        ("sg-web", "web-lb", RelationshipType.ASSOCIATED_WITH),
        ("sg-app", "i-1", RelationshipType.ASSOCIATED_WITH),
        ("sg-db", "orders-db", RelationshipType.ASSOCIATED_WITH),
        ("vol-1", "i-1", RelationshipType.ATTACHED_TO),
        ("web-lb", "subnet-a", RelationshipType.USES),
        ("web-role", "i-1", RelationshipType.ASSOCIATED_WITH),
        ("igw-1", "vpc-1", RelationshipType.ATTACHED_TO),
        ("rtb-1", "vpc-1", RelationshipType.MEMBER_OF),
        ("rtb-1", "subnet-a", RelationshipType.ASSOCIATED_WITH),
        ("rtb-1", "igw-1", RelationshipType.ROUTES_TO),
    }
    assert expected <= triples
    # Nothing links to or from resources outside a VPC unless a rule says so
    assert not any("assets" in (s, t) for s, t, _ in triples)


def test_relationships_to_unscanned_resources_are_dropped(make_resource):
    resources = [
        make_resource("i-1", ResourceType.EC2_INSTANCE, vpc_id="vpc-missing", metadata={"security_group_ids": ["sg-missing"]}),
        make_resource("vol-1", ResourceType.EBS_VOLUME, metadata={"attachments": [{"instance_id": "i-gone"}]}),
    ]
    assert discover_relationships(resources) == []


def test_duplicate_relationships_are_reported_once(make_resource):
    resources = [
        make_resource("vpc-1", ResourceType.VPC),
        make_resource("sg-1", ResourceType.SECURITY_GROUP, vpc_id="vpc-1"),
        make_resource("platform", ResourceType.EKS_CLUSTER, vpc_id="vpc-1", metadata={
            "security_groups": ["sg-1"],
            "cluster_security_group_id": "sg-1",
        }),
    ]
    relationships = [r for r in discover_relationships(resources) if r.source_id == "sg-1"]
    assert len(relationships) == 1


def test_eks_relationships(make_resource):
    resources = [
        make_resource("platform", ResourceType.EKS_CLUSTER),
        make_resource("platform/workers", ResourceType.EKS_NODEGROUP, name="workers", metadata={"cluster_name": "platform"}),
        make_resource("platform/default", ResourceType.EKS_FARGATE_PROFILE, name="default", metadata={"cluster_name": "platform"}),
        make_resource("i-node", ResourceType.EC2_INSTANCE, tags={
            "kubernetes.io/cluster/platform": "owned",
            "eks:nodegroup-name": "workers",
        }),
        make_resource("i-other", ResourceType.EC2_INSTANCE, tags={"eks:nodegroup-name": "workers"}),
    ]

    triples = _triples(discover_relationships(resources))

    assert ("platform", "platform/workers", RelationshipType.MANAGES) in triples
    assert ("platform", "platform/default", RelationshipType.MANAGES) in triples
    assert ("platform/workers", "i-node", RelationshipType.RUNS_ON) in triples
    assert ("platform/workers", "i-other", RelationshipType.RUNS_ON) not in triples


def test_iam_role_usage_is_recorded(make_resource):
    resources = [
        make_resource("lambda-role", ResourceType.IAM_ROLE, region="global"),
        make_resource("fn", ResourceType.LAMBDA_FUNCTION, metadata={"role": "arn:aws:iam::123456789012:role/service/lambda-role"}),
    ]
    [rel] = [r for r in find_iam_role_associations(group_by_type(resources)) if r]

    assert rel.source_id == "lambda-role"
    assert rel.target_id == "fn"
    assert rel.metadata["role_usage"] == "execution-role"


def test_network_acl_and_nat_relationships(make_resource):
    resources = [
        make_resource("subnet-a", ResourceType.SUBNET, vpc_id="vpc-1"),
        make_resource("acl-1", ResourceType.NETWORK_ACL, vpc_id="vpc-1", metadata={"associated_subnets": ["subnet-a"]}),
        make_resource("nat-1", ResourceType.NAT_GATEWAY, vpc_id="vpc-1", subnet_id="subnet-a"),
    ]
    triples = _triples(discover_relationships(resources))

    assert ("acl-1", "subnet-a", RelationshipType.ASSOCIATED_WITH) in triples
    assert ("nat-1", "subnet-a", RelationshipType.USES) in triples
    assert ("subnet-a", "nat-1", RelationshipType.CONTAINS) in triples


def test_name_from_arn():
    assert name_from_arn("arn:aws:iam::123456789012:instance-profile/web", "instance-profile") == "web"
    assert name_from_arn("arn:aws:iam::123456789012:role/web", "instance-profile") is None
    assert name_from_arn(None, "role") is None
