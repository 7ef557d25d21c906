# tests/services/graph/conftest.py

import pytest

from infraviz.services.graph.schemas import AwsResource, ResourceType

REGION = "us-east-1"


def _make_resource(resource_id, resource_type, **kwargs):
    kwargs.setdefault("name", resource_id)
    kwargs.setdefault("region", REGION)
    return AwsResource(id=resource_id, type=resource_type, **kwargs)


def _sg(sg_id, port, cidrs=None, source_sg=None):
    rule = {
        "protocol": "tcp",
        "from_port": port,
        "to_port": port,
        "cidr_blocks": cidrs,
        "source_security_group_id": source_sg,
        "description": "",
        "direction": "inbound",
    }
    return _make_resource(sg_id, ResourceType.SECURITY_GROUP, vpc_id="vpc-1", metadata={
        "inbound_rules": 1,
        "outbound_rules": 0,
        "detailed_rules": {"inbound": [rule], "outbound": []},
    })


@pytest.fixture
def web_stack():
    """Internet gateway, public load balancer, one instance and a Postgres database in one VPC."""
    return [
        _make_resource("vpc-1", ResourceType.VPC),
        _make_resource("subnet-a", ResourceType.SUBNET, vpc_id="vpc-1", availability_zone="us-east-1a"),
        _make_resource("igw-1", ResourceType.INTERNET_GATEWAY, vpc_id="vpc-1"),
        _make_resource("rtb-1", ResourceType.ROUTE_TABLE, vpc_id="vpc-1", metadata={
            "associated_subnet_ids": ["subnet-a"],
            "route_targets": ["igw-1"],
        }),
        _sg("sg-web", 443, cidrs=["0.0.0.0/0"]),
        _sg("sg-app", 8080, source_sg="sg-web"),
        _sg("sg-db", 5432, source_sg="sg-app"),
        _make_resource("web-lb", ResourceType.ELASTIC_LOAD_BALANCER, vpc_id="vpc-1", metadata={
            "scheme": "internet-facing",
            "availability_zones": ["us-east-1a"],
            "security_groups": ["sg-web"],
        }),
        _make_resource("i-1", ResourceType.EC2_INSTANCE, vpc_id="vpc-1", subnet_id="subnet-a", metadata={
            "instance_type": "t3.small",
            "security_group_ids": ["sg-app"],
            "iam_instance_profile": "arn:aws:iam::123456789012:instance-profile/web-role",
        }),
        _make_resource("vol-1", ResourceType.EBS_VOLUME, metadata={
            "attachments": [{"instance_id": "i-1", "device": "/dev/xvda", "state": "attached"}],
        }),
        _make_resource("orders-db", ResourceType.RDS_INSTANCE, vpc_id="vpc-1", tags={"env": "production"}, metadata={
            "engine": "postgres",
            "instance_class": "db.t3.micro",
            "publicly_accessible": False,
            "vpc_security_group_ids": ["sg-db"],
            "endpoint": {"address": "orders-db.example", "port": 5432},
        }),
        _make_resource("web-role", ResourceType.IAM_ROLE, region="global"),
        _make_resource("assets", ResourceType.S3_BUCKET),
    ]


@pytest.fixture
def make_resource():
    return _make_resource
