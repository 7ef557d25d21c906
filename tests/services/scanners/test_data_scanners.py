# tests/services/scanners/test_data_scanners.py

import pytest
from unittest.mock import MagicMock

from infraviz.services.graph.schemas import ResourceType
from infraviz.services.scanners.iam_scanner import scan_iam_roles
from infraviz.services.scanners.rds_scanner import scan_rds_instances
from infraviz.services.scanners.s3_scanner import scan_s3_buckets


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def mock_provider(client):
    provider = MagicMock()
    provider.account_id = "123456789012"
    provider.get_client.return_value = client
    return provider


def test_scan_s3_buckets_keeps_only_requested_region(mock_provider, client):
    client.list_buckets.return_value = {"Buckets": [
        {"Name": "logs-us"},
        {"Name": "assets-eu"},
        {"Name": "broken"},
    ]}
    locations = {
        "logs-us": {"LocationConstraint": None},
        "assets-eu": {"LocationConstraint": "eu-west-1"},
    }

    def get_bucket_location(Bucket):
        if Bucket not in locations:
            raise Exception("AccessDenied")
        return locations[Bucket]

    client.get_bucket_location.side_effect = get_bucket_location

    resources = scan_s3_buckets(mock_provider, "us-east-1")

    assert [r.id for r in resources] == ["logs-us"]
    bucket = resources[0]
    assert bucket.type == ResourceType.S3_BUCKET
    assert bucket.region == "us-east-1"
    assert bucket.arn == "arn:aws:s3:::logs-us"


def test_scan_s3_buckets_in_other_region(mock_provider, client):
    client.list_buckets.return_value = {"Buckets": [{"Name": "assets-eu"}]}
    client.get_bucket_location.return_value = {"LocationConstraint": "eu-west-1"}

    [bucket] = scan_s3_buckets(mock_provider, "eu-west-1")

    assert bucket.region == "eu-west-1"


def test_scan_s3_buckets_list_failure(mock_provider, client):
    client.list_buckets.side_effect = Exception("AccessDenied")
    assert scan_s3_buckets(mock_provider, "us-east-1") == []


def test_scan_rds_instances(mock_provider, client):
    client.get_paginator.return_value.paginate.return_value = [{"DBInstances": [{
        "DBInstanceIdentifier": "orders-db",
        "DBInstanceArn": "arn:aws:rds:us-east-1:123456789012:db:orders-db",
        "DBInstanceClass": "db.t3.micro",
        "Engine": "postgres",
        "PubliclyAccessible": True,
        "DBSubnetGroup": {"VpcId": "vpc-1"},
        "VpcSecurityGroups": [{"VpcSecurityGroupId": "sg-db", "Status": "active"}],
        "Endpoint": {"Address": "orders-db.abc.rds.amazonaws.com", "Port": 5432},
        "TagList": [{"Key": "env", "Value": "production"}],
    }]}]

    [db] = scan_rds_instances(mock_provider, "us-east-1")

    assert db.id == "orders-db"
    assert db.vpc_id == "vpc-1"
    assert db.tags == {"env": "production"}
    assert db.metadata["publicly_accessible"] is True
    assert db.metadata["vpc_security_group_ids"] == ["sg-db"]
    assert db.metadata["endpoint"] == {"address": "orders-db.abc.rds.amazonaws.com", "port": 5432}
    assert db.metadata["instance_class"] == "db.t3.micro"


def test_scan_rds_instance_without_endpoint(mock_provider, client):
    client.get_paginator.return_value.paginate.return_value = [{"DBInstances": [
        {"DBInstanceIdentifier": "creating-db", "DBInstanceStatus": "creating"},
    ]}]

    [db] = scan_rds_instances(mock_provider, "us-east-1")

    assert db.vpc_id is None
    assert db.metadata["endpoint"] is None
    assert db.metadata["publicly_accessible"] is False


def test_scan_iam_roles_are_global(mock_provider, client):
    client.get_paginator.return_value.paginate.return_value = [{"Roles": [
        {"RoleName": "web-role", "Arn": "arn:aws:iam::123456789012:role/web-role", "Path": "/"},
    ]}]

    [role] = scan_iam_roles(mock_provider, "us-east-1")

    mock_provider.get_client.assert_called_once_with("iam")
    assert role.id == "web-role"
    assert role.region == "global"
    assert role.type == ResourceType.IAM_ROLE
    assert role.metadata["path"] == "/"
