# graph/constants.py

# Centralized rule tables for graph projection

from infraviz.services.graph.schemas import (
    Criticality,
    FlowLayer,
    InfrastructureLayer,
    ResourceType,
)

# Mapping from resource type to diagram layer. Types missing here are FOUNDATION.
RESOURCE_TYPE_TO_LAYER = {
    ResourceType.INTERNET_GATEWAY: InfrastructureLayer.GATEWAY,
    ResourceType.NAT_GATEWAY: InfrastructureLayer.GATEWAY,
    ResourceType.ELASTIC_LOAD_BALANCER: InfrastructureLayer.LOAD_BALANCER,
    ResourceType.ROUTE_TABLE: InfrastructureLayer.LOAD_BALANCER,
    ResourceType.EC2_INSTANCE: InfrastructureLayer.COMPUTE,
    ResourceType.LAMBDA_FUNCTION: InfrastructureLayer.COMPUTE,
    ResourceType.EKS_CLUSTER: InfrastructureLayer.COMPUTE,
    ResourceType.EKS_NODEGROUP: InfrastructureLayer.COMPUTE,
    ResourceType.EKS_FARGATE_PROFILE: InfrastructureLayer.COMPUTE,
    ResourceType.RDS_INSTANCE: InfrastructureLayer.DATA,
    ResourceType.S3_BUCKET: InfrastructureLayer.DATA,
    ResourceType.EBS_VOLUME: InfrastructureLayer.DATA,
    ResourceType.VPC: InfrastructureLayer.FOUNDATION,
    ResourceType.SUBNET: InfrastructureLayer.FOUNDATION,
    ResourceType.SECURITY_GROUP: InfrastructureLayer.FOUNDATION,
    ResourceType.NETWORK_INTERFACE: InfrastructureLayer.FOUNDATION,
    ResourceType.NETWORK_ACL: InfrastructureLayer.FOUNDATION,
    ResourceType.IAM_ROLE: InfrastructureLayer.FOUNDATION,
}

# Resources without a VPC that are grouped as 'global' instead of by region
GLOBAL_GROUP_TYPES = {
    ResourceType.S3_BUCKET,
    ResourceType.IAM_ROLE,
    ResourceType.LAMBDA_FUNCTION,
}

# Business flow view. Types missing here (VPC, subnet, route table, ENI) are not shown.
RESOURCE_TYPE_TO_FLOW_LAYER = {
    ResourceType.INTERNET_GATEWAY: FlowLayer.ENTRY,
    ResourceType.ELASTIC_LOAD_BALANCER: FlowLayer.ENTRY,
    ResourceType.SECURITY_GROUP: FlowLayer.SECURITY,
    ResourceType.NETWORK_ACL: FlowLayer.SECURITY,
    ResourceType.IAM_ROLE: FlowLayer.SECURITY,
    ResourceType.EC2_INSTANCE: FlowLayer.COMPUTE,
    ResourceType.LAMBDA_FUNCTION: FlowLayer.COMPUTE,
    ResourceType.EKS_CLUSTER: FlowLayer.COMPUTE,
    ResourceType.EKS_NODEGROUP: FlowLayer.COMPUTE,
    ResourceType.EKS_FARGATE_PROFILE: FlowLayer.COMPUTE,
    ResourceType.RDS_INSTANCE: FlowLayer.DATA,
    ResourceType.S3_BUCKET: FlowLayer.DATA,
    ResourceType.EBS_VOLUME: FlowLayer.DATA,
    ResourceType.NAT_GATEWAY: FlowLayer.EXTERNAL,
}

BASE_CRITICALITY = {
    ResourceType.RDS_INSTANCE: Criticality.CRITICAL,
    ResourceType.ELASTIC_LOAD_BALANCER: Criticality.HIGH,
    ResourceType.EKS_CLUSTER: Criticality.HIGH,
    ResourceType.INTERNET_GATEWAY: Criticality.HIGH,
    ResourceType.EC2_INSTANCE: Criticality.MEDIUM,
    ResourceType.LAMBDA_FUNCTION: Criticality.MEDIUM,
    ResourceType.EKS_NODEGROUP: Criticality.MEDIUM,
    ResourceType.EKS_FARGATE_PROFILE: Criticality.MEDIUM,
    ResourceType.S3_BUCKET: Criticality.MEDIUM,
    ResourceType.EBS_VOLUME: Criticality.MEDIUM,
}

CRITICALITY_ORDER = [
    Criticality.LOW,
    Criticality.MEDIUM,
    Criticality.HIGH,
    Criticality.CRITICAL,
]

# Tag keys checked, in order, when classifying a resource's environment
ENVIRONMENT_TAG_KEYS = ["Environment", "environment", "env"]

# Well-known ports for traffic links when no security group rule says otherwise
DEFAULT_PORTS = {
    ResourceType.ELASTIC_LOAD_BALANCER: [80, 443],
    ResourceType.EC2_INSTANCE: [80],
    ResourceType.EKS_NODEGROUP: [80],
    ResourceType.LAMBDA_FUNCTION: [443],
}

# Fallback database ports by engine family, used when RDS has no endpoint yet
DB_ENGINE_PORTS = {
    "mysql": 3306,
    "mariadb": 3306,
    "aurora-mysql": 3306,
    "postgres": 5432,
    "aurora-postgresql": 5432,
    "oracle": 1521,
    "sqlserver": 1433,
}
