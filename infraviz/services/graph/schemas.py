from enum import Enum, IntEnum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceType(str, Enum):
    # Compute
    EC2_INSTANCE = "ec2-instance"
    LAMBDA_FUNCTION = "lambda-function"
    EKS_CLUSTER = "eks-cluster"
    EKS_NODEGROUP = "eks-nodegroup"
    EKS_FARGATE_PROFILE = "eks-fargate-profile"

    # Storage
    S3_BUCKET = "s3-bucket"
    EBS_VOLUME = "ebs-volume"

    # Database
    RDS_INSTANCE = "rds-instance"

    # Networking
    VPC = "vpc"
    SUBNET = "subnet"
    ROUTE_TABLE = "route-table"
    INTERNET_GATEWAY = "internet-gateway"
    NAT_GATEWAY = "nat-gateway"
    SECURITY_GROUP = "security-group"
    NETWORK_INTERFACE = "network-interface"
    NETWORK_ACL = "network-acl"
    ELASTIC_LOAD_BALANCER = "elastic-load-balancer"

    # IAM
    IAM_ROLE = "iam-role"


class RelationshipType(str, Enum):
    CONTAINS = "contains"
    ATTACHED_TO = "attached-to"
    ASSOCIATED_WITH = "associated-with"
    ROUTES_TO = "routes-to"
    USES = "uses"
    MEMBER_OF = "member-of"
    MANAGES = "manages" # EKS cluster manages nodegroups / fargate profiles
    RUNS_ON = "runs-on" # EKS nodegroup runs on EC2 instances


class InfrastructureLayer(IntEnum):
    GATEWAY = 1        # Internet Gateway, NAT Gateway
    LOAD_BALANCER = 2  # ELB, Route Tables
    COMPUTE = 3        # EC2, Lambda, EKS
    DATA = 4           # RDS, S3, EBS
    FOUNDATION = 5     # VPC, Subnets, Security Groups, IAM


class ViewMode(str, Enum):
    BUSINESS_FLOW = "business-flow"
    INFRASTRUCTURE = "infrastructure"


class FlowLayer(str, Enum):
    ENTRY = "entry"
    SECURITY = "security"
    COMPUTE = "compute"
    DATA = "data"
    EXTERNAL = "external"


class FlowType(str, Enum):
    TRAFFIC = "traffic"
    DATA = "data"
    MANAGEMENT = "management"


class Criticality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Scanned resources

class AwsResource(BaseModel):
    """A single scanned AWS entity. Frozen: one immutable snapshot per scan."""
    id: str
    name: str
    type: ResourceType
    region: str
    arn: Optional[str] = None
    tags: Dict[str, str] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    vpc_id: Optional[str] = None
    subnet_id: Optional[str] = None
    availability_zone: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class ResourceRelationship(BaseModel):
    source_id: str
    target_id: str
    type: RelationshipType
    metadata: Dict[str, Any] = Field(default_factory=dict)


# Pricing and cost rollup

class PricingData(BaseModel):
    price_per_hour: Optional[float] = None
    price_per_month: Optional[float] = None
    price_per_gb: Optional[float] = None
    currency: str = "USD"
    unit: str


class CostBreakdownItem(BaseModel):
    category: str
    amount: float
    percentage: float


class CostSummary(BaseModel):
    compute: float = 0.0
    containers: float = 0.0
    networking: float = 0.0
    storage: float = 0.0
    database: float = 0.0
    app_services: float = 0.0
    total: float = 0.0
    breakdown: List[CostBreakdownItem] = Field(default_factory=list)
    live_priced_resources: int = 0


# Infrastructure graph

class GraphNode(BaseModel):
    id: str
    name: str
    type: ResourceType
    group: str # VPC ID, 'global', or the region for region-level resources
    layer: int # InfrastructureLayer value (1-5)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphLink(BaseModel):
    source: str
    target: str
    type: RelationshipType
    value: int # strength of relationship
    metadata: Dict[str, Any] = Field(default_factory=dict)


class GraphMetadata(BaseModel):
    scan_timestamp: str
    region: str
    total_resources: int
    resource_counts: Dict[str, int]
    layer_counts: Dict[int, int]


class GraphData(BaseModel):
    nodes: List[GraphNode]
    links: List[GraphLink]
    metadata: GraphMetadata
    view_mode: Literal[ViewMode.INFRASTRUCTURE] = ViewMode.INFRASTRUCTURE
    pricing_data: Optional[Dict[str, PricingData]] = None
    cost_summary: Optional[CostSummary] = None


# Business flow projection

class BusinessFlowNode(GraphNode):
    flow_layer: FlowLayer
    public_access: bool = False
    criticality: Criticality = Criticality.LOW
    environment: str = "unknown"


class BusinessFlowLink(GraphLink):
    flow_type: FlowType
    is_main_path: bool = False
    ports: Optional[List[int]] = None
    protocols: Optional[List[str]] = None


class FlowPath(BaseModel):
    id: str
    name: str
    node_ids: List[str]
    flow_type: FlowType
    criticality: Criticality


class BusinessFlowGraphData(BaseModel):
    nodes: List[BusinessFlowNode]
    links: List[BusinessFlowLink]
    metadata: GraphMetadata
    view_mode: Literal[ViewMode.BUSINESS_FLOW] = ViewMode.BUSINESS_FLOW
    flow_paths: List[FlowPath] = Field(default_factory=list)
    pricing_data: Optional[Dict[str, PricingData]] = None
    cost_summary: Optional[CostSummary] = None
