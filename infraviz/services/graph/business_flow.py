from typing import Dict, List, Optional, Set, Tuple

from loguru import logger

from infraviz.core.config import settings
from infraviz.services.graph.constants import (
    BASE_CRITICALITY,
    CRITICALITY_ORDER,
    DB_ENGINE_PORTS,
    DEFAULT_PORTS,
    ENVIRONMENT_TAG_KEYS,
    RESOURCE_TYPE_TO_FLOW_LAYER,
)
from infraviz.services.graph.schemas import (
    AwsResource,
    BusinessFlowGraphData,
    BusinessFlowLink,
    BusinessFlowNode,
    Criticality,
    FlowLayer,
    FlowPath,
    FlowType,
    GraphData,
    GraphLink,
    RelationshipType,
    ResourceType,
)

OPEN_CIDRS = {"0.0.0.0/0", "::/0"}

# from_port holds the ICMP type for these, not a port
ICMP_PROTOCOLS = {"icmp", "icmpv6", "1", "58"}

FLOW_COMPUTE_TYPES = {
    ResourceType.EC2_INSTANCE,
    ResourceType.LAMBDA_FUNCTION,
    ResourceType.EKS_NODEGROUP,
    ResourceType.EKS_FARGATE_PROFILE,
}

# Security group id fields per resource type, used to resolve a traffic target's inbound rules
SECURITY_GROUP_FIELDS = {
    ResourceType.EC2_INSTANCE: "security_group_ids",
    ResourceType.LAMBDA_FUNCTION: "security_group_ids",
    ResourceType.ELASTIC_LOAD_BALANCER: "security_groups",
    ResourceType.RDS_INSTANCE: "vpc_security_group_ids",
    ResourceType.EKS_CLUSTER: "security_groups",
}


def classify_environment(tags: Optional[Dict[str, str]], name: Optional[str]) -> str:
    """Return one of prod, staging, dev, or unknown.

    Priority:
      1. Explicit tag (``Environment``, ``environment``, or ``env``).
      2. Pattern matching on *name*.
      3. Fallback to ``"unknown"``.
    """
    if tags:
        for key in ENVIRONMENT_TAG_KEYS:
            val = tags.get(key)
            if val:
                lower = val.strip().lower()
                if lower in ("prod", "production"):
                    return "prod"
                if lower in ("stag", "staging"):
                    return "staging"
                if lower in ("dev", "development"):
                    return "dev"

    if name:
        lower_name = name.lower()
        if "production" in lower_name or "prod" in lower_name:
            return "prod"
        if "staging" in lower_name or "stag" in lower_name:
            return "staging"
        if "development" in lower_name or "dev" in lower_name:
            return "dev"

    return "unknown"


def has_public_access(resource: AwsResource) -> bool:
    """Whether the resource is reachable from, or exposed to, the internet."""
    metadata = resource.metadata
    if resource.type == ResourceType.INTERNET_GATEWAY:
        return True
    if resource.type == ResourceType.ELASTIC_LOAD_BALANCER:
        return metadata.get("scheme") == "internet-facing"
    if resource.type == ResourceType.EC2_INSTANCE:
        return bool(metadata.get("public_ip_address"))
    if resource.type == ResourceType.RDS_INSTANCE:
        return bool(metadata.get("publicly_accessible"))
    if resource.type == ResourceType.EKS_CLUSTER:
        return bool((metadata.get("endpoint_access") or {}).get("public"))
    if resource.type == ResourceType.SECURITY_GROUP:
        inbound = (metadata.get("detailed_rules") or {}).get("inbound") or []
        return any(OPEN_CIDRS.intersection(rule.get("cidr_blocks") or []) for rule in inbound)
    return False


def determine_criticality(resource_type: ResourceType, environment: str, public_access: bool) -> Criticality:
    base = BASE_CRITICALITY.get(resource_type, Criticality.LOW)
    is_public_data = public_access and RESOURCE_TYPE_TO_FLOW_LAYER.get(resource_type) == FlowLayer.DATA
    if environment == "prod" or is_public_data:
        index = min(CRITICALITY_ORDER.index(base) + 1, len(CRITICALITY_ORDER) - 1)
        return CRITICALITY_ORDER[index]
    return base


class BusinessFlowBuilder:
    """
    Projects an infrastructure graph onto the business flow view.

    Nodes are placed in entry/security/compute/data/external layers, links get
    a flow type, traffic and data flows that AWS does not model directly are
    inferred, and the entry-to-data paths are enumerated.
    """

    def __init__(self, max_flow_paths: Optional[int] = None):
        self.max_flow_paths = max_flow_paths or settings.MAX_FLOW_PATHS

    def build(self, graph: GraphData, resources: List[AwsResource]) -> BusinessFlowGraphData:
        # First occurrence wins, matching GraphBuilder.build_graph
        resources_by_id: Dict[str, AwsResource] = {}
        for resource in resources:
            resources_by_id.setdefault(resource.id, resource)

        nodes: Dict[str, BusinessFlowNode] = {}
        for node in graph.nodes:
            flow_layer = RESOURCE_TYPE_TO_FLOW_LAYER.get(node.type)
            resource = resources_by_id.get(node.id)
            if flow_layer is None or resource is None:
                continue
            environment = classify_environment(resource.tags, resource.name)
            public_access = has_public_access(resource)
            nodes[node.id] = BusinessFlowNode(
                **node.model_dump(),
                flow_layer=flow_layer,
                public_access=public_access,
                criticality=determine_criticality(node.type, environment, public_access),
                environment=environment,
            )

        links = [
            self._project_link(link, nodes)
            for link in graph.links
            if link.source in nodes and link.target in nodes
        ]
        existing = {(l.source, l.target, l.type) for l in links}
        for inferred in self._infer_flows(nodes, resources_by_id):
            key = (inferred.source, inferred.target, inferred.type)
            if key not in existing:
                existing.add(key)
                links.append(inferred)

        flow_paths, main_path_edges = self._find_flow_paths(nodes, links)
        for link in links:
            if (link.source, link.target) in main_path_edges and link.flow_type != FlowType.MANAGEMENT:
                link.is_main_path = True

        logger.info(f"Business flow built: {len(nodes)} nodes, {len(links)} links, {len(flow_paths)} flow paths.")
        return BusinessFlowGraphData(
            nodes=list(nodes.values()),
            links=links,
            metadata=graph.metadata,
            flow_paths=flow_paths,
        )

    # Links

    def _project_link(self, link: GraphLink, nodes: Dict[str, BusinessFlowNode]) -> BusinessFlowLink:
        if link.type in (RelationshipType.ROUTES_TO, RelationshipType.USES):
            flow_type = FlowType.TRAFFIC
        elif link.type in (RelationshipType.ATTACHED_TO, RelationshipType.RUNS_ON) and (
            nodes[link.source].flow_layer == FlowLayer.DATA or nodes[link.target].flow_layer == FlowLayer.DATA
        ):
            flow_type = FlowType.DATA
        else:
            flow_type = FlowType.MANAGEMENT
        return BusinessFlowLink(**link.model_dump(), flow_type=flow_type)

    def _inferred_link(self, source: str, target: str, rel_type: RelationshipType, flow_type: FlowType,
                       ports: Optional[List[int]], protocols: Optional[List[str]]) -> BusinessFlowLink:
        return BusinessFlowLink(
            source=source,
            target=target,
            type=rel_type,
            value=settings.RELATIONSHIP_STRENGTHS.get(rel_type.value, settings.RELATIONSHIP_STRENGTHS.get("DEFAULT", 1)),
            metadata={"inferred": True},
            flow_type=flow_type,
            ports=ports,
            protocols=protocols,
        )

    def _infer_flows(self, nodes: Dict[str, BusinessFlowNode], resources_by_id: Dict[str, AwsResource]) -> List[BusinessFlowLink]:
        kept = [resources_by_id[node_id] for node_id in nodes]

        def in_vpc(vpc_id: Optional[str], *types: ResourceType) -> List[AwsResource]:
            return [r for r in kept if vpc_id and r.vpc_id == vpc_id and r.type in types]

        def traffic(source: AwsResource, target: AwsResource) -> BusinessFlowLink:
            ports, protocols = self._traffic_ports(target, resources_by_id)
            return self._inferred_link(source.id, target.id, RelationshipType.ROUTES_TO, FlowType.TRAFFIC, ports, protocols)

        inferred: List[BusinessFlowLink] = []

        # Internet -> entry point of each VPC
        for igw in (r for r in kept if r.type == ResourceType.INTERNET_GATEWAY):
            public_lbs = [lb for lb in in_vpc(igw.vpc_id, ResourceType.ELASTIC_LOAD_BALANCER) if nodes[lb.id].public_access]
            if public_lbs:
                targets = public_lbs
            else:
                targets = [r for r in in_vpc(igw.vpc_id, *FLOW_COMPUTE_TYPES) if nodes[r.id].public_access]
            inferred.extend(traffic(igw, target) for target in targets)

        # Load balancer -> workloads behind it
        for lb in (r for r in kept if r.type == ResourceType.ELASTIC_LOAD_BALANCER):
            for target in in_vpc(lb.vpc_id, ResourceType.EC2_INSTANCE, ResourceType.EKS_NODEGROUP):
                inferred.append(traffic(lb, target))

        # Workloads -> databases
        for db in (r for r in kept if r.type == ResourceType.RDS_INSTANCE):
            port = self._database_port(db)
            for compute in in_vpc(db.vpc_id, *FLOW_COMPUTE_TYPES):
                inferred.append(self._inferred_link(
                    compute.id, db.id, RelationshipType.USES, FlowType.DATA,
                    [port] if port else None, ["TCP"],
                ))

        return inferred

    @staticmethod
    def _database_port(db: AwsResource) -> Optional[int]:
        endpoint = db.metadata.get("endpoint") or {}
        if endpoint.get("port"):
            return endpoint["port"]
        return DB_ENGINE_PORTS.get((db.metadata.get("engine") or "").lower())

    @staticmethod
    def _traffic_ports(target: AwsResource, resources_by_id: Dict[str, AwsResource]) -> Tuple[Optional[List[int]], Optional[List[str]]]:
        """Ports and protocols the target's security groups admit, else the type's defaults."""
        ports: List[int] = []
        protocols: List[str] = []
        sg_field = SECURITY_GROUP_FIELDS.get(target.type)
        sg_ids = (target.metadata.get(sg_field) or []) if sg_field else []
        for sg_id in sg_ids:
            sg = resources_by_id.get(sg_id)
            if sg is None:
                continue
            for rule in (sg.metadata.get("detailed_rules") or {}).get("inbound") or []:
                if str(rule.get("protocol") or "").lower() in ICMP_PROTOCOLS:
                    continue
                from_port = rule.get("from_port")
                if from_port is not None and from_port >= 0 and from_port not in ports:
                    ports.append(from_port)
                protocol = (rule.get("protocol") or "").upper()
                if protocol and protocol not in protocols:
                    protocols.append(protocol)

        if not ports:
            ports = list(DEFAULT_PORTS.get(target.type, [])) or None
        if not protocols:
            protocols = ["TCP"]
        return ports, protocols

    # Flow paths

    def _find_flow_paths(self, nodes: Dict[str, BusinessFlowNode], links: List[BusinessFlowLink]) -> Tuple[List[FlowPath], Set[Tuple[str, str]]]:
        adjacency: Dict[str, List[str]] = {}
        has_incoming: Set[str] = set()
        for link in links:
            if link.flow_type == FlowType.MANAGEMENT:
                continue
            successors = adjacency.setdefault(link.source, [])
            if link.target not in successors:
                successors.append(link.target)
            has_incoming.add(link.target)

        entries = [n for n in nodes.values() if n.flow_layer == FlowLayer.ENTRY]
        # Paths starting mid-way through a longer path are suffixes of it
        starts = [n for n in entries if n.id not in has_incoming] or entries

        paths: List[List[str]] = []

        def walk(path: List[str]) -> None:
            if len(paths) >= self.max_flow_paths:
                return
            successors = [s for s in adjacency.get(path[-1], []) if s not in path]
            if not successors:
                if len(path) > 1:
                    paths.append(list(path))
                return
            for successor in successors:
                path.append(successor)
                walk(path)
                path.pop()

        for start in starts:
            walk([start.id])

        if len(paths) >= self.max_flow_paths:
            logger.warning(f"Flow path enumeration stopped at the limit of {self.max_flow_paths} paths.")

        flow_paths = []
        main_path_edges: Set[Tuple[str, str]] = set()
        for index, path in enumerate(paths, start=1):
            path_nodes = [nodes[node_id] for node_id in path]
            main_path_edges.update(zip(path, path[1:]))
            flow_paths.append(FlowPath(
                id=f"flow-path-{index}",
                name=f"{path_nodes[0].name} to {path_nodes[-1].name}",
                node_ids=path,
                flow_type=FlowType.DATA if path_nodes[-1].flow_layer == FlowLayer.DATA else FlowType.TRAFFIC,
                criticality=max((n.criticality for n in path_nodes), key=CRITICALITY_ORDER.index),
            ))
        return flow_paths, main_path_edges
