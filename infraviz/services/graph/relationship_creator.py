from typing import Any, Dict, List, Optional, Set, Tuple

from loguru import logger

from infraviz.services.graph.schemas import AwsResource, RelationshipType, ResourceRelationship, ResourceType
from infraviz.services.graph.utils import group_by_type, name_from_arn

ByType = Dict[ResourceType, List[AwsResource]]


def _rel(source_id: Optional[str], target_id: Optional[str], rel_type: RelationshipType, **metadata: Any) -> Optional[ResourceRelationship]:
    if not source_id or not target_id:
        return None
    return ResourceRelationship(source_id=source_id, target_id=target_id, type=rel_type, metadata=metadata)


def find_vpc_containments(resources: List[AwsResource], by_type: ByType) -> List[Optional[ResourceRelationship]]:
    vpc_ids = {vpc.id for vpc in by_type[ResourceType.VPC]}
    return [
        _rel(r.vpc_id, r.id, RelationshipType.CONTAINS, vpc_id=r.vpc_id)
        for r in resources
        if r.vpc_id in vpc_ids and r.id != r.vpc_id
    ]


def find_subnet_containments(resources: List[AwsResource], by_type: ByType) -> List[Optional[ResourceRelationship]]:
    subnet_ids = {subnet.id for subnet in by_type[ResourceType.SUBNET]}
    return [
        _rel(r.subnet_id, r.id, RelationshipType.CONTAINS, subnet_id=r.subnet_id)
        for r in resources
        if r.subnet_id in subnet_ids and r.id != r.subnet_id
    ]


def find_security_group_associations(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    """Security group -> every resource that lists it."""
    sg_fields = [
        (ResourceType.EC2_INSTANCE, ['security_group_ids']),
        (ResourceType.RDS_INSTANCE, ['vpc_security_group_ids']),
        (ResourceType.LAMBDA_FUNCTION, ['security_group_ids']),
        (ResourceType.ELASTIC_LOAD_BALANCER, ['security_groups']),
        (ResourceType.EKS_CLUSTER, ['security_groups', 'cluster_security_group_id']),
    ]
    relationships = []
    for resource_type, fields in sg_fields:
        for resource in by_type[resource_type]:
            sg_ids: List[str] = []
            for field in fields:
                value = resource.metadata.get(field)
                if isinstance(value, str):
                    sg_ids.append(value)
                elif value:
                    sg_ids.extend(value)
            for sg_id in sg_ids:
                relationships.append(_rel(sg_id, resource.id, RelationshipType.ASSOCIATED_WITH, association_type='security-group'))
    return relationships


def find_instance_attachments(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    relationships = []
    for volume in by_type[ResourceType.EBS_VOLUME]:
        for attachment in volume.metadata.get('attachments') or []:
            relationships.append(_rel(volume.id, attachment.get('instance_id'), RelationshipType.ATTACHED_TO,
                                      attachment_type='ebs-volume', device=attachment.get('device')))
    for eni in by_type[ResourceType.NETWORK_INTERFACE]:
        attachment = eni.metadata.get('attachment') or {}
        relationships.append(_rel(eni.id, attachment.get('instance_id'), RelationshipType.ATTACHED_TO,
                                  attachment_type='network-interface'))
    return relationships


def find_load_balancer_relationships(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    """A load balancer uses each subnet of its VPC that sits in one of its availability zones."""
    relationships = []
    for lb in by_type[ResourceType.ELASTIC_LOAD_BALANCER]:
        zones = lb.metadata.get('availability_zones') or []
        for subnet in by_type[ResourceType.SUBNET]:
            if lb.vpc_id and lb.vpc_id == subnet.vpc_id and subnet.availability_zone in zones:
                relationships.append(_rel(lb.id, subnet.id, RelationshipType.USES, usage_type='load-balancer-subnet'))
    return relationships


def find_iam_role_associations(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    """
    Role -> resource that runs with it.

    EC2 instances only expose the instance profile, so the role is assumed to
    share the profile's name. Everything else carries the role ARN.
    """
    roles_by_name = {role.name: role for role in by_type[ResourceType.IAM_ROLE]}
    if not roles_by_name:
        return []

    role_refs: List[Tuple[AwsResource, Optional[str], str]] = []
    for instance in by_type[ResourceType.EC2_INSTANCE]:
        role_refs.append((instance, name_from_arn(instance.metadata.get('iam_instance_profile'), 'instance-profile'), 'instance-profile'))
    for func in by_type[ResourceType.LAMBDA_FUNCTION]:
        role_refs.append((func, name_from_arn(func.metadata.get('role'), 'role'), 'execution-role'))
    for cluster in by_type[ResourceType.EKS_CLUSTER]:
        role_refs.append((cluster, name_from_arn(cluster.metadata.get('role_arn'), 'role'), 'cluster-role'))
    for nodegroup in by_type[ResourceType.EKS_NODEGROUP]:
        role_refs.append((nodegroup, name_from_arn(nodegroup.metadata.get('node_role'), 'role'), 'node-role'))
    for profile in by_type[ResourceType.EKS_FARGATE_PROFILE]:
        role_refs.append((profile, name_from_arn(profile.metadata.get('pod_execution_role_arn'), 'role'), 'pod-execution-role'))

    relationships = []
    for resource, role_name, role_usage in role_refs:
        role = roles_by_name.get(role_name) if role_name else None
        if role:
            relationships.append(_rel(role.id, resource.id, RelationshipType.ASSOCIATED_WITH,
                                      association_type='iam-role', role_usage=role_usage))
    return relationships


def find_gateway_relationships(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    relationships = []
    for igw in by_type[ResourceType.INTERNET_GATEWAY]:
        relationships.append(_rel(igw.id, igw.vpc_id, RelationshipType.ATTACHED_TO, attachment_type='internet-gateway'))
    for nat in by_type[ResourceType.NAT_GATEWAY]:
        relationships.append(_rel(nat.id, nat.subnet_id, RelationshipType.USES, usage_type='nat-gateway-subnet'))
    return relationships


def find_route_table_associations(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    relationships = []
    for rt in by_type[ResourceType.ROUTE_TABLE]:
        relationships.append(_rel(rt.id, rt.vpc_id, RelationshipType.MEMBER_OF, membership_type='route-table'))
        for subnet_id in rt.metadata.get('associated_subnet_ids') or []:
            relationships.append(_rel(rt.id, subnet_id, RelationshipType.ASSOCIATED_WITH, association_type='route-table-subnet'))
        for target_id in rt.metadata.get('route_targets') or []:
            relationships.append(_rel(rt.id, target_id, RelationshipType.ROUTES_TO, route_type='gateway'))
    return relationships


def find_eks_relationships(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    relationships = []
    clusters_by_name = {c.name: c for c in by_type[ResourceType.EKS_CLUSTER]}

    for nodegroup in by_type[ResourceType.EKS_NODEGROUP]:
        cluster = clusters_by_name.get(nodegroup.metadata.get('cluster_name'))
        if cluster:
            relationships.append(_rel(cluster.id, nodegroup.id, RelationshipType.MANAGES, relationship_type='cluster-nodegroup'))

    for profile in by_type[ResourceType.EKS_FARGATE_PROFILE]:
        cluster = clusters_by_name.get(profile.metadata.get('cluster_name'))
        if cluster:
            relationships.append(_rel(cluster.id, profile.id, RelationshipType.MANAGES, relationship_type='cluster-fargate'))

    # Worker instances carry the standard EKS ownership tags
    for nodegroup in by_type[ResourceType.EKS_NODEGROUP]:
        cluster_name = nodegroup.metadata.get('cluster_name')
        for instance in by_type[ResourceType.EC2_INSTANCE]:
            tags = instance.tags
            if tags.get(f"kubernetes.io/cluster/{cluster_name}") == 'owned' and tags.get('eks:nodegroup-name') == nodegroup.name:
                relationships.append(_rel(nodegroup.id, instance.id, RelationshipType.RUNS_ON, relationship_type='nodegroup-instance'))
    return relationships


def find_network_acl_associations(by_type: ByType) -> List[Optional[ResourceRelationship]]:
    relationships = []
    for nacl in by_type[ResourceType.NETWORK_ACL]:
        for subnet_id in nacl.metadata.get('associated_subnets') or []:
            relationships.append(_rel(nacl.id, subnet_id, RelationshipType.ASSOCIATED_WITH, association_type='network-acl-subnet'))
    return relationships


def discover_relationships(resources: List[AwsResource]) -> List[ResourceRelationship]:
    """
    Applies every relationship rule to the scanned resources.

    Relationships pointing at a resource that wasn't scanned are dropped, and a
    (source, target, type) triple is only reported once.
    """
    by_type = group_by_type(resources)
    candidates: List[Optional[ResourceRelationship]] = []
    candidates += find_vpc_containments(resources, by_type)
    candidates += find_subnet_containments(resources, by_type)
    candidates += find_security_group_associations(by_type)
    candidates += find_instance_attachments(by_type)
    candidates += find_load_balancer_relationships(by_type)
    candidates += find_iam_role_associations(by_type)
    candidates += find_gateway_relationships(by_type)
    candidates += find_route_table_associations(by_type)
    candidates += find_eks_relationships(by_type)
    candidates += find_network_acl_associations(by_type)

    known_ids = {r.id for r in resources}
    seen: Set[Tuple[str, str, RelationshipType]] = set()
    relationships: List[ResourceRelationship] = []
    dangling = 0
    for rel in candidates:
        if rel is None:
            continue
        if rel.source_id not in known_ids or rel.target_id not in known_ids:
            dangling += 1
            continue
        key = (rel.source_id, rel.target_id, rel.type)
        if key in seen:
            continue
        seen.add(key)
        relationships.append(rel)

    logger.debug(f"Discovered {len(relationships)} relationships ({dangling} dropped with an unscanned endpoint).")
    return relationships
