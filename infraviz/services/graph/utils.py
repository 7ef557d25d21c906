from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from infraviz.services.graph.constants import GLOBAL_GROUP_TYPES, RESOURCE_TYPE_TO_LAYER
from infraviz.services.graph.schemas import AwsResource, InfrastructureLayer, ResourceType


def determine_layer(resource_type: ResourceType) -> int:
    """Fixed classification of a resource type into one of the five diagram layers."""
    return int(RESOURCE_TYPE_TO_LAYER.get(resource_type, InfrastructureLayer.FOUNDATION))


def determine_group(resource: AwsResource) -> str:
    """Group by VPC, or 'global' for region-less resources, otherwise by region."""
    if resource.vpc_id:
        return resource.vpc_id
    if resource.type in GLOBAL_GROUP_TYPES:
        return "global"
    return resource.region


def name_from_arn(arn: Optional[str], resource_kind: str) -> Optional[str]:
    """
    Returns the last path segment of an IAM ARN of the given kind.

    >>> name_from_arn("arn:aws:iam::123456789012:role/service/app-role", "role")
    'app-role'
    """
    if not arn:
        return None
    marker = f":{resource_kind}/"
    if marker not in arn:
        return None
    return arn.split(marker, 1)[1].rsplit("/", 1)[-1] or None


def group_by_type(resources: Iterable[AwsResource]) -> Dict[ResourceType, List[AwsResource]]:
    grouped: Dict[ResourceType, List[AwsResource]] = defaultdict(list)
    for resource in resources:
        grouped[resource.type].append(resource)
    return grouped
