from typing import Any, Dict

from infraviz.services.graph.schemas import AwsResource


def prepare_node_metadata(resource: AwsResource) -> Dict[str, Any]:
    """Scanner metadata plus the resource's placement fields, flattened for the client."""
    metadata = dict(resource.metadata)
    metadata.update({
        'region': resource.region,
        'arn': resource.arn,
        'tags': dict(resource.tags),
        'vpc_id': resource.vpc_id,
        'subnet_id': resource.subnet_id,
        'availability_zone': resource.availability_zone,
    })
    return metadata
