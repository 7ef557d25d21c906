import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import build_arn, format_tags, get_name_tag


def scan_ebs_volumes(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan EBS Volumes in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning EBS Volumes in {region} for account {account_id}...")
        paginator = ec2_client.get_paginator('describe_volumes')
        for page in paginator.paginate():
            for volume in page.get('Volumes', []):
                volume_id = volume['VolumeId']
                resources.append(AwsResource(
                    id=volume_id,
                    name=get_name_tag(volume.get('Tags')) or volume_id,
                    type=ResourceType.EBS_VOLUME,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"volume/{volume_id}"),
                    availability_zone=volume.get('AvailabilityZone'),
                    tags=format_tags(volume.get('Tags')),
                    metadata={
                        'size': volume.get('Size'),
                        'volume_type': volume.get('VolumeType'),
                        'state': volume.get('State'),
                        'encrypted': volume.get('Encrypted', False),
                        'attachments': [
                            {
                                'instance_id': att.get('InstanceId'),
                                'device': att.get('Device'),
                                'state': att.get('State')
                            }
                            for att in volume.get('Attachments', [])
                        ]
                    }
                ))
        logger.debug(f"Found {len(resources)} EBS Volumes in {region}.")
    except Exception as e:
        logger.error(f"Error scanning EBS Volumes in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
