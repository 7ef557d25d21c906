import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import build_arn, format_tags, get_name_tag, isoformat


def scan_ec2_instances(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan EC2 Instances in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning EC2 Instances in {region} for account {account_id}...")
        paginator = ec2_client.get_paginator('describe_instances')
        for page in paginator.paginate():
            for reservation in page.get('Reservations', []):
                for instance in reservation.get('Instances', []):
                    instance_id = instance['InstanceId']
                    instance_profile = instance.get('IamInstanceProfile') or {}
                    resources.append(AwsResource(
                        id=instance_id,
                        name=get_name_tag(instance.get('Tags')) or instance_id,
                        type=ResourceType.EC2_INSTANCE,
                        region=region,
                        arn=build_arn('ec2', region, account_id, f"instance/{instance_id}"),
                        vpc_id=instance.get('VpcId'),
                        subnet_id=instance.get('SubnetId'),
                        availability_zone=instance.get('Placement', {}).get('AvailabilityZone'),
                        tags=format_tags(instance.get('Tags')),
                        metadata={
                            'instance_type': instance.get('InstanceType'),
                            'state': instance.get('State', {}).get('Name'),
                            'private_ip_address': instance.get('PrivateIpAddress'),
                            'public_ip_address': instance.get('PublicIpAddress'),
                            'key_name': instance.get('KeyName'),
                            'security_group_ids': [sg['GroupId'] for sg in instance.get('SecurityGroups', []) if sg.get('GroupId')],
                            'iam_instance_profile': instance_profile.get('Arn'),
                            'launch_time': isoformat(instance.get('LaunchTime'))
                        }
                    ))
        logger.debug(f"Found {len(resources)} EC2 Instances in {region} for account {account_id}.")
    except Exception as e:
        logger.error(f"Error scanning EC2 in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
