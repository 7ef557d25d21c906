import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType


def scan_load_balancers(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Application/Network Load Balancers (ELBv2). The id is the load balancer ARN."""
    elb_client = aws_provider.get_client("elbv2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Load Balancers in {region} for account {account_id}...")
        paginator = elb_client.get_paginator('describe_load_balancers')
        for page in paginator.paginate():
            for lb in page.get('LoadBalancers', []):
                lb_arn = lb['LoadBalancerArn']
                resources.append(AwsResource(
                    id=lb_arn,
                    name=lb.get('LoadBalancerName') or lb_arn,
                    type=ResourceType.ELASTIC_LOAD_BALANCER,
                    region=region,
                    arn=lb_arn,
                    vpc_id=lb.get('VpcId'),
                    metadata={
                        'scheme': lb.get('Scheme'),
                        'state': lb.get('State', {}).get('Code'),
                        'type': lb.get('Type'),
                        'dns_name': lb.get('DNSName'),
                        'availability_zones': [az['ZoneName'] for az in lb.get('AvailabilityZones', []) if az.get('ZoneName')],
                        'security_groups': lb.get('SecurityGroups', [])
                    }
                ))
        logger.debug(f"Found {len(resources)} Load Balancers in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Load Balancers in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
