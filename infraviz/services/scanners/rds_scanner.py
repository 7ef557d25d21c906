import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import format_tags


def scan_rds_instances(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan RDS DB Instances in a specific region. The VPC comes from the DB subnet group."""
    rds_client = aws_provider.get_client("rds", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning RDS Instances in {region} for account {account_id}...")
        paginator = rds_client.get_paginator('describe_db_instances')
        for page in paginator.paginate():
            for db in page.get('DBInstances', []):
                db_id = db['DBInstanceIdentifier']
                endpoint = db.get('Endpoint')
                resources.append(AwsResource(
                    id=db_id,
                    name=db_id,
                    type=ResourceType.RDS_INSTANCE,
                    region=region,
                    arn=db.get('DBInstanceArn'),
                    vpc_id=(db.get('DBSubnetGroup') or {}).get('VpcId'),
                    availability_zone=db.get('AvailabilityZone'),
                    tags=format_tags(db.get('TagList')),
                    metadata={
                        'engine': db.get('Engine'),
                        'engine_version': db.get('EngineVersion'),
                        'instance_class': db.get('DBInstanceClass'),
                        'status': db.get('DBInstanceStatus'),
                        'allocated_storage': db.get('AllocatedStorage'),
                        'multi_az': db.get('MultiAZ', False),
                        'publicly_accessible': db.get('PubliclyAccessible', False),
                        'vpc_security_group_ids': [
                            sg['VpcSecurityGroupId'] for sg in db.get('VpcSecurityGroups', []) if sg.get('VpcSecurityGroupId')
                        ],
                        'endpoint': {
                            'address': endpoint.get('Address'),
                            'port': endpoint.get('Port')
                        } if endpoint else None
                    }
                ))
        logger.debug(f"Found {len(resources)} RDS Instances in {region}.")
    except Exception as e:
        logger.error(f"Error scanning RDS in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
