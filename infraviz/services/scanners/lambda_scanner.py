import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType


def scan_lambda_functions(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Lambda functions in a specific region. The id is the function ARN."""
    lambda_client = aws_provider.get_client("lambda", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Lambda Functions in {region} for account {account_id}...")
        paginator = lambda_client.get_paginator('list_functions')
        for page in paginator.paginate():
            for func in page.get('Functions', []):
                function_arn = func['FunctionArn']
                vpc_config = func.get('VpcConfig') or {}
                resources.append(AwsResource(
                    id=function_arn,
                    name=func.get('FunctionName') or function_arn,
                    type=ResourceType.LAMBDA_FUNCTION,
                    region=region,
                    arn=function_arn,
                    # Functions outside a VPC report an empty VpcId
                    vpc_id=vpc_config.get('VpcId') or None,
                    metadata={
                        'runtime': func.get('Runtime'),
                        'handler': func.get('Handler'),
                        'code_size': func.get('CodeSize'),
                        'timeout': func.get('Timeout'),
                        'memory_size': func.get('MemorySize'),
                        'last_modified': func.get('LastModified'),
                        'role': func.get('Role'),
                        'subnet_ids': vpc_config.get('SubnetIds', []),
                        'security_group_ids': vpc_config.get('SecurityGroupIds', [])
                    }
                ))
        logger.debug(f"Found {len(resources)} Lambda Functions in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Lambda in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
