import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import format_tags, isoformat


def scan_iam_roles(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan IAM Roles. IAM is global, so `region` only picks the endpoint and roles are tagged 'global'."""
    iam_client = aws_provider.get_client("iam")
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning IAM Roles for account {account_id}...")
        paginator = iam_client.get_paginator('list_roles')
        for page in paginator.paginate():
            for role in page.get('Roles', []):
                role_name = role['RoleName']
                resources.append(AwsResource(
                    id=role_name,
                    name=role_name,
                    type=ResourceType.IAM_ROLE,
                    region='global',
                    arn=role.get('Arn'),
                    tags=format_tags(role.get('Tags')),
                    metadata={
                        'path': role.get('Path'),
                        'create_date': isoformat(role.get('CreateDate')),
                        'assume_role_policy_document': role.get('AssumeRolePolicyDocument'),
                        'max_session_duration': role.get('MaxSessionDuration')
                    }
                ))
        logger.debug(f"Found {len(resources)} IAM Roles.")
    except Exception as e:
        logger.error(f"Error scanning IAM Roles for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
