import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import isoformat


def scan_s3_buckets(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """
    Scan S3 buckets located in `region`.

    ListBuckets is account-wide, so each bucket's location is resolved and
    buckets in other regions are dropped. A bucket whose location cannot be
    read is skipped on its own.
    """
    s3_client = aws_provider.get_client("s3", region=region)
    account_id = aws_provider.account_id
    resources = []

    try:
        logger.debug(f"Scanning S3 Buckets for account {account_id}...")
        bucket_list = s3_client.list_buckets().get("Buckets", [])
        logger.debug(f"Found {len(bucket_list)} S3 Buckets initially.")

        for bucket in bucket_list:
            bucket_name = bucket["Name"]
            try:
                location_response = s3_client.get_bucket_location(Bucket=bucket_name)
                # LocationConstraint is None for us-east-1
                bucket_region = location_response.get('LocationConstraint') or 'us-east-1'
            except Exception as loc_e:
                logger.warning(f"Could not get location for bucket {bucket_name}: {loc_e}. Skipping.")
                continue

            if bucket_region != region:
                continue

            resources.append(AwsResource(
                id=bucket_name,
                name=bucket_name,
                type=ResourceType.S3_BUCKET,
                region=bucket_region,
                arn=f"arn:aws:s3:::{bucket_name}",
                metadata={
                    'creation_date': isoformat(bucket.get('CreationDate'))
                }
            ))
        logger.debug(f"Kept {len(resources)} S3 Buckets located in {region}.")
    except Exception as e:
        logger.error(f"Error scanning S3 for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
