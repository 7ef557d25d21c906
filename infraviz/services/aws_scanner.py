from typing import Callable, Dict, List, Optional
import concurrent.futures

from loguru import logger

from infraviz.core.config import settings
from infraviz.core.exceptions import ScannerError
from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource

from infraviz.services.scanners.vpc_scanner import (
    scan_vpcs,
    scan_subnets,
    scan_route_tables,
    scan_internet_gateways,
    scan_nat_gateways,
    scan_security_groups,
    scan_network_interfaces,
    scan_network_acls,
)
from infraviz.services.scanners.ec2_scanner import scan_ec2_instances
from infraviz.services.scanners.ebs_scanner import scan_ebs_volumes
from infraviz.services.scanners.elb_scanner import scan_load_balancers
from infraviz.services.scanners.s3_scanner import scan_s3_buckets
from infraviz.services.scanners.rds_scanner import scan_rds_instances
from infraviz.services.scanners.lambda_scanner import scan_lambda_functions
from infraviz.services.scanners.iam_scanner import scan_iam_roles
from infraviz.services.scanners.eks_scanner import (
    scan_eks_clusters,
    scan_eks_nodegroups,
    scan_eks_fargate_profiles,
)

ScannerFunction = Callable[[AwsProvider, str], List[AwsResource]]

# Mapping from service name string to scanner function.
# Insertion order is the order results are returned in.
SCANNER_FUNCTIONS: Dict[str, ScannerFunction] = {
    "vpc": scan_vpcs,
    "subnet": scan_subnets,
    "ec2-instance": scan_ec2_instances,
    "ebs-volume": scan_ebs_volumes,
    "security-group": scan_security_groups,
    "route-table": scan_route_tables,
    "internet-gateway": scan_internet_gateways,
    "nat-gateway": scan_nat_gateways,
    "network-interface": scan_network_interfaces,
    "network-acl": scan_network_acls,
    "elastic-load-balancer": scan_load_balancers,
    "s3-bucket": scan_s3_buckets,
    "rds-instance": scan_rds_instances,
    "lambda-function": scan_lambda_functions,
    "iam-role": scan_iam_roles,
    "eks-cluster": scan_eks_clusters,
    "eks-nodegroup": scan_eks_nodegroups,
    "eks-fargate-profile": scan_eks_fargate_profiles,
}


class AwsScanner:
    """Service for scanning AWS resources of a single region."""

    def __init__(self, max_workers: Optional[int] = None):
        self.max_workers = max_workers or settings.MAX_SCANNER_WORKERS

    def scan_all_resources(
        self,
        aws_provider: AwsProvider,
        region: str,
        services: Optional[List[str]] = None,
    ) -> List[AwsResource]:
        """
        Run every requested scanner in parallel and return the combined resources.

        Args:
            aws_provider: Validated provider used to create boto3 clients
            region: The one region to scan
            services: Optional subset of SCANNER_FUNCTIONS keys; all of them when omitted

        Returns:
            Flat resource list, grouped by scanner in registration order

        Raises:
            ScannerError: If a requested service has no scanner
        """
        services_to_scan = list(SCANNER_FUNCTIONS.keys())
        if services:
            unknown = [s for s in services if s not in SCANNER_FUNCTIONS]
            if unknown:
                raise ScannerError(f"Unknown service(s) requested: {', '.join(unknown)}")
            requested = set(services)
            services_to_scan = [s for s in services_to_scan if s in requested]

        account_id = aws_provider.account_id
        logger.info(f"Starting scan of account {account_id} in {region} for services: {services_to_scan}")

        results: Dict[str, List[AwsResource]] = {}
        futures_map = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for service in services_to_scan:
                future = executor.submit(SCANNER_FUNCTIONS[service], aws_provider, region)
                futures_map[future] = service

            logger.info(f"Submitted {len(futures_map)} scan tasks to executor. Processing results...")

            for future in concurrent.futures.as_completed(futures_map):
                service = futures_map[future]
                try:
                    result = future.result()
                    logger.debug(f"Task completed: {service} in {region}. Found {len(result)} resources.")
                    results[service] = result
                except Exception as exc:
                    logger.error(f"Scan task failed for {service} in {region}: {exc}")

        all_resources: List[AwsResource] = []
        for service in services_to_scan:
            all_resources.extend(results.get(service, []))

        logger.info(f"Scan of {region} finished: {len(all_resources)} resources from {len(results)}/{len(services_to_scan)} scanners.")
        return all_resources
