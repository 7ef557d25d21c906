import traceback
from typing import Any, List, Optional

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import isoformat


def _list_cluster_names(eks_client: Any) -> List[str]:
    cluster_names = []
    paginator = eks_client.get_paginator('list_clusters')
    for page in paginator.paginate():
        cluster_names.extend(page.get('clusters', []))
    return cluster_names


def _get_cluster_vpc_id(eks_client: Any, cluster_name: str) -> Optional[str]:
    """Nodegroups and Fargate profiles don't report a VPC; they live in their cluster's."""
    try:
        cluster = eks_client.describe_cluster(name=cluster_name).get('cluster', {})
        return (cluster.get('resourcesVpcConfig') or {}).get('vpcId')
    except Exception as e:
        logger.warning(f"Could not resolve VPC for EKS cluster {cluster_name}: {e}")
        return None


def scan_eks_clusters(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan EKS clusters. A cluster that fails to describe is skipped on its own."""
    eks_client = aws_provider.get_client("eks", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning EKS Clusters in {region} for account {account_id}...")
        for cluster_name in _list_cluster_names(eks_client):
            try:
                cluster = eks_client.describe_cluster(name=cluster_name).get('cluster')
            except Exception as cluster_e:
                logger.warning(f"Could not describe EKS cluster {cluster_name}: {cluster_e}")
                continue
            if not cluster:
                continue

            vpc_config = cluster.get('resourcesVpcConfig') or {}
            resources.append(AwsResource(
                id=cluster['name'],
                name=cluster['name'],
                type=ResourceType.EKS_CLUSTER,
                region=region,
                arn=cluster.get('arn'),
                vpc_id=vpc_config.get('vpcId'),
                tags=cluster.get('tags') or {},
                metadata={
                    'version': cluster.get('version'),
                    'status': cluster.get('status'),
                    'endpoint': cluster.get('endpoint'),
                    'platform_version': cluster.get('platformVersion'),
                    'role_arn': cluster.get('roleArn'),
                    'subnets': vpc_config.get('subnetIds', []),
                    'security_groups': vpc_config.get('securityGroupIds', []),
                    'cluster_security_group_id': vpc_config.get('clusterSecurityGroupId'),
                    'endpoint_access': {
                        'private': vpc_config.get('endpointPrivateAccess'),
                        'public': vpc_config.get('endpointPublicAccess')
                    },
                    'health_issues': len((cluster.get('health') or {}).get('issues', [])),
                    'created_at': isoformat(cluster.get('createdAt'))
                }
            ))
        logger.debug(f"Found {len(resources)} EKS Clusters in {region}.")
    except Exception as e:
        logger.error(f"Error scanning EKS Clusters in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_eks_nodegroups(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan managed nodegroups of every EKS cluster. Ids are '<cluster>/<nodegroup>'."""
    eks_client = aws_provider.get_client("eks", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning EKS Nodegroups in {region} for account {account_id}...")
        for cluster_name in _list_cluster_names(eks_client):
            try:
                nodegroup_names = []
                paginator = eks_client.get_paginator('list_nodegroups')
                for page in paginator.paginate(clusterName=cluster_name):
                    nodegroup_names.extend(page.get('nodegroups', []))
            except Exception as cluster_e:
                logger.warning(f"Could not list nodegroups for cluster {cluster_name}: {cluster_e}")
                continue

            if not nodegroup_names:
                continue
            vpc_id = _get_cluster_vpc_id(eks_client, cluster_name)

            for nodegroup_name in nodegroup_names:
                try:
                    nodegroup = eks_client.describe_nodegroup(
                        clusterName=cluster_name, nodegroupName=nodegroup_name
                    ).get('nodegroup')
                except Exception as ng_e:
                    logger.warning(f"Could not describe nodegroup {nodegroup_name}: {ng_e}")
                    continue
                if not nodegroup:
                    continue

                resources.append(AwsResource(
                    id=f"{cluster_name}/{nodegroup['nodegroupName']}",
                    name=nodegroup['nodegroupName'],
                    type=ResourceType.EKS_NODEGROUP,
                    region=region,
                    arn=nodegroup.get('nodegroupArn'),
                    vpc_id=vpc_id,
                    tags=nodegroup.get('tags') or {},
                    metadata={
                        'cluster_name': cluster_name,
                        'status': nodegroup.get('status'),
                        'instance_types': nodegroup.get('instanceTypes') or [],
                        'ami_type': nodegroup.get('amiType'),
                        'capacity_type': nodegroup.get('capacityType'),
                        'scaling_config': nodegroup.get('scalingConfig'),
                        'disk_size': nodegroup.get('diskSize'),
                        'node_role': nodegroup.get('nodeRole'),
                        'subnets': nodegroup.get('subnets', []),
                        'launch_template': nodegroup.get('launchTemplate'),
                        'version': nodegroup.get('version'),
                        'created_at': isoformat(nodegroup.get('createdAt')),
                        'modified_at': isoformat(nodegroup.get('modifiedAt'))
                    }
                ))
        logger.debug(f"Found {len(resources)} EKS Nodegroups in {region}.")
    except Exception as e:
        logger.error(f"Error scanning EKS Nodegroups in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_eks_fargate_profiles(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Fargate profiles of every EKS cluster. Ids are '<cluster>/<profile>'."""
    eks_client = aws_provider.get_client("eks", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning EKS Fargate Profiles in {region} for account {account_id}...")
        for cluster_name in _list_cluster_names(eks_client):
            try:
                profile_names = []
                paginator = eks_client.get_paginator('list_fargate_profiles')
                for page in paginator.paginate(clusterName=cluster_name):
                    profile_names.extend(page.get('fargateProfileNames', []))
            except Exception as cluster_e:
                logger.warning(f"Could not list Fargate profiles for cluster {cluster_name}: {cluster_e}")
                continue

            if not profile_names:
                continue
            vpc_id = _get_cluster_vpc_id(eks_client, cluster_name)

            for profile_name in profile_names:
                try:
                    profile = eks_client.describe_fargate_profile(
                        clusterName=cluster_name, fargateProfileName=profile_name
                    ).get('fargateProfile')
                except Exception as fp_e:
                    logger.warning(f"Could not describe Fargate profile {profile_name}: {fp_e}")
                    continue
                if not profile:
                    continue

                resources.append(AwsResource(
                    id=f"{cluster_name}/{profile['fargateProfileName']}",
                    name=profile['fargateProfileName'],
                    type=ResourceType.EKS_FARGATE_PROFILE,
                    region=region,
                    arn=profile.get('fargateProfileArn'),
                    vpc_id=vpc_id,
                    tags=profile.get('tags') or {},
                    metadata={
                        'cluster_name': cluster_name,
                        'status': profile.get('status'),
                        'pod_execution_role_arn': profile.get('podExecutionRoleArn'),
                        'subnets': profile.get('subnets', []),
                        'selectors': profile.get('selectors', []),
                        'platform_version': profile.get('platformVersion'),
                        'created_at': isoformat(profile.get('createdAt'))
                    }
                ))
        logger.debug(f"Found {len(resources)} EKS Fargate Profiles in {region}.")
    except Exception as e:
        logger.error(f"Error scanning EKS Fargate Profiles in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
