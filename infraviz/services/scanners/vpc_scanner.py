import traceback
from typing import List

from loguru import logger

from infraviz.providers.aws_provider import AwsProvider
from infraviz.services.graph.schemas import AwsResource, ResourceType
from infraviz.services.scanners.utils import (
    build_arn,
    format_tags,
    get_name_tag,
    parse_network_acl_entry,
    parse_security_group_rule,
)


def scan_vpcs(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan VPCs in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning VPCs in {region} for account {account_id}...")
        paginator = ec2_client.get_paginator('describe_vpcs')
        for page in paginator.paginate():
            for vpc in page.get('Vpcs', []):
                vpc_id = vpc['VpcId']
                resources.append(AwsResource(
                    id=vpc_id,
                    name=get_name_tag(vpc.get('Tags')) or vpc_id,
                    type=ResourceType.VPC,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"vpc/{vpc_id}"),
                    tags=format_tags(vpc.get('Tags')),
                    metadata={
                        'cidr_block': vpc.get('CidrBlock'),
                        'state': vpc.get('State'),
                        'is_default': vpc.get('IsDefault'),
                        'dhcp_options_id': vpc.get('DhcpOptionsId'),
                        'instance_tenancy': vpc.get('InstanceTenancy')
                    }
                ))
        logger.debug(f"Found {len(resources)} VPCs in {region}.")
    except Exception as e:
        logger.error(f"Error scanning VPCs in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_subnets(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Subnets in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Subnets in {region}...")
        paginator = ec2_client.get_paginator('describe_subnets')
        for page in paginator.paginate():
            for subnet in page.get('Subnets', []):
                subnet_id = subnet['SubnetId']
                resources.append(AwsResource(
                    id=subnet_id,
                    name=get_name_tag(subnet.get('Tags')) or subnet_id,
                    type=ResourceType.SUBNET,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"subnet/{subnet_id}"),
                    vpc_id=subnet.get('VpcId'),
                    availability_zone=subnet.get('AvailabilityZone'),
                    tags=format_tags(subnet.get('Tags')),
                    metadata={
                        'cidr_block': subnet.get('CidrBlock'),
                        'available_ip_address_count': subnet.get('AvailableIpAddressCount'),
                        'state': subnet.get('State'),
                        'map_public_ip_on_launch': subnet.get('MapPublicIpOnLaunch')
                    }
                ))
        logger.debug(f"Found {len(resources)} Subnets in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Subnets in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_route_tables(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Route Tables, keeping explicit subnet associations and IGW/NAT route targets."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Route Tables in {region}...")
        paginator = ec2_client.get_paginator('describe_route_tables')
        for page in paginator.paginate():
            for rt in page.get('RouteTables', []):
                rt_id = rt['RouteTableId']
                routes = rt.get('Routes', [])
                associations = rt.get('Associations', [])

                route_targets = []
                for route in routes:
                    # 'local' routes carry GatewayId='local'
                    target_id = route.get('NatGatewayId') or route.get('GatewayId')
                    if target_id and target_id != 'local' and target_id not in route_targets:
                        route_targets.append(target_id)

                resources.append(AwsResource(
                    id=rt_id,
                    name=get_name_tag(rt.get('Tags')) or rt_id,
                    type=ResourceType.ROUTE_TABLE,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"route-table/{rt_id}"),
                    vpc_id=rt.get('VpcId'),
                    tags=format_tags(rt.get('Tags')),
                    metadata={
                        'routes_count': len(routes),
                        'associations_count': len(associations),
                        'main': any(assoc.get('Main') for assoc in associations),
                        'associated_subnet_ids': [a['SubnetId'] for a in associations if a.get('SubnetId')],
                        'route_targets': route_targets
                    }
                ))
        logger.debug(f"Found {len(resources)} Route Tables in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Route Tables in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_internet_gateways(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Internet Gateways. The VPC is taken from the first attachment."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Internet Gateways in {region}...")
        paginator = ec2_client.get_paginator('describe_internet_gateways')
        for page in paginator.paginate():
            for igw in page.get('InternetGateways', []):
                igw_id = igw['InternetGatewayId']
                attachments = igw.get('Attachments') or []
                first_attachment = attachments[0] if attachments else {}
                resources.append(AwsResource(
                    id=igw_id,
                    name=get_name_tag(igw.get('Tags')) or igw_id,
                    type=ResourceType.INTERNET_GATEWAY,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"internet-gateway/{igw_id}"),
                    vpc_id=first_attachment.get('VpcId'),
                    tags=format_tags(igw.get('Tags')),
                    metadata={
                        'state': first_attachment.get('State'),
                        'attachment_count': len(attachments)
                    }
                ))
        logger.debug(f"Found {len(resources)} Internet Gateways in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Internet Gateways in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_nat_gateways(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan NAT Gateways in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning NAT Gateways in {region}...")
        paginator = ec2_client.get_paginator('describe_nat_gateways')
        for page in paginator.paginate():
            for nat in page.get('NatGateways', []):
                nat_id = nat['NatGatewayId']
                resources.append(AwsResource(
                    id=nat_id,
                    name=get_name_tag(nat.get('Tags')) or nat_id,
                    type=ResourceType.NAT_GATEWAY,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"natgateway/{nat_id}"),
                    vpc_id=nat.get('VpcId'),
                    subnet_id=nat.get('SubnetId'),
                    tags=format_tags(nat.get('Tags')),
                    metadata={
                        'state': nat.get('State'),
                        'connectivity_type': nat.get('ConnectivityType'),
                        'nat_gateway_addresses': len(nat.get('NatGatewayAddresses') or [])
                    }
                ))
        logger.debug(f"Found {len(resources)} NAT Gateways in {region}.")
    except Exception as e:
        logger.error(f"Error scanning NAT Gateways in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_security_groups(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Security Groups with rule counts and parsed inbound/outbound rules."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Security Groups in {region}...")
        paginator = ec2_client.get_paginator('describe_security_groups')
        for page in paginator.paginate():
            for sg in page.get('SecurityGroups', []):
                sg_id = sg['GroupId']
                ingress = sg.get('IpPermissions', [])
                egress = sg.get('IpPermissionsEgress', [])
                resources.append(AwsResource(
                    id=sg_id,
                    name=sg.get('GroupName') or sg_id,
                    type=ResourceType.SECURITY_GROUP,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"security-group/{sg_id}"),
                    vpc_id=sg.get('VpcId'),
                    tags=format_tags(sg.get('Tags')),
                    metadata={
                        'description': sg.get('Description'),
                        'inbound_rules': len(ingress),
                        'outbound_rules': len(egress),
                        'detailed_rules': {
                            'inbound': [parse_security_group_rule(p, 'inbound') for p in ingress],
                            'outbound': [parse_security_group_rule(p, 'outbound') for p in egress]
                        }
                    }
                ))
        logger.debug(f"Found {len(resources)} Security Groups in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Security Groups in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_network_interfaces(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Elastic Network Interfaces in a specific region."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Network Interfaces in {region}...")
        paginator = ec2_client.get_paginator('describe_network_interfaces')
        for page in paginator.paginate():
            for eni in page.get('NetworkInterfaces', []):
                eni_id = eni['NetworkInterfaceId']
                attachment = eni.get('Attachment')
                resources.append(AwsResource(
                    id=eni_id,
                    name=get_name_tag(eni.get('TagSet')) or eni_id,
                    type=ResourceType.NETWORK_INTERFACE,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"network-interface/{eni_id}"),
                    vpc_id=eni.get('VpcId'),
                    subnet_id=eni.get('SubnetId'),
                    availability_zone=eni.get('AvailabilityZone'),
                    tags=format_tags(eni.get('TagSet')),
                    metadata={
                        'status': eni.get('Status'),
                        'interface_type': eni.get('InterfaceType'),
                        'private_ip_address': eni.get('PrivateIpAddress'),
                        'security_group_ids': [g['GroupId'] for g in eni.get('Groups', []) if g.get('GroupId')],
                        'attachment': {
                            'instance_id': attachment.get('InstanceId'),
                            'status': attachment.get('Status')
                        } if attachment else None
                    }
                ))
        logger.debug(f"Found {len(resources)} Network Interfaces in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Network Interfaces in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources


def scan_network_acls(aws_provider: AwsProvider, region: str) -> List[AwsResource]:
    """Scan Network ACLs with their subnet associations and parsed entries."""
    ec2_client = aws_provider.get_client("ec2", region=region)
    resources = []
    account_id = aws_provider.account_id

    try:
        logger.debug(f"Scanning Network ACLs in {region}...")
        paginator = ec2_client.get_paginator('describe_network_acls')
        for page in paginator.paginate():
            for nacl in page.get('NetworkAcls', []):
                nacl_id = nacl['NetworkAclId']
                entries = nacl.get('Entries', [])
                resources.append(AwsResource(
                    id=nacl_id,
                    name=get_name_tag(nacl.get('Tags')) or nacl_id,
                    type=ResourceType.NETWORK_ACL,
                    region=region,
                    arn=build_arn('ec2', region, account_id, f"network-acl/{nacl_id}"),
                    vpc_id=nacl.get('VpcId'),
                    tags=format_tags(nacl.get('Tags')),
                    metadata={
                        'is_default': nacl.get('IsDefault', False),
                        'associated_subnets': [a['SubnetId'] for a in nacl.get('Associations', []) if a.get('SubnetId')],
                        'rules_count': len(entries),
                        'detailed_rules': [parse_network_acl_entry(e) for e in entries]
                    }
                ))
        logger.debug(f"Found {len(resources)} Network ACLs in {region}.")
    except Exception as e:
        logger.error(f"Error scanning Network ACLs in {region} for account {account_id}: {str(e)}")
        logger.error(traceback.format_exc())

    return resources
