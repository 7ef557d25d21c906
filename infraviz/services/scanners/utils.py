from datetime import datetime
from typing import List, Dict, Any, Optional


def format_tags(tags_list: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Converts the AWS tag list format to a simple key-value dictionary."""
    if not tags_list:
        return {}
    return {tag['Key']: tag['Value'] for tag in tags_list if tag.get('Key') and tag.get('Value')}


def get_name_tag(tags_list: Optional[List[Dict[str, str]]]) -> Optional[str]:
    """Returns the value of the 'Name' tag, or None if the resource has no usable name tag."""
    for tag in tags_list or []:
        if tag.get('Key') == 'Name' and tag.get('Value'):
            return tag['Value']
    return None


def isoformat(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def build_arn(service: str, region: str, account_id: str, resource: str) -> str:
    # S3 and IAM style ARNs are built by their scanners directly
    return f"arn:aws:{service}:{region}:{account_id}:{resource}"


def parse_security_group_rule(permission: Dict[str, Any], direction: str) -> Dict[str, Any]:
    """
    Flattens one IpPermissions entry into a rule dict.

    IPv4 and IPv6 ranges are both reported under `cidr_blocks`. Only the first
    security group pair is kept as the rule's source group.
    """
    ip_protocol = permission.get('IpProtocol', '-1')
    protocol = 'all' if ip_protocol == '-1' else ip_protocol

    cidr_blocks = [r['CidrIp'] for r in permission.get('IpRanges', []) if r.get('CidrIp')]
    cidr_blocks += [r['CidrIpv6'] for r in permission.get('Ipv6Ranges', []) if r.get('CidrIpv6')]

    group_pairs = permission.get('UserIdGroupPairs') or []
    source_sg_id = group_pairs[0].get('GroupId') if group_pairs else None

    descriptions = [r.get('Description') for r in permission.get('IpRanges', []) if r.get('Description')]

    return {
        'protocol': protocol,
        'from_port': permission.get('FromPort'),
        'to_port': permission.get('ToPort'),
        'cidr_blocks': cidr_blocks or None,
        'source_security_group_id': source_sg_id,
        'description': descriptions[0] if descriptions else f"{direction} rule for {protocol}",
        'direction': direction
    }


def parse_network_acl_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Flattens one NetworkAcl entry. A missing CIDR is reported as 0.0.0.0/0."""
    protocol = entry.get('Protocol', '-1')
    port_range = entry.get('PortRange')
    return {
        'rule_number': entry.get('RuleNumber') or 0,
        'protocol': 'all' if protocol == '-1' else protocol,
        'rule_action': 'allow' if entry.get('RuleAction') == 'allow' else 'deny',
        'port_range': {'from': port_range.get('From'), 'to': port_range.get('To')} if port_range else None,
        'cidr_block': entry.get('CidrBlock') or entry.get('Ipv6CidrBlock') or '0.0.0.0/0',
        'direction': 'outbound' if entry.get('Egress') else 'inbound'
    }
