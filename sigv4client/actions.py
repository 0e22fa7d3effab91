"""
Request descriptions for the provider's action-based query API.

These build plain RequestParameters; the signer treats them like any other
request.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Union

from .models import RequestParameters

EC2_API_VERSION = '2016-11-15'
DEFAULT_REGION = 'us-east-1'


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def endpoint_host(service: str, region: str) -> str:
    """Public endpoint host for a service in a region."""
    if region == DEFAULT_REGION:
        return f'{service}.amazonaws.com'
    return f'{service}.{region}.amazonaws.com'


def action_request(
    action: str,
    params: Optional[Dict[str, str]] = None,
    region: str = DEFAULT_REGION,
    service: str = 'ec2',
    version: str = EC2_API_VERSION,
    host: Optional[str] = None,
    timestamp: Optional[Union[datetime, str]] = None,
    method: str = 'GET',
    scheme: str = 'https'
) -> RequestParameters:
    """Describe a call to ``action``; the action goes in the query string."""
    query = {'Action': action, 'Version': version}
    query.update(params or {})
    return RequestParameters(
        host=host or endpoint_host(service, region),
        region=region,
        service=service,
        timestamp=timestamp or utc_now(),
        method=method,
        query=query,
        scheme=scheme
    )


def describe_network_acls(
    acl_ids: Iterable[str] = (),
    region: str = DEFAULT_REGION,
    host: Optional[str] = None,
    timestamp: Optional[Union[datetime, str]] = None,
    scheme: str = 'https'
) -> RequestParameters:
    params = {f'NetworkAclId.{index}': acl_id for index, acl_id in enumerate(acl_ids, start=1)}
    return action_request(
        'DescribeNetworkAcls',
        params,
        region=region,
        host=host,
        timestamp=timestamp,
        scheme=scheme
    )


def create_network_acl_entry(
    network_acl_id: str,
    cidr_block: str,
    rule_number: int,
    port_from: int,
    port_to: Optional[int] = None,
    protocol: str = '6',
    rule_action: str = 'deny',
    egress: bool = False,
    region: str = DEFAULT_REGION,
    host: Optional[str] = None,
    timestamp: Optional[Union[datetime, str]] = None,
    scheme: str = 'https'
) -> RequestParameters:
    """Describe a network ACL entry, by default one that denies a CIDR block.

    Sent as GET like every other action of this API.
    """
    if rule_action not in ('allow', 'deny'):
        raise ValueError(f"Invalid rule action: {rule_action}")
    params = {
        'NetworkAclId': network_acl_id,
        'CidrBlock': cidr_block,
        'Egress': 'true' if egress else 'false',
        'PortRange.From': str(port_from),
        'PortRange.To': str(port_from if port_to is None else port_to),
        'Protocol': str(protocol),
        'RuleAction': rule_action,
        'RuleNumber': str(rule_number),
    }
    return action_request(
        'CreateNetworkAclEntry',
        params,
        region=region,
        host=host,
        timestamp=timestamp,
        scheme=scheme
    )
