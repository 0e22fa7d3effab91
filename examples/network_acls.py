"""
Network ACL example against the local stub endpoint.

Start the stub first:
    python -m sigv4client serve

This example demonstrates how to:
1. Sign a DescribeNetworkAcls call in header mode
2. Sign the same call as a presigned URL
3. Add an entry denying one address
4. See what a bad secret gets back
"""

from sigv4client import Credentials, send
from sigv4client.actions import create_network_acl_entry, describe_network_acls
from sigv4client.sigv4 import QUERY_MODE, sign_request

HOST = 'localhost:10001'
credentials = Credentials('test', 'test')

# Header mode
result = send(credentials, describe_network_acls(host=HOST, scheme='http'))
print(f"DescribeNetworkAcls ({result.outcome.value}): {result.status_code}")
print(result.text)

# Query mode, printing the presigned URL first
params = describe_network_acls(['acl-12345678'], host=HOST, scheme='http')
signed = sign_request(credentials, params, mode=QUERY_MODE, expires=60)
print(f"Presigned URL: {signed.url}")
result = send(credentials, params, mode=QUERY_MODE, expires=60)
print(f"Presigned call: {result.status_code}")

# Deny one address on HTTPS
params = create_network_acl_entry(
    'acl-12345678',
    '44.224.22.196/32',
    rule_number=201,
    port_from=443,
    host=HOST,
    scheme='http'
)
result = send(credentials, params)
print(f"CreateNetworkAclEntry: {result.status_code}")

# Wrong secret
result = send(Credentials('test', 'wrong'), describe_network_acls(host=HOST, scheme='http'))
print(f"Bad secret: {result.status_code}")
print(result.text)
