"""Main entry point for running sigv4client as a module.

This allows signing and sending requests using:
    python -m sigv4client call --action DescribeRegions
"""

import sys
import argparse
import logging

from .actions import action_request, create_network_acl_entry, describe_network_acls
from .client import send
from .config import DEFAULTS, load_config, load_credentials
from .errors import CredentialsNotFound, SigV4Error
from .sigv4 import sign_request
from .stub_server import run_server

SEPARATOR = '-' * 30


def _key_value(text):
    key, sep, value = text.partition('=')
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key, value


def build_parser():
    parser = argparse.ArgumentParser(
        prog='sigv4client',
        description='Sign and send AWS Signature Version 4 requests.'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--region', dest='region', action='store', default=None,
                        help=f"Region to sign for, defaults to {DEFAULTS['region']}")
    common.add_argument('--service', dest='service', action='store', default=None,
                        help=f"Service to sign for, defaults to {DEFAULTS['service']}")
    common.add_argument('--host', dest='host', action='store', default=None,
                        help='Endpoint host, defaults to the public endpoint of the service')
    common.add_argument('--scheme', dest='scheme', action='store', default='https',
                        choices=['https', 'http'],
                        help='URL scheme, http is only useful against the local stub')
    common.add_argument('--mode', dest='mode', action='store', default=None,
                        choices=['header', 'query'],
                        help='Put the signature in the Authorization header or in the query string')
    common.add_argument('--expires', dest='expires', action='store', default=None, type=int,
                        help='Presigned URL validity in seconds (query mode)')
    common.add_argument('--timeout', dest='timeout', action='store', default=None, type=float,
                        help='Request timeout in seconds')
    common.add_argument('--profile', dest='profile', action='store', default=None,
                        help='Profile in the shared credentials file')
    common.add_argument('--dry-run', dest='dry_run', action='store_true', default=False,
                        help='Print the signing steps and the URL instead of sending')
    common.add_argument('--verbose', dest='verbose', action='store_true', default=False,
                        help='Log signing diagnostics')

    call = subparsers.add_parser('call', parents=[common], help='Call any action')
    call.add_argument('--action', dest='action', action='store', required=True,
                      help='Action name, e.g. DescribeRegions')
    call.add_argument('--param', dest='params', action='append', default=[], type=_key_value,
                      help='Action parameter as KEY=VALUE, may be repeated')
    call.add_argument('--api-version', dest='api_version', action='store', default=None,
                      help=f"API version, defaults to {DEFAULTS['api_version']}")

    describe = subparsers.add_parser('describe-network-acls', parents=[common],
                                     help='List network ACLs')
    describe.add_argument('--acl-id', dest='acl_ids', action='append', default=[],
                          help='Restrict to this network ACL, may be repeated')

    deny = subparsers.add_parser('deny-ip', parents=[common],
                                 help='Add a network ACL entry denying a CIDR block')
    deny.add_argument('--acl-id', dest='acl_id', action='store', required=True)
    deny.add_argument('--cidr-block', dest='cidr_block', action='store', required=True)
    deny.add_argument('--rule-number', dest='rule_number', action='store', required=True, type=int)
    deny.add_argument('--port', dest='port', action='store', required=True, type=int)
    deny.add_argument('--port-to', dest='port_to', action='store', default=None, type=int)
    deny.add_argument('--protocol', dest='protocol', action='store', default='6')
    deny.add_argument('--egress', dest='egress', action='store_true', default=False)

    serve = subparsers.add_parser('serve', help='Run the local verifying stub endpoint')
    serve.add_argument('--hostname', dest='hostname', action='store',
                       default='localhost',
                       help='Hostname to listen on, defaults to localhost, use 0.0.0.0 to listen on all interfaces')
    serve.add_argument('--port', dest='port', action='store',
                       default=10001, type=int,
                       help='Port to run server on.')
    serve.add_argument('--access-key-id', dest='access_key_id', action='store',
                       default='test',
                       help='Access key ID accepted by the stub (default: test)')
    serve.add_argument('--secret-access-key', dest='secret_access_key', action='store',
                       default='test',
                       help='Secret access key accepted by the stub (default: test)')
    serve.add_argument('--region', dest='region', action='store', default='us-east-1')
    serve.add_argument('--service', dest='service', action='store', default='ec2')
    return parser


def build_request(args, config):
    """Turn parsed arguments into RequestParameters."""
    region = args.region or config['region']
    host = args.host or config['host']
    if args.command == 'call':
        return action_request(
            args.action,
            dict(args.params),
            region=region,
            service=args.service or config['service'],
            version=args.api_version or config['api_version'],
            host=host,
            scheme=args.scheme
        )
    if args.command == 'describe-network-acls':
        return describe_network_acls(args.acl_ids, region=region, host=host, scheme=args.scheme)
    return create_network_acl_entry(
        args.acl_id,
        args.cidr_block,
        args.rule_number,
        args.port,
        port_to=args.port_to,
        protocol=args.protocol,
        egress=args.egress,
        region=region,
        host=host,
        scheme=args.scheme
    )


def main():
    parser = build_parser()
    args = parser.parse_args()

    if args.command == 'serve':
        print('Starting server, use <Ctrl-C> to stop')
        run_server(
            hostname=args.hostname,
            port=args.port,
            access_key_id=args.access_key_id,
            secret_access_key=args.secret_access_key,
            region=args.region,
            service=args.service
        )
        return 0

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config()
        credentials = load_credentials(profile=args.profile)
    except (CredentialsNotFound, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    mode = args.mode or config['mode']
    expires = args.expires if args.expires is not None else config['expires']
    timeout = args.timeout if args.timeout is not None else config['timeout']

    try:
        params = build_request(args, config)
        if args.dry_run:
            signed = sign_request(credentials, params, mode=mode, expires=expires)
            print(f"CanonicalRequest=\n{signed.canonical_request}\n{SEPARATOR}")
            print(f"StringToSign=\n{signed.string_to_sign}\n{SEPARATOR}")
            print(f"Signature={signed.signature}\n{SEPARATOR}")
            print(f"{signed.method} {signed.url}")
            return 0
        result = send(credentials, params, mode=mode, expires=expires, timeout=timeout)
    except (SigV4Error, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if result.body:
        print(result.text)
    return 0 if result.ok else 1


if __name__ == '__main__':
    sys.exit(main())
