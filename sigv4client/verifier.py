"""
Receiving side of AWS Signature Version 4.

Rebuilds the canonical request from what arrived on the wire and checks the
signature, for both the Authorization header and presigned URL forms.
"""

import hmac
import logging
import urllib.parse
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .errors import CanonicalizationError, SignatureMismatch
from .models import Credentials, to_utc
from .sigv4 import (
    ALGORITHM,
    TERMINATOR,
    compute_signature,
    create_canonical_request,
    create_string_to_sign,
    get_signature_key,
    payload_hash,
)

logger = logging.getLogger(__name__)

MAX_CLOCK_SKEW = timedelta(minutes=15)


def parse_authorization_header(value: str) -> Dict[str, str]:
    """Split an Authorization header into Credential, SignedHeaders and Signature."""
    if not value or not value.startswith(ALGORITHM + ' '):
        raise SignatureMismatch("Not a SigV4 Authorization header")
    parts = {}
    for part in value[len(ALGORITHM) + 1:].split(','):
        name, sep, part_value = part.strip().partition('=')
        if not sep:
            raise SignatureMismatch(f"Malformed Authorization component: {part!r}")
        parts[name] = part_value
    missing = [name for name in ('Credential', 'SignedHeaders', 'Signature') if not parts.get(name)]
    if missing:
        raise SignatureMismatch(f"Authorization header is missing {', '.join(missing)}")
    return parts


def parse_query(query: str) -> List[Tuple[str, str]]:
    """Decode a raw query string, keeping blank values and literal '+'."""
    pairs = []
    for item in query.split('&'):
        if not item:
            continue
        name, _, value = item.partition('=')
        pairs.append((urllib.parse.unquote(name), urllib.parse.unquote(value)))
    return pairs


def _lower_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    return {str(name).lower(): value for name, value in headers.items()}


def _signed_material(url: str, headers: Mapping[str, str]):
    """Work out the signing mode and pull the signed fields out of the request."""
    parsed = urllib.parse.urlsplit(url)
    query = parse_query(parsed.query)
    query_dict = dict(query)
    lower = _lower_headers(headers)

    if 'authorization' in lower:
        auth = parse_authorization_header(lower['authorization'])
        amz_date = lower.get('x-amz-date')
        if not amz_date:
            raise SignatureMismatch("Missing x-amz-date header")
        return {
            'mode': 'header',
            'parsed': parsed,
            'query': query,
            'credential': auth['Credential'],
            'signed_headers': auth['SignedHeaders'],
            'signature': auth['Signature'],
            'amz_date': amz_date,
            'expires': None,
        }

    if query_dict.get('X-Amz-Algorithm') is not None:
        if query_dict['X-Amz-Algorithm'] != ALGORITHM:
            raise SignatureMismatch(f"Unsupported algorithm: {query_dict['X-Amz-Algorithm']}")
        required = ('X-Amz-Credential', 'X-Amz-Date', 'X-Amz-SignedHeaders', 'X-Amz-Signature')
        missing = [name for name in required if not query_dict.get(name)]
        if missing:
            raise SignatureMismatch(f"Presigned URL is missing {', '.join(missing)}")
        return {
            'mode': 'query',
            'parsed': parsed,
            'query': [(name, value) for name, value in query if name != 'X-Amz-Signature'],
            'credential': query_dict['X-Amz-Credential'],
            'signed_headers': query_dict['X-Amz-SignedHeaders'],
            'signature': query_dict['X-Amz-Signature'],
            'amz_date': query_dict['X-Amz-Date'],
            'expires': query_dict.get('X-Amz-Expires', '0'),
        }

    raise SignatureMismatch("Request carries no SigV4 signature")


def _canonical_request(method: str, material: dict, headers: Mapping[str, str], body) -> str:
    lower = _lower_headers(headers)
    lower.setdefault('host', material['parsed'].netloc)
    signed = {}
    for name in material['signed_headers'].split(';'):
        if name not in lower:
            raise SignatureMismatch(f"Signed header {name!r} is not present")
        signed[name] = lower[name]
    return create_canonical_request(
        method,
        material['parsed'].path,
        material['query'],
        signed,
        payload_hash(body)
    )


def reconstruct_canonical_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Optional[Union[str, bytes]] = None
) -> str:
    """Rebuild the canonical request a signed request was derived from."""
    material = _signed_material(url, headers)
    return _canonical_request(method, material, headers, body)


def verify_request(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: Optional[Union[str, bytes]],
    keyring: Mapping[str, Credentials],
    now: Optional[datetime] = None,
    max_skew: timedelta = MAX_CLOCK_SKEW
) -> bool:
    """
    Verify a request signed with AWS Signature Version 4.

    Args:
        method: HTTP method the request arrived with
        url: Full request URL including the raw query string
        headers: Request headers
        body: Request body
        keyring: Credentials by access key id
        now: Current time, defaults to the wall clock
        max_skew: Allowed clock difference, and how far in the future a
            presigned URL may be dated

    Returns:
        bool: True if the signature is valid, False otherwise
    """
    try:
        material = _signed_material(url, headers)

        credential = material['credential'].split('/')
        if len(credential) != 5:
            logger.warning(f"Invalid credential format: {material['credential']}")
            return False
        access_key, date_stamp, region, service, terminator = credential
        if terminator != TERMINATOR:
            logger.warning(f"Invalid credential terminator: {terminator}")
            return False

        credentials = keyring.get(access_key)
        if credentials is None:
            logger.warning(f"Unknown access key: {access_key}")
            return False

        amz_date = material['amz_date']
        if amz_date[:8] != date_stamp:
            logger.warning(f"Date {amz_date} does not match credential scope {date_stamp}")
            return False
        request_time = to_utc(amz_date)
        now = to_utc(now or datetime.now(timezone.utc))

        if material['mode'] == 'header':
            if abs(now - request_time) > max_skew:
                logger.warning(f"Request time {amz_date} is outside the allowed clock skew")
                return False
        else:
            if request_time - now > max_skew:
                logger.warning(f"Presigned URL date {amz_date} is too far in the future")
                return False
            expires = int(material['expires'])
            if now - request_time > timedelta(seconds=expires):
                logger.warning(f"Presigned URL expired at {request_time + timedelta(seconds=expires)}")
                return False

        canonical_request = _canonical_request(method, material, headers, body)
        logger.debug(f"Canonical Request:\n{canonical_request}")

        string_to_sign = create_string_to_sign(amz_date, f'{date_stamp}/{region}/{service}/{terminator}', canonical_request)
        logger.debug(f"String to Sign:\n{string_to_sign}")

        signing_key = get_signature_key(credentials.secret_key, date_stamp, region, service)
        calculated_signature = compute_signature(signing_key, string_to_sign)

        if not hmac.compare_digest(calculated_signature, material['signature']):
            logger.warning(f"Signature mismatch for access key {access_key}")
            return False
        return True

    except (SignatureMismatch, CanonicalizationError, ValueError, TypeError) as e:
        logger.warning(f"Error verifying SigV4 request: {e}")
        return False
