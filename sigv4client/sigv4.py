"""
AWS Signature Version 4 signing utilities.
"""

import hashlib
import hmac
import logging
import re
import urllib.parse
from collections.abc import Mapping
from typing import Iterable, List, Optional, Tuple, Union

from .errors import CanonicalizationError
from .models import Credentials, RequestParameters, SignedRequest, SigningKeyChain

logger = logging.getLogger(__name__)

ALGORITHM = 'AWS4-HMAC-SHA256'
KEY_PREFIX = 'AWS4'
TERMINATOR = 'aws4_request'
EMPTY_BODY_SHA256 = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
UNRESERVED = '-_.~'
DEFAULT_EXPIRES = 30

HEADER_MODE = 'header'
QUERY_MODE = 'query'
MODES = (HEADER_MODE, QUERY_MODE)

# Query parameters owned by query mode; X-Amz-Signature is never canonicalized.
QUERY_AUTH_PARAMS = (
    'X-Amz-Algorithm',
    'X-Amz-Credential',
    'X-Amz-Date',
    'X-Amz-Expires',
    'X-Amz-SignedHeaders',
    'X-Amz-Security-Token',
    'X-Amz-Signature',
)
RESERVED_HEADERS = ('authorization', 'x-amz-date', 'x-amz-security-token')

HEADER_NAME_PATTERN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9a-z]+$")

Pairs = Union[Mapping, Iterable[Tuple[str, Optional[str]]]]


def _items(pairs: Pairs) -> List[Tuple[str, Optional[str]]]:
    if isinstance(pairs, Mapping):
        return list(pairs.items())
    return list(pairs)


def sign(key: bytes, msg: str) -> bytes:
    """Create a signature using the HMAC-SHA256 algorithm."""
    return hmac.new(key, msg.encode('utf-8'), hashlib.sha256).digest()


def derive_signing_key_chain(secret_key: str, date_stamp: str, region: str, service: str) -> SigningKeyChain:
    """Run the four keyed hashes that narrow a secret key to one scope.

    Each step is keyed with the raw digest of the previous one.
    """
    if not re.fullmatch(r'\d{8}', date_stamp or ''):
        raise CanonicalizationError(f"Invalid date stamp: {date_stamp!r}")
    k_date = sign(f'{KEY_PREFIX}{secret_key}'.encode('utf-8'), date_stamp)
    k_region = sign(k_date, region)
    k_service = sign(k_region, service)
    k_signing = sign(k_service, TERMINATOR)
    return SigningKeyChain(k_date, k_region, k_service, k_signing)


def get_signature_key(key: str, date_stamp: str, region: str, service: str) -> bytes:
    """Get a signing key for AWS Signature Version 4."""
    return derive_signing_key_chain(key, date_stamp, region, service).signing_key


def sha256_hex(data: Union[str, bytes]) -> str:
    if isinstance(data, str):
        try:
            data = data.encode('utf-8')
        except UnicodeEncodeError as e:
            raise CanonicalizationError(f"Text is not encodable as UTF-8: {e}")
    return hashlib.sha256(data).hexdigest()


def payload_hash(body: Optional[Union[str, bytes]]) -> str:
    """Hex SHA-256 of a request body."""
    if not body:
        return EMPTY_BODY_SHA256
    return sha256_hex(body)


def quote_component(value) -> str:
    """Percent-encode everything but RFC 3986 unreserved characters."""
    if isinstance(value, bytes):
        return urllib.parse.quote(value, safe=UNRESERVED)
    try:
        return urllib.parse.quote(str(value), safe=UNRESERVED)
    except UnicodeEncodeError as e:
        raise CanonicalizationError(f"Cannot percent-encode {value!r}: {e}")


def canonical_uri(path: str) -> str:
    """Encode each path segment once; existing %XX escapes are kept as-is."""
    if not path:
        return '/'
    if not path.startswith('/'):
        path = '/' + path
    segments = []
    for segment in path.split('/'):
        try:
            raw = urllib.parse.unquote_to_bytes(segment)
        except UnicodeEncodeError as e:
            raise CanonicalizationError(f"Cannot encode path segment {segment!r}: {e}")
        segments.append(quote_component(raw))
    return '/'.join(segments)


def canonical_query_string(query_params: Pairs) -> str:
    """Encode names and values, then sort by name and value byte-wise."""
    encoded = []
    for name, value in _items(query_params):
        if name is None or name == '':
            raise CanonicalizationError("Query parameter name must not be empty")
        encoded.append((quote_component(name), quote_component('' if value is None else value)))
    # encoded pairs are plain ASCII so str ordering is byte ordering
    encoded.sort()
    return '&'.join(f'{name}={value}' for name, value in encoded)


def normalize_header_value(value) -> str:
    value = str(value)
    if '\r' in value or '\n' in value:
        raise CanonicalizationError("Header values must not contain line breaks")
    return ' '.join(value.split())


def canonical_headers(headers: Pairs) -> Tuple[str, str]:
    """Return the canonical header block and the signed headers list.

    The block ends with a newline; the canonical request adds the blank
    line that terminates it.
    """
    normalized = {}
    for name, value in _items(headers):
        lname = str(name).strip().lower()
        if not HEADER_NAME_PATTERN.match(lname):
            raise CanonicalizationError(f"Invalid header name: {name!r}")
        if lname in normalized:
            raise CanonicalizationError(f"Duplicate header: {lname}")
        normalized[lname] = normalize_header_value(value)

    names = sorted(normalized)
    block = ''.join(f"{name}:{normalized[name]}\n" for name in names)
    return block, ';'.join(names)


def credential_scope(date_stamp: str, region: str, service: str) -> str:
    return f'{date_stamp}/{region}/{service}/{TERMINATOR}'


def create_canonical_request(
    method: str,
    path: str,
    query_params: Pairs,
    headers: Pairs,
    body_hash: str
) -> str:
    """Create a canonical request string for AWS Signature Version 4."""
    canonical_headers_block, signed_headers = canonical_headers(headers)
    return '\n'.join([
        method.upper(),
        canonical_uri(path),
        canonical_query_string(query_params),
        canonical_headers_block,
        signed_headers,
        body_hash
    ])


def create_string_to_sign(amz_date: str, scope: str, canonical_request: str) -> str:
    """Create a string to sign for AWS Signature Version 4."""
    return '\n'.join([
        ALGORITHM,
        amz_date,
        scope,
        sha256_hex(canonical_request)
    ])


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    return hmac.new(signing_key, string_to_sign.encode('utf-8'), hashlib.sha256).hexdigest()


def authorization_header(access_key_id: str, scope: str, signed_headers: str, signature: str) -> str:
    return f'{ALGORITHM} Credential={access_key_id}/{scope},SignedHeaders={signed_headers},Signature={signature}'


def _redact_token(text: str, credentials: Credentials) -> str:
    token = credentials.session_token
    if not token:
        return text
    return text.replace(quote_component(token), '<redacted>').replace(token, '<redacted>')


def _caller_headers(params: RequestParameters):
    """Caller headers to send, without Host, which is always params.host."""
    headers = {}
    for name, value in params.headers.items():
        lname = str(name).strip().lower()
        if lname in RESERVED_HEADERS:
            raise CanonicalizationError(f"Header {name!r} is set by the signer")
        if lname == 'host':
            if normalize_header_value(value) != params.host:
                raise CanonicalizationError(f"Host header {value!r} does not match host {params.host!r}")
            continue
        headers[name] = normalize_header_value(value)
    return headers


def _header_mode_headers(credentials: Credentials, params: RequestParameters):
    """Headers to send and sign in header mode, in caller casing."""
    headers = {'Host': params.host}
    headers.update(_caller_headers(params))
    headers['X-Amz-Date'] = params.amz_date
    if credentials.session_token:
        headers['X-Amz-Security-Token'] = credentials.session_token
    return headers


def _query_mode_params(credentials: Credentials, params: RequestParameters, scope: str, expires: int):
    for name in params.query:
        if name in QUERY_AUTH_PARAMS:
            raise CanonicalizationError(f"Query parameter {name!r} is set by the signer")
    try:
        seconds = int(expires)
    except (TypeError, ValueError):
        raise CanonicalizationError(f"Expiry must be a whole number of seconds, got {expires!r}")
    if seconds <= 0:
        raise CanonicalizationError(f"Expiry must be positive, got {expires!r}")
    query = dict(params.query)
    query.update({
        'X-Amz-Algorithm': ALGORITHM,
        'X-Amz-Credential': f'{credentials.access_key_id}/{scope}',
        'X-Amz-Date': params.amz_date,
        'X-Amz-Expires': str(seconds),
        'X-Amz-SignedHeaders': 'host',
    })
    if credentials.session_token:
        query['X-Amz-Security-Token'] = credentials.session_token
    return query


def sign_request(
    credentials: Credentials,
    params: RequestParameters,
    mode: str = HEADER_MODE,
    expires: int = DEFAULT_EXPIRES
) -> SignedRequest:
    """
    Sign a request using AWS Signature Version 4.

    Args:
        credentials: Access key pair, passed in for this call only
        params: The request to sign
        mode: 'header' to sign into an Authorization header, 'query' to
            produce a presigned URL
        expires: Validity of a presigned URL in seconds (query mode only)

    Returns:
        SignedRequest: URL and headers to send, with the canonical request,
        string to sign and signature that produced them

    Raises:
        CanonicalizationError: if the parameters cannot be canonicalized
    """
    if mode not in MODES:
        raise ValueError(f"Unknown signing mode: {mode!r}")

    scope = credential_scope(params.date_stamp, params.region, params.service)
    body_hash = payload_hash(params.body)

    if mode == HEADER_MODE:
        query = dict(params.query)
        headers = _header_mode_headers(credentials, params)
        signing_headers = headers
    else:
        query = _query_mode_params(credentials, params, scope, expires)
        headers = _caller_headers(params)
        signing_headers = {'host': params.host}

    canonical_headers_block, signed_headers = canonical_headers(signing_headers)
    canonical_query = canonical_query_string(query)
    uri = canonical_uri(params.path)
    canonical_request = '\n'.join([
        params.method,
        uri,
        canonical_query,
        canonical_headers_block,
        signed_headers,
        body_hash
    ])
    logger.debug(f"Canonical Request:\n{_redact_token(canonical_request, credentials)}")

    string_to_sign = create_string_to_sign(params.amz_date, scope, canonical_request)
    logger.debug(f"String to Sign:\n{string_to_sign}")

    chain = derive_signing_key_chain(credentials.secret_key, params.date_stamp, params.region, params.service)
    signing_key_hex = chain.signing_key.hex()
    signature = compute_signature(chain.signing_key, string_to_sign)
    logger.debug(f"Signing key (hex): {signing_key_hex}")
    logger.debug(f"Signature: {signature}")

    url = f'{params.scheme}://{params.host}{uri}'
    if mode == HEADER_MODE:
        headers['Authorization'] = authorization_header(
            credentials.access_key_id, scope, signed_headers, signature
        )
        if canonical_query:
            url = f'{url}?{canonical_query}'
    else:
        url = f'{url}?{canonical_query}&X-Amz-Signature={signature}'

    return SignedRequest(
        method=params.method,
        url=url,
        headers=headers,
        body=params.body,
        mode=mode,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=signature,
        signing_key_hex=signing_key_hex
    )


def generate_presigned_url(
    credentials: Credentials,
    params: RequestParameters,
    expires_in: int = DEFAULT_EXPIRES
) -> str:
    """Sign in query mode and return only the URL."""
    return sign_request(credentials, params, mode=QUERY_MODE, expires=expires_in).url
