"""
Value types passed between the signer, the dispatcher and callers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Mapping, NamedTuple, Optional, Union

from .errors import CanonicalizationError, InvalidCredentials

AMZ_DATE_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_STAMP_FORMAT = '%Y%m%d'


def to_utc(timestamp: Union[datetime, str]) -> datetime:
    """Normalize a timestamp to an aware UTC datetime with second precision.

    Naive datetimes are taken to be UTC already. Strings must use the
    ``YYYYMMDDTHHMMSSZ`` format.
    """
    if isinstance(timestamp, str):
        try:
            timestamp = datetime.strptime(timestamp, AMZ_DATE_FORMAT)
        except ValueError:
            raise CanonicalizationError(f"Invalid timestamp: {timestamp!r}")
    if not isinstance(timestamp, datetime):
        raise CanonicalizationError(f"Timestamp must be a datetime, got {type(timestamp).__name__}")
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).replace(microsecond=0)


@dataclass(frozen=True)
class Credentials:
    """Access key pair used for one or more signing calls.

    The secret key and session token are excluded from ``repr`` so that
    credentials never end up in logs by accident.
    """
    access_key_id: str
    secret_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.access_key_id:
            raise InvalidCredentials("Access key id is required")
        if not self.secret_key:
            raise InvalidCredentials("Secret key is required")


@dataclass(frozen=True)
class RequestParameters:
    """Everything the signer needs to know about one request."""
    host: str
    region: str
    service: str
    timestamp: datetime
    method: str = 'GET'
    path: str = '/'
    query: Mapping[str, Optional[str]] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b''
    scheme: str = 'https'

    def __post_init__(self):
        if not self.host:
            raise CanonicalizationError("Host is required")
        for name in ('region', 'service'):
            value = getattr(self, name)
            if not value or '/' in value:
                raise CanonicalizationError(f"Invalid {name}: {value!r}")
        if not self.method or not self.method.isalpha():
            raise CanonicalizationError(f"Invalid HTTP method: {self.method!r}")
        if self.scheme not in ('http', 'https'):
            raise CanonicalizationError(f"Unsupported scheme: {self.scheme!r}")

        body = self.body if self.body is not None else b''
        if isinstance(body, str):
            try:
                body = body.encode('utf-8')
            except UnicodeEncodeError as e:
                raise CanonicalizationError(f"Body is not encodable as UTF-8: {e}")

        # frozen, so normalized copies go in through object.__setattr__
        object.__setattr__(self, 'method', self.method.upper())
        object.__setattr__(self, 'timestamp', to_utc(self.timestamp))
        object.__setattr__(self, 'query', dict(self.query or {}))
        object.__setattr__(self, 'headers', dict(self.headers or {}))
        object.__setattr__(self, 'body', bytes(body))

    @property
    def amz_date(self) -> str:
        return self.timestamp.strftime(AMZ_DATE_FORMAT)

    @property
    def date_stamp(self) -> str:
        return self.timestamp.strftime(DATE_STAMP_FORMAT)


class SigningKeyChain(NamedTuple):
    """The four raw HMAC-SHA256 outputs of one key derivation."""
    date_key: bytes
    region_key: bytes
    service_key: bytes
    signing_key: bytes


@dataclass(frozen=True)
class SignedRequest:
    """A request ready to hand to the dispatcher, plus its signing trail."""
    method: str
    url: str
    headers: Dict[str, str]
    body: bytes
    mode: str
    canonical_request: str
    string_to_sign: str
    signature: str
    signing_key_hex: str = field(repr=False)

    @property
    def authorization(self) -> Optional[str]:
        return self.headers.get('Authorization')
