"""
AWS Signature Version 4 request signing and single-shot dispatch.
"""

from .client import send
from .dispatcher import DispatchResult, Outcome, dispatch
from .errors import CanonicalizationError, CredentialsNotFound, InvalidCredentials, SigV4Error
from .models import Credentials, RequestParameters, SignedRequest, SigningKeyChain
from .sigv4 import HEADER_MODE, QUERY_MODE, sign_request

__version__ = "0.1.0"
__all__ = [
    "send",
    "dispatch",
    "sign_request",
    "DispatchResult",
    "Outcome",
    "Credentials",
    "RequestParameters",
    "SignedRequest",
    "SigningKeyChain",
    "HEADER_MODE",
    "QUERY_MODE",
    "SigV4Error",
    "CanonicalizationError",
    "CredentialsNotFound",
    "InvalidCredentials",
]
