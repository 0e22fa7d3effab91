"""Sign a request and dispatch it in one call."""

import logging
from typing import Callable

import requests

from .dispatcher import DEFAULT_TIMEOUT, DispatchResult, dispatch
from .models import Credentials, RequestParameters
from .sigv4 import DEFAULT_EXPIRES, HEADER_MODE, sign_request

logger = logging.getLogger(__name__)


def send(
    credentials: Credentials,
    params: RequestParameters,
    mode: str = HEADER_MODE,
    expires: int = DEFAULT_EXPIRES,
    timeout: float = DEFAULT_TIMEOUT,
    session_factory: Callable[[], requests.Session] = requests.Session
) -> DispatchResult:
    """Sign ``params`` with ``credentials`` and send the request once.

    Signing errors propagate; transport outcomes come back in the result.
    """
    signed = sign_request(credentials, params, mode=mode, expires=expires)
    logger.debug(f"Signed {signed.method} request in {signed.mode} mode")
    return dispatch(
        signed.url,
        headers=signed.headers,
        timeout=timeout,
        method=signed.method,
        body=signed.body,
        session_factory=session_factory
    )
