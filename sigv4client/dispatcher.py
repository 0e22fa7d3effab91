"""
Single-shot HTTP dispatch of signed requests.

Every call opens its own session, sends exactly one request and releases
both the response and the session before returning. Failures are classified
and returned, never raised, and nothing is retried.
"""

import enum
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class Outcome(enum.Enum):
    OK = 'ok'
    HTTP_ERROR = 'http_error'
    TIMEOUT = 'timeout'
    TRANSPORT_ERROR = 'transport_error'


@dataclass
class DispatchResult:
    """What came back from one dispatched request."""
    outcome: Outcome
    url: str
    body: bytes = b''
    status_code: Optional[int] = None
    reason: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


def _loggable(url: str) -> str:
    # presigned URLs carry credentials and signatures in the query
    return urllib.parse.urlunsplit(urllib.parse.urlsplit(url)._replace(query='', fragment=''))


def dispatch(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    method: str = 'GET',
    body: Optional[bytes] = None,
    session_factory: Callable[[], requests.Session] = requests.Session
) -> DispatchResult:
    """
    Send one request and classify the outcome.

    Args:
        url: Final, already signed URL
        headers: Headers to send, if any
        timeout: Seconds to wait for the connection and for the response
        method: HTTP method
        body: Request body
        session_factory: Builds the session that owns the connection

    Returns:
        DispatchResult: the body for any response received (including
        non-2xx ones), or an empty body on timeout and transport failure
    """
    target = _loggable(url)
    logger.info(f"Sending {method} request to {target}")

    session = session_factory()
    try:
        try:
            response = session.request(
                method,
                url,
                headers=headers or None,
                data=body or None,
                timeout=timeout,
                allow_redirects=False
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout after {timeout}s on {target}")
            return DispatchResult(Outcome.TIMEOUT, url, error=str(e))
        except requests.exceptions.RequestException as e:
            logger.error(f"Something went wrong on {target}: {e}")
            return DispatchResult(Outcome.TRANSPORT_ERROR, url, error=str(e))

        try:
            content = response.content
            result = DispatchResult(
                Outcome.OK if 200 <= response.status_code < 300 else Outcome.HTTP_ERROR,
                url,
                body=content or b'',
                status_code=response.status_code,
                reason=response.reason,
                headers=dict(response.headers)
            )
        except requests.exceptions.RequestException as e:
            # body read failures after the status line arrived
            logger.error(f"Failed reading response from {target}: {e}")
            return DispatchResult(
                Outcome.TRANSPORT_ERROR,
                url,
                status_code=response.status_code,
                reason=response.reason,
                headers=dict(response.headers),
                error=str(e)
            )
        finally:
            response.close()

        if result.outcome is Outcome.HTTP_ERROR:
            logger.warning(f"Status {result.status_code} {result.reason or ''} on {target}")
            for name, value in result.headers.items():
                logger.warning(f"{name}={value}")
        return result
    finally:
        session.close()
