"""
FastAPI stub of an action-based API endpoint.
Every request must carry a valid SigV4 signature, in either the Authorization
header or a presigned query string.
"""

import logging
import re
import uuid
from typing import Optional
from xml.sax.saxutils import escape

import uvicorn
from fastapi import FastAPI, Request, Response

from . import xml_templates
from .models import Credentials
from .verifier import parse_query, verify_request

logger = logging.getLogger(__name__)

ACTION_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9]*$')


def _error(status_code: int, code: str, message: str, request_id: str) -> Response:
    xml = xml_templates.error_xml.format(
        code=code,
        message=escape(message),
        request_id=request_id
    )
    return Response(content=xml.encode('utf-8'), media_type="text/xml", status_code=status_code)


def _raw_url(request: Request) -> str:
    # scope["path"] is already percent-decoded; the signature covers the raw path
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    url = f"{request.url.scheme}://{request.url.netloc}{path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


def create_app(credentials: Credentials, region: str = "us-east-1", service: str = "ec2") -> FastAPI:
    """Build the stub app; credentials live on ``app.state``."""
    app = FastAPI(
        title="sigv4-stub",
        description="A local endpoint that verifies AWS Signature Version 4 requests"
    )
    app.state.keyring = {credentials.access_key_id: credentials}
    app.state.region = region
    app.state.service = service

    @app.api_route("/{path:path}", methods=["GET", "POST", "HEAD"])
    async def action_handler(request: Request, path: str):
        """Verify the signature and answer the requested action."""
        request_id = str(uuid.uuid4())
        body = await request.body()
        headers = {k.lower(): v for k, v in request.headers.items()}
        logger.debug(f"Headers: {headers}")

        if not verify_request(
            request.method,
            _raw_url(request),
            headers,
            body,
            request.app.state.keyring
        ):
            return _error(
                401,
                "AuthFailure",
                "AWS was not able to validate the provided access credentials",
                request_id
            )

        params = dict(parse_query(request.url.query))
        action = params.get("Action")
        if not action:
            return _error(400, "MissingAction", "The request must contain the parameter Action", request_id)
        if not ACTION_PATTERN.match(action):
            return _error(400, "InvalidAction", f"The action {action} is not valid for this web service", request_id)

        xml = xml_templates.action_response_xml.format(
            action=action,
            service=request.app.state.service,
            version=escape(params.get("Version", "")),
            request_id=request_id
        )
        logger.info(f"{action} accepted, request id {request_id}")
        return Response(content=xml.encode('utf-8'), media_type="text/xml", status_code=200)

    return app


def run_server(
    hostname: str = "localhost",
    port: int = 10001,
    access_key_id: str = "test",
    secret_access_key: str = "test",
    region: str = "us-east-1",
    service: str = "ec2",
    log_level: Optional[str] = None
):
    """Run the stub endpoint with uvicorn."""
    logging.basicConfig(level=logging.INFO)
    app = create_app(Credentials(access_key_id, secret_access_key), region=region, service=service)
    logger.info(f"Starting stub endpoint on {hostname}:{port} for {service} in {region}")
    uvicorn.run(app, host=hostname, port=port, log_level=log_level or "info")
