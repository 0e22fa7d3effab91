import io
import socket
import threading
import time
from datetime import datetime, timezone

import pytest
import requests
import uvicorn
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from sigv4client.models import Credentials
from sigv4client.stub_server import create_app

# Example credentials from the AWS documentation, so intermediate values can
# be compared against the published ones.
ACCESS_KEY = 'AKIDEXAMPLE'
SECRET_KEY = 'wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY'


@pytest.fixture
def credentials():
    return Credentials(ACCESS_KEY, SECRET_KEY)


@pytest.fixture
def fixed_time():
    return datetime(2015, 8, 30, 12, 36, 0, tzinfo=timezone.utc)


def find_free_port():
    """Find a free port to use for the server"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('', 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


@pytest.fixture(scope="session")
def stub_server():
    """
    Fixture that starts the verifying stub endpoint and stops it after the session
    """
    host = "127.0.0.1"
    port = find_free_port()
    creds = Credentials("test", "test")

    server = uvicorn.Server(uvicorn.Config(create_app(creds), host=host, port=port, log_level="warning"))
    server_thread = threading.Thread(target=server.run, daemon=True)
    server_thread.start()

    # Wait for server to start
    deadline = time.time() + 10
    while not server.started and time.time() < deadline:
        time.sleep(0.05)
    if not server.started:
        pytest.fail("stub server did not start")

    yield {
        "host": f"{host}:{port}",
        "endpoint_url": f"http://{host}:{port}",
        "credentials": creds,
    }

    server.should_exit = True
    server_thread.join(timeout=5)


class _Raw(io.BytesIO):
    """Response body that reports when its connection is released."""

    def __init__(self, data, transport):
        super().__init__(data)
        self.transport = transport

    def release_conn(self):
        self.transport.released += 1


class _Adapter(BaseAdapter):
    def __init__(self, transport):
        super().__init__()
        self.transport = transport

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.transport.sent.append(request)
        self.transport.timeouts.append(timeout)
        return self.transport.respond(self.transport, request)

    def close(self):
        pass


class CountingTransport:
    """Mock transport counting sessions opened and closed and connections released."""

    def __init__(self, respond):
        self.respond = respond
        self.opened = 0
        self.closed = 0
        self.released = 0
        self.sent = []
        self.timeouts = []

    def session_factory(self):
        transport = self

        class CountingSession(requests.Session):
            def close(self):
                transport.closed += 1
                super().close()

        self.opened += 1
        session = CountingSession()
        adapter = _Adapter(self)
        session.mount('https://', adapter)
        session.mount('http://', adapter)
        return session


def make_response(transport, request, status_code, body=b'', headers=None, reason=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.headers = CaseInsensitiveDict(headers or {})
    response.raw = _Raw(body, transport)
    response.url = request.url
    response.request = request
    response.encoding = 'utf-8'
    return response


@pytest.fixture
def make_transport():
    return CountingTransport


@pytest.fixture
def response_factory():
    return make_response
