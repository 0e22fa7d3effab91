"""Test signed requests end to end against the local stub endpoint."""

import dataclasses

import pytest
import requests

from sigv4client.actions import action_request, describe_network_acls
from sigv4client.client import send
from sigv4client.dispatcher import Outcome
from sigv4client.models import Credentials, RequestParameters
from sigv4client.sigv4 import HEADER_MODE, QUERY_MODE, generate_presigned_url


def _describe(stub_server):
    return describe_network_acls(['acl-12345678'], host=stub_server["host"], scheme="http")


@pytest.mark.parametrize("mode", [HEADER_MODE, QUERY_MODE])
def test_signed_request_accepted(stub_server, mode):
    result = send(stub_server["credentials"], _describe(stub_server), mode=mode)

    assert result.outcome is Outcome.OK
    assert result.status_code == 200
    assert "<DescribeNetworkAclsResponse" in result.text
    assert "http://ec2.amazonaws.com/doc/2016-11-15/" in result.text


def test_presigned_url_with_plain_requests(stub_server):
    url = generate_presigned_url(stub_server["credentials"], _describe(stub_server), expires_in=60)

    response = requests.get(url)
    assert response.status_code == 200
    assert b"DescribeNetworkAclsResponse" in response.content


def test_post_with_body(stub_server):
    params = action_request(
        "ImportKeyPair",
        {"KeyName": "ops key"},
        host=stub_server["host"],
        scheme="http",
        method="POST"
    )
    params = dataclasses.replace(
        params,
        headers={"Content-Type": "application/octet-stream"},
        body=b"ssh-ed25519 AAAA"
    )
    result = send(stub_server["credentials"], params)

    assert result.ok
    assert "<ImportKeyPairResponse" in result.text


@pytest.mark.parametrize("mode", [HEADER_MODE, QUERY_MODE])
def test_escaped_path_accepted(stub_server, mode):
    params = dataclasses.replace(_describe(stub_server), path="/reports/a%2Fb/Q1 2020")

    result = send(stub_server["credentials"], params, mode=mode)

    assert result.status_code == 200
    assert "<DescribeNetworkAclsResponse" in result.text


@pytest.mark.parametrize("mode", [HEADER_MODE, QUERY_MODE])
def test_wrong_secret_rejected(stub_server, mode):
    impostor = Credentials("test", "not-the-secret")

    result = send(impostor, _describe(stub_server), mode=mode)

    assert result.outcome is Outcome.HTTP_ERROR
    assert result.status_code == 401
    assert "<Code>AuthFailure</Code>" in result.text


def test_unsigned_request_rejected(stub_server):
    response = requests.get(f"{stub_server['endpoint_url']}/?Action=DescribeNetworkAcls")
    assert response.status_code == 401
    assert b"AuthFailure" in response.content


def test_tampered_presigned_url_rejected(stub_server):
    url = generate_presigned_url(stub_server["credentials"], _describe(stub_server))

    response = requests.get(url.replace("acl-12345678", "acl-87654321"))
    assert response.status_code == 401


def test_missing_action(stub_server):
    params = RequestParameters(
        host=stub_server["host"],
        region="us-east-1",
        service="ec2",
        timestamp=_describe(stub_server).timestamp,
        scheme="http"
    )
    result = send(stub_server["credentials"], params)

    assert result.status_code == 400
    assert "<Code>MissingAction</Code>" in result.text


def test_unreachable_endpoint():
    params = describe_network_acls(host="127.0.0.1:1", scheme="http")

    result = send(Credentials("test", "test"), params, timeout=2.0)

    assert result.outcome is Outcome.TRANSPORT_ERROR
    assert result.body == b""
