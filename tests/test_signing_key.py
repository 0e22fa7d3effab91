"""Test signing key derivation against published vectors."""

import pytest

from sigv4client.errors import CanonicalizationError
from sigv4client.sigv4 import (
    compute_signature,
    derive_signing_key_chain,
    get_signature_key,
    sign,
)

SECRET_KEY = 'wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY'

# String to sign of the IAM ListUsers example in the AWS documentation
LIST_USERS_STRING_TO_SIGN = (
    'AWS4-HMAC-SHA256\n'
    '20150830T123600Z\n'
    '20150830/us-east-1/iam/aws4_request\n'
    'f536975d06c0309214f805bb90ccff089219ecd68b2577efef23edd43b7e1a59'
)
LIST_USERS_SIGNATURE = '5d672d79c15b13162d9279b0855cfba6789a8edb4c82c400e06b5924a6f2b5d7'
LIST_USERS_SIGNING_KEY = 'c4afb1cc5771d871763a393e44b703571b55cc28424d1a5e86da6ed3c154a4b9'


def test_intermediate_keys_match_documentation():
    """Each step of the 20120215 example reproduces the documented value."""
    chain = derive_signing_key_chain(SECRET_KEY, '20120215', 'us-east-1', 'iam')

    assert chain.date_key.hex() == '969fbb94feb542b71ede6f87fe4d5fa29c789342b0f407474670f0c2489e0a0d'
    assert chain.region_key.hex() == '69daa0209cd9c5ff5c8ced464a696fd4252e981430b10e3d3fd8e2f197d7a70c'
    assert chain.service_key.hex() == 'f72cfd46f26bc4643f06a11eabb6c0ba18780c19a8da0c31ace671265e3c87fa'
    assert chain.signing_key.hex() == 'f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d'


def test_intermediate_keys_are_raw_digests():
    chain = derive_signing_key_chain(SECRET_KEY, '20120215', 'us-east-1', 'iam')
    for key in chain:
        assert isinstance(key, bytes)
        assert len(key) == 32


def test_signing_key_and_signature_for_20150830():
    signing_key = get_signature_key(SECRET_KEY, '20150830', 'us-east-1', 'iam')

    assert signing_key.hex() == LIST_USERS_SIGNING_KEY
    assert compute_signature(signing_key, LIST_USERS_STRING_TO_SIGN) == LIST_USERS_SIGNATURE


def test_hex_encoded_intermediate_gives_wrong_signature():
    """Keying step 2 with the hex text of step 1 must not reproduce the reference."""
    k_date = sign(f'AWS4{SECRET_KEY}'.encode('utf-8'), '20150830')
    k_region = sign(k_date.hex().encode('utf-8'), 'us-east-1')
    k_service = sign(k_region, 'iam')
    k_signing = sign(k_service, 'aws4_request')

    assert k_signing.hex() != LIST_USERS_SIGNING_KEY
    assert compute_signature(k_signing, LIST_USERS_STRING_TO_SIGN) != LIST_USERS_SIGNATURE


def test_ec2_scope_differs_from_iam_scope():
    ec2_key = get_signature_key(SECRET_KEY, '20150830', 'us-east-1', 'ec2')
    assert ec2_key.hex() != LIST_USERS_SIGNING_KEY
    assert ec2_key == derive_signing_key_chain(SECRET_KEY, '20150830', 'us-east-1', 'ec2').signing_key


@pytest.mark.parametrize('date_stamp', ['2015083', '2015-08-30', '20150830T123600Z', ''])
def test_invalid_date_stamp(date_stamp):
    with pytest.raises(CanonicalizationError):
        derive_signing_key_chain(SECRET_KEY, date_stamp, 'us-east-1', 'ec2')
