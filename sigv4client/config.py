"""
Configuration and credential loading.

Credentials are looked up on demand and handed back to the caller; nothing
here keeps them at module level.
"""

import configparser
import logging
import os
from typing import Any, Dict, Mapping, Optional

from .errors import CredentialsNotFound
from .models import Credentials

logger = logging.getLogger(__name__)

DEFAULTS = {
    "region": "us-east-1",
    "service": "ec2",
    "mode": "header",
    "timeout": 10.0,
    "expires": 30,
    "api_version": "2016-11-15",
    "host": None,
}

ENV_PREFIX = "SIGV4_"
CONVERTERS = {
    "timeout": float,
    "expires": int,
}


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Defaults overridden by SIGV4_* environment variables."""
    environ = os.environ if environ is None else environ
    config = dict(DEFAULTS)
    for key in DEFAULTS:
        value = environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value is None or value == "":
            continue
        converter = CONVERTERS.get(key, str)
        try:
            config[key] = converter(value)
        except ValueError:
            raise ValueError(f"Invalid value for {ENV_PREFIX}{key.upper()}: {value!r}")
    if config["mode"] not in ("header", "query"):
        raise ValueError(f"Invalid signing mode: {config['mode']!r}")
    return config


def shared_credentials_path(environ: Mapping[str, str]) -> str:
    path = environ.get("AWS_SHARED_CREDENTIALS_FILE")
    if path:
        return os.path.expanduser(path)
    home = environ.get("HOME") or os.path.expanduser("~")
    return os.path.join(home, ".aws", "credentials")


def load_credentials(
    environ: Optional[Mapping[str, str]] = None,
    profile: Optional[str] = None
) -> Credentials:
    """
    Find credentials for a signing call.

    Environment variables win; otherwise the shared credentials file is read
    for the requested profile.

    Raises:
        CredentialsNotFound: if neither source has a key pair
    """
    environ = os.environ if environ is None else environ

    access_key = environ.get("AWS_ACCESS_KEY_ID")
    secret_key = environ.get("AWS_SECRET_ACCESS_KEY")
    if access_key and secret_key and profile is None:
        logger.debug("Using credentials from environment variables")
        return Credentials(access_key, secret_key, environ.get("AWS_SESSION_TOKEN") or None)

    profile = profile or environ.get("AWS_PROFILE") or "default"
    path = shared_credentials_path(environ)
    parser = configparser.ConfigParser()
    try:
        read = parser.read(path)
    except configparser.Error as e:
        raise CredentialsNotFound(f"Could not parse {path}: {e}")
    if not read:
        raise CredentialsNotFound(f"No credentials in environment and no file at {path}")
    if not parser.has_section(profile):
        raise CredentialsNotFound(f"Profile {profile!r} not found in {path}")

    section = parser[profile]
    access_key = section.get("aws_access_key_id")
    secret_key = section.get("aws_secret_access_key")
    if not access_key or not secret_key:
        raise CredentialsNotFound(f"Profile {profile!r} in {path} has no key pair")
    logger.debug(f"Using credentials from profile {profile!r} in {path}")
    return Credentials(access_key, secret_key, section.get("aws_session_token") or None)
