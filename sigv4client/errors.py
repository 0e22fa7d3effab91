"""Exceptions raised by sigv4client."""


class SigV4Error(Exception):
    """Base exception for signing and verification errors."""
    pass


class CanonicalizationError(SigV4Error, ValueError):
    """Raised when request parameters cannot be put in canonical form."""
    pass


class InvalidCredentials(SigV4Error, ValueError):
    """Raised when credentials are missing a key id or secret."""
    pass


class CredentialsNotFound(SigV4Error):
    """Raised when no credentials could be loaded from the environment."""
    pass


class SignatureMismatch(SigV4Error):
    """Raised when signed material is malformed or does not verify."""
    pass
