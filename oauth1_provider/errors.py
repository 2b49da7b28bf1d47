"""
Error types raised while validating OAuth 1.0 signed requests.

Malformed requests, parameter problems and replayed nonces carry their own
messages. Every authentication failure (unknown client, wrong signature,
signer failure) surfaces as SignatureMismatchError so callers cannot tell
them apart.
"""
from typing import List


class OAuth1Error(Exception):
    """Base class for OAuth 1.0 request validation errors."""


class MalformedRequestError(OAuth1Error):
    """Authorization header or parameter encoding could not be parsed."""


class InvalidParameterError(OAuth1Error):
    """A protocol parameter is missing, unsupported or has a bad value."""


class MissingParametersError(InvalidParameterError):
    """One or more mandatory OAuth parameters are absent."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"missing required oauth params {', '.join(self.missing)}")


class TokenNotSupportedError(InvalidParameterError):
    """Request is signed with token credentials, which are not supported."""

    def __init__(self):
        super().__init__("token signature validation not implemented")


class InvalidTimestampError(InvalidParameterError):
    pass


class UnsupportedVersionError(InvalidParameterError):
    pass


class NonceReplayError(OAuth1Error):
    """Nonce store rejected the nonce/timestamp pair."""


class SignatureMismatchError(OAuth1Error):
    """Generic authentication failure."""

    def __init__(self):
        super().__init__("signature mismatch")


class SigningError(OAuth1Error):
    """A signer could not produce a signature."""
