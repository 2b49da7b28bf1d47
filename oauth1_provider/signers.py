"""
Signers compute OAuth 1.0 signatures over a signature base string.

A signer is bound to one client's secret. The key argument of sign() is the
token secret, which is always empty here because token credentials are not
supported.
"""
import base64
import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from typing import Callable

from oauth1_provider.base_string import percent_encode
from oauth1_provider.errors import SigningError


class Signer(ABC):
    """Base class for OAuth 1.0 signature methods."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The oauth_signature_method value this signer implements."""

    @abstractmethod
    def sign(self, key: str, message: str) -> str:
        """
        Sign a signature base string.

        Args:
            key: Token secret (empty for client-only requests)
            message: The signature base string

        Returns:
            The encoded signature

        Raises:
            SigningError: If the signature cannot be computed
        """


def _signing_key(consumer_secret: str, token_secret: str) -> str:
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"


class HMACSigner(Signer):
    """HMAC-SHA1 / HMAC-SHA256 signatures, base64 encoded."""

    _NAMES = {
        'sha1': 'HMAC-SHA1',
        'sha256': 'HMAC-SHA256',
    }

    def __init__(self, consumer_secret: str, digestmod: Callable = hashlib.sha1):
        if not isinstance(consumer_secret, str):
            raise TypeError("consumer_secret must be a string")
        self.consumer_secret = consumer_secret
        self.digestmod = digestmod
        digest_name = digestmod().name
        if digest_name not in self._NAMES:
            raise SigningError(f"Unsupported HMAC digest: {digest_name}")
        self._name = self._NAMES[digest_name]

    @property
    def name(self) -> str:
        return self._name

    def sign(self, key: str, message: str) -> str:
        signing_key = _signing_key(self.consumer_secret, key)
        digest = hmac.new(
            signing_key.encode('utf-8'),
            message.encode('utf-8'),
            self.digestmod
        ).digest()
        return base64.b64encode(digest).decode('utf-8')


class PlaintextSigner(Signer):
    """PLAINTEXT: the signature is the signing key itself."""

    def __init__(self, consumer_secret: str):
        if not isinstance(consumer_secret, str):
            raise TypeError("consumer_secret must be a string")
        self.consumer_secret = consumer_secret

    @property
    def name(self) -> str:
        return 'PLAINTEXT'

    def sign(self, key: str, message: str) -> str:
        return _signing_key(self.consumer_secret, key)


def signer_for_method(signature_method: str, consumer_secret: str) -> Signer:
    """
    Create the signer for an oauth_signature_method value.

    Raises:
        SigningError: If the method is not supported
    """
    method = signature_method.upper()
    if method == 'HMAC-SHA1':
        return HMACSigner(consumer_secret, hashlib.sha1)
    elif method == 'HMAC-SHA256':
        return HMACSigner(consumer_secret, hashlib.sha256)
    elif method == 'PLAINTEXT':
        return PlaintextSigner(consumer_secret)
    else:
        raise SigningError(f"Unsupported OAuth 1.0 signature method: {signature_method}")


SUPPORTED_SIGNATURE_METHODS = ('HMAC-SHA1', 'HMAC-SHA256', 'PLAINTEXT')


def placeholder_signer() -> Signer:
    """HMAC-SHA1 signer with a random secret no client can know."""
    return HMACSigner(secrets.token_urlsafe(32))
