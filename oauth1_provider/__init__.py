"""Server-side verification of OAuth 1.0 signed requests."""
from oauth1_provider.__version__ import __version__
from oauth1_provider.errors import (
    InvalidParameterError,
    InvalidTimestampError,
    MalformedRequestError,
    MissingParametersError,
    NonceReplayError,
    OAuth1Error,
    SignatureMismatchError,
    SigningError,
    TokenNotSupportedError,
    UnsupportedVersionError,
)
from oauth1_provider.provider import ProviderRequest, constant_time_compare, validate_signature
from oauth1_provider.request import IncomingRequest
from oauth1_provider.signers import HMACSigner, PlaintextSigner, Signer, signer_for_method
from oauth1_provider.storage import (
    ClientStorage,
    InMemoryClientStorage,
    NonceStore,
    OAuth1Client,
    OAuth1NonceTracker,
    RedisNonceStore,
)

__all__ = [
    "__version__",
    "ClientStorage",
    "HMACSigner",
    "IncomingRequest",
    "InMemoryClientStorage",
    "InvalidParameterError",
    "InvalidTimestampError",
    "MalformedRequestError",
    "MissingParametersError",
    "NonceReplayError",
    "NonceStore",
    "OAuth1Client",
    "OAuth1Error",
    "OAuth1NonceTracker",
    "PlaintextSigner",
    "ProviderRequest",
    "RedisNonceStore",
    "SignatureMismatchError",
    "Signer",
    "SigningError",
    "TokenNotSupportedError",
    "UnsupportedVersionError",
    "constant_time_compare",
    "signer_for_method",
    "validate_signature",
]
