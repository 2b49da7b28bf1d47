"""
Server-side validation of OAuth 1.0 signed requests (RFC 5849).

Only client credentials are supported: requests carrying oauth_token are
rejected. Validation runs in a fixed order:

1. Parse and check protocol parameters (fails fast).
2. Check the nonce (fails fast; a replay is not secret-dependent).
3. Resolve the client's signer, remembering any error.
4. Verify the signature, even when the client was rejected.
5. Report the client error first, then the signature error.
"""
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from oauth1_provider.base_string import base_string_uri, signature_base
from oauth1_provider.errors import (
    InvalidTimestampError,
    MissingParametersError,
    NonceReplayError,
    OAuth1Error,
    SignatureMismatchError,
    SigningError,
    TokenNotSupportedError,
    UnsupportedVersionError,
)
from oauth1_provider.params import (
    DEFAULT_OAUTH_VERSION,
    MANDATORY_PARAMS,
    OAUTH_CONSUMER_KEY,
    OAUTH_NONCE,
    OAUTH_SIGNATURE,
    OAUTH_SIGNATURE_METHOD,
    OAUTH_TIMESTAMP,
    OAUTH_TOKEN,
    OAUTH_VERSION,
    collect_parameters,
    parse_authorization_header,
)
from oauth1_provider.request import IncomingRequest
from oauth1_provider.signers import Signer, placeholder_signer
from oauth1_provider.storage import ClientStorage

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
_INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+')


def check_mandatory_params(params: Mapping[str, str]) -> None:
    """
    Raise if mandatory parameters are missing or token credentials are used.

    Raises:
        MissingParametersError: Naming every missing parameter
        TokenNotSupportedError: If oauth_token is present
    """
    missing = [param for param in MANDATORY_PARAMS if param not in params]
    if missing:
        raise MissingParametersError(missing)
    if OAUTH_TOKEN in params:
        raise TokenNotSupportedError()


def parse_timestamp(value: str) -> int:
    """Parse oauth_timestamp as a positive base-10 signed 64-bit integer."""
    if not _INTEGER_PATTERN.fullmatch(value):
        raise InvalidTimestampError(f"unable to parse timestamp: {value!r} is not a base-10 integer")
    timestamp = int(value)
    if not INT64_MIN <= timestamp <= INT64_MAX:
        raise InvalidTimestampError(f"unable to parse timestamp: {value!r} is out of range")
    if timestamp <= 0:
        raise InvalidTimestampError(f"invalid timestamp {timestamp}")
    return timestamp


def constant_time_compare(candidate: str, expected: str) -> bool:
    """
    Compare two signatures without stopping at the first differing byte.

    Different lengths are rejected before any byte is inspected.
    """
    candidate_bytes = candidate.encode('utf-8')
    expected_bytes = expected.encode('utf-8')
    if len(candidate_bytes) != len(expected_bytes):
        return False
    return _accumulate_difference(candidate_bytes, expected_bytes) == 0


def _accumulate_difference(left: bytes, right: bytes) -> int:
    # OR of XORs over every byte pair, never returns early
    result = 0
    for x, y in zip(left, right):
        result |= x ^ y
    return result


@dataclass(frozen=True)
class ProviderRequest:
    """Parsed view of a signed request, built once per validation call."""

    request: IncomingRequest
    oauth_params: Mapping[str, str]
    signature_to_verify: str
    signature_method: str
    timestamp: int
    client_key: str
    nonce: str
    base_uri: str

    @classmethod
    def from_request(cls, request: IncomingRequest) -> 'ProviderRequest':
        """
        Parse and check the OAuth parameters of a request.

        Raises:
            MalformedRequestError: Bad Authorization header, encoding or duplicate parameter,
                or a request URL that is not absolute
            InvalidParameterError: Missing parameters, token credentials,
                bad timestamp or unsupported version
        """
        auth_params = parse_authorization_header(request.authorization)
        params: Dict[str, str] = collect_parameters(request, auth_params)
        check_mandatory_params(params)

        signature = params.pop(OAUTH_SIGNATURE)
        timestamp = parse_timestamp(params[OAUTH_TIMESTAMP])
        version = params.get(OAUTH_VERSION)
        if version is not None and version != DEFAULT_OAUTH_VERSION:
            raise UnsupportedVersionError(f"incorrect oauth version {version}")
        base_uri = base_string_uri(request.url)

        return cls(
            request=request,
            oauth_params=MappingProxyType(params),
            signature_to_verify=signature,
            signature_method=params[OAUTH_SIGNATURE_METHOD],
            timestamp=timestamp,
            client_key=params[OAUTH_CONSUMER_KEY],
            nonce=params[OAUTH_NONCE],
            base_uri=base_uri,
        )

    def check_signature(self, signer: Optional[Signer]) -> Optional[SignatureMismatchError]:
        """
        Verify the request signature with the client's signer.

        A missing signer is replaced by a throwaway one so the same signing
        and comparison work is done before the mismatch is reported.

        Returns:
            None if the signature is valid, otherwise a SignatureMismatchError
        """
        placeholder = signer is None
        if placeholder:
            signer = placeholder_signer()

        base = signature_base(self.request, self.oauth_params)
        try:
            signature = signer.sign('', base)
        except SigningError as e:
            logger.debug(f"Signer failed for client {self.client_key!r}: {e}")
            return SignatureMismatchError()

        matched = constant_time_compare(self.signature_to_verify, signature)
        if placeholder or not matched:
            return SignatureMismatchError()
        return None


async def validate_signature(request: IncomingRequest, storage: ClientStorage) -> None:
    """
    Check that a request carries a valid OAuth 1.0 signature.

    Args:
        request: The incoming request
        storage: ClientStorage resolving signers and checking nonces

    Raises:
        MalformedRequestError: Unparseable header or parameters
        InvalidParameterError: Missing or invalid protocol parameters
        NonceReplayError: The nonce store rejected the request
        SignatureMismatchError: Unknown client or invalid signature
    """
    try:
        preq = ProviderRequest.from_request(request)
    except OAuth1Error as e:
        logger.info(f"Rejected OAuth 1.0 request: {e}")
        raise

    nonce_ok, nonce_message = await storage.validate_nonce(
        preq.client_key, preq.nonce, preq.timestamp, request
    )
    if not nonce_ok:
        logger.warning(f"OAuth 1.0 nonce rejected for client {preq.client_key!r}: {nonce_message}")
        raise NonceReplayError(nonce_message)

    signer, invalid_client = await storage.get_signer(preq.client_key, preq.signature_method, request)

    # Signature is checked whether or not the client was accepted
    invalid_signature = preq.check_signature(signer)
    if invalid_client is not None:
        logger.debug(f"OAuth 1.0 client {preq.client_key!r} rejected: {invalid_client}")
        raise SignatureMismatchError()
    if invalid_signature is not None:
        raise invalid_signature
