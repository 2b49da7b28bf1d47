"""
Client and nonce storage used by OAuth 1.0 request validation.

ClientStorage is the boundary the host application implements (database,
cache, ...). InMemoryClientStorage, OAuth1NonceTracker and RedisNonceStore
are ready-made implementations.
"""
import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

import redis.asyncio as redis

from oauth1_provider.base_string import percent_encode
from oauth1_provider.errors import SigningError
from oauth1_provider.request import IncomingRequest
from oauth1_provider.signers import (
    SUPPORTED_SIGNATURE_METHODS,
    Signer,
    placeholder_signer,
    signer_for_method,
)

logger = logging.getLogger(__name__)


class ClientStorage(ABC):
    """An OAuth 1.0 provider's view of its clients and used nonces."""

    @abstractmethod
    async def get_signer(
        self,
        client_key: str,
        signature_method: str,
        request: IncomingRequest
    ) -> Tuple[Optional[Signer], Optional[str]]:
        """
        Return the signer used to check a client's signature.

        For an unknown client or a disallowed signature method, return a
        usable placeholder signer together with the rejection reason; the
        signature is still computed with it. Raise only on infrastructure
        failures.

        Args:
            client_key: The oauth_consumer_key value
            signature_method: The oauth_signature_method value
            request: The incoming request, for extra checks (e.g. HTTPS)

        Returns:
            Tuple of (signer, rejection reason or None)
        """

    @abstractmethod
    async def validate_nonce(
        self,
        client_key: str,
        nonce: str,
        timestamp: int,
        request: IncomingRequest
    ) -> Tuple[bool, str]:
        """
        Check that a nonce has not been used with the same client and timestamp.

        Returns:
            Tuple of (is_valid, message)
        """


class NonceStore(ABC):
    """Records client/timestamp/nonce triples and reports reuse."""

    @abstractmethod
    async def check_and_store_nonce(
        self,
        client_key: str,
        nonce: str,
        timestamp: int,
        timestamp_window: int
    ) -> Tuple[bool, str]:
        """
        Atomically check and record a nonce.

        Returns:
            Tuple of (is_valid, message)
        """

    def _retention_seconds(self, timestamp_window: int) -> int:
        # A nonce must be remembered at least as long as its timestamp is accepted
        return max(self.max_age_seconds, timestamp_window * 2)


def _validate_nonce_value(nonce: str) -> Tuple[bool, str]:
    if not nonce or not nonce.strip():
        return False, "OAuth 1.0 nonce must not be empty"
    return True, ""


class OAuth1NonceTracker(NonceStore):
    """
    In-memory nonce tracker.

    Suitable for a single process. Entries expire after the retention period
    and are swept at most once per cleanup interval.
    """

    def __init__(self, max_age_seconds: int = 600, cleanup_interval: int = 60):
        self.max_age_seconds = max_age_seconds
        self.cleanup_interval = cleanup_interval
        # (client_key, timestamp, nonce) -> expiry time
        self.nonces: Dict[Tuple[str, int, str], float] = {}
        self.lock = asyncio.Lock()
        self._last_cleanup = time.time()

    async def check_and_store_nonce(
        self,
        client_key: str,
        nonce: str,
        timestamp: int,
        timestamp_window: int
    ) -> Tuple[bool, str]:
        is_valid, message = _validate_nonce_value(nonce)
        if not is_valid:
            return False, message

        key = (client_key, timestamp, nonce)
        async with self.lock:
            now = time.time()
            if now - self._last_cleanup >= self.cleanup_interval:
                self._cleanup(now)

            expiry = self.nonces.get(key)
            if expiry is not None and expiry > now:
                return False, "OAuth 1.0 nonce has already been used (replay attack detected)"

            self.nonces[key] = now + self._retention_seconds(timestamp_window)
            return True, "Valid nonce"

    def _cleanup(self, now: float):
        expired = [key for key, expiry in self.nonces.items() if expiry <= now]
        for key in expired:
            del self.nonces[key]
        self._last_cleanup = now

    async def cleanup_expired(self):
        """Remove expired nonces."""
        async with self.lock:
            self._cleanup(time.time())


class RedisNonceStore(NonceStore):
    """Nonce store shared between processes through Redis (SET NX EX)."""

    KEY_PREFIX = "oauth1:nonce"

    def __init__(self, redis_url: Optional[str] = None, max_age_seconds: int = 600):
        # Use REDIS_HOST env var if not provided, default to localhost
        if not redis_url:
            redis_host = os.getenv('REDIS_HOST', 'localhost')
            redis_port = os.getenv('REDIS_PORT', '6379')
            redis_url = f"redis://{redis_host}:{redis_port}"

        self._redis_url = redis_url
        self._redis = None
        self.max_age_seconds = max_age_seconds

    @property
    def redis(self):
        """Get Redis connection, creating it if needed."""
        if self._redis is None:
            self._redis = redis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    async def close(self):
        """Close the Redis connection."""
        if self._redis:
            try:
                await self._redis.aclose()
            finally:
                self._redis = None

    def _nonce_key(self, client_key: str, nonce: str, timestamp: int) -> str:
        return f"{self.KEY_PREFIX}:{percent_encode(client_key)}:{timestamp}:{percent_encode(nonce)}"

    async def check_and_store_nonce(
        self,
        client_key: str,
        nonce: str,
        timestamp: int,
        timestamp_window: int
    ) -> Tuple[bool, str]:
        is_valid, message = _validate_nonce_value(nonce)
        if not is_valid:
            return False, message

        stored = await self.redis.set(
            self._nonce_key(client_key, nonce, timestamp),
            "1",
            nx=True,
            ex=self._retention_seconds(timestamp_window),
        )
        if not stored:
            return False, "OAuth 1.0 nonce has already been used (replay attack detected)"
        return True, "Valid nonce"


@dataclass(frozen=True)
class OAuth1Client:
    client_key: str
    secret: str
    signature_methods: Tuple[str, ...] = SUPPORTED_SIGNATURE_METHODS

    @classmethod
    def from_config(cls, client_key: str, entry: Any) -> 'OAuth1Client':
        """
        Build a client from a configuration entry.

        The entry is either the client secret or a dict with "secret" and
        optional "signature_methods".
        """
        if isinstance(entry, str):
            return cls(client_key=client_key, secret=entry)
        if not isinstance(entry, dict):
            raise ValueError(f"OAuth 1.0 client '{client_key}' must be a secret string or an object")

        secret = entry.get("secret")
        if not isinstance(secret, str) or not secret:
            raise ValueError(f"OAuth 1.0 client '{client_key}' has no secret")

        methods: Iterable[str] = entry.get("signature_methods", SUPPORTED_SIGNATURE_METHODS)
        if isinstance(methods, str) or not all(isinstance(m, str) for m in methods):
            raise ValueError(f"OAuth 1.0 client '{client_key}' signature_methods must be a list of strings")
        normalized = tuple(m.upper() for m in methods)
        unsupported = [m for m in normalized if m not in SUPPORTED_SIGNATURE_METHODS]
        if unsupported:
            raise ValueError(
                f"OAuth 1.0 client '{client_key}' has unsupported signature methods: {', '.join(unsupported)}"
            )
        return cls(client_key=client_key, secret=secret, signature_methods=normalized)


# Shared default tracker for storages created without a nonce store
_oauth1_nonce_tracker = OAuth1NonceTracker()


class InMemoryClientStorage(ClientStorage):
    """
    Client storage backed by a static set of clients.

    Requests whose timestamp is further than timestamp_window seconds from
    the current time are rejected before the nonce is recorded (0 disables
    the check).
    """

    def __init__(
        self,
        clients: Dict[str, Any],
        nonce_store: Optional[NonceStore] = None,
        timestamp_window: int = 300,
        clock: Callable[[], float] = time.time
    ):
        if not isinstance(timestamp_window, int) or isinstance(timestamp_window, bool) or timestamp_window < 0:
            raise ValueError("timestamp_window must be a non-negative integer")
        self.clients: Dict[str, OAuth1Client] = {}
        for client_key, entry in clients.items():
            client = entry if isinstance(entry, OAuth1Client) else OAuth1Client.from_config(client_key, entry)
            self.clients[client_key] = client
        self.nonce_store = nonce_store if nonce_store is not None else _oauth1_nonce_tracker
        self.timestamp_window = timestamp_window
        self.clock = clock

    async def get_signer(
        self,
        client_key: str,
        signature_method: str,
        request: IncomingRequest
    ) -> Tuple[Optional[Signer], Optional[str]]:
        client = self.clients.get(client_key)
        if client is None:
            return placeholder_signer(), "unknown client"

        if signature_method.upper() not in client.signature_methods:
            return placeholder_signer(), f"signature method {signature_method!r} not allowed"

        try:
            return signer_for_method(signature_method, client.secret), None
        except SigningError as e:
            return placeholder_signer(), str(e)

    async def validate_nonce(
        self,
        client_key: str,
        nonce: str,
        timestamp: int,
        request: IncomingRequest
    ) -> Tuple[bool, str]:
        if self.timestamp_window:
            time_diff = abs(int(self.clock()) - timestamp)
            if time_diff > self.timestamp_window:
                return False, (
                    f"OAuth 1.0 timestamp out of window (diff: {time_diff}s, max: {self.timestamp_window}s)"
                )

        return await self.nonce_store.check_and_store_nonce(
            client_key, nonce, timestamp, self.timestamp_window
        )
