# oauth1_provider/config.py
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from oauth1_provider.storage import (
    InMemoryClientStorage,
    NonceStore,
    OAuth1Client,
    OAuth1NonceTracker,
    RedisNonceStore,
)
from oauth1_provider.utils import load_env_vars

load_dotenv()

logger = logging.getLogger(__name__)

NONCE_BACKENDS = ('memory', 'redis')


def _int_from_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class OAuth1Settings:
    clients_file: str = "oauth1_clients.json"
    timestamp_window: int = 300
    nonce_backend: str = "memory"
    nonce_max_age: int = 600
    redis_host: str = "localhost"
    redis_port: int = 6379

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'OAuth1Settings':
        """
        Read settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ

        Raises:
            ValueError: If a value is invalid
        """
        if env is None:
            env = os.environ

        nonce_backend = env.get("OAUTH1_NONCE_BACKEND", "memory").strip().lower()
        if nonce_backend not in NONCE_BACKENDS:
            raise ValueError(
                f"OAUTH1_NONCE_BACKEND must be one of {', '.join(NONCE_BACKENDS)}, got {nonce_backend!r}"
            )

        redis_port = _int_from_env(env, "REDIS_PORT", 6379)
        if not 1 <= redis_port <= 65535:
            raise ValueError(f"REDIS_PORT must be between 1 and 65535, got {redis_port}")

        return cls(
            clients_file=env.get("OAUTH1_CLIENTS_FILE", "oauth1_clients.json"),
            timestamp_window=_int_from_env(env, "OAUTH1_TIMESTAMP_WINDOW", 300),
            nonce_backend=nonce_backend,
            nonce_max_age=_int_from_env(env, "OAUTH1_NONCE_MAX_AGE", 600),
            redis_host=env.get("REDIS_HOST", "localhost"),
            redis_port=redis_port,
        )

    @property
    def redis_url(self) -> str:
        return f"redis://{self.redis_host}:{self.redis_port}"


def load_clients(path: str) -> Dict[str, OAuth1Client]:
    """
    Load client credentials from a JSON file.

    The file maps client keys to either a secret string or an object with
    "secret" and optional "signature_methods". {$VAR} placeholders are
    replaced from the environment.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file content is invalid
    """
    with open(path, 'r') as clients_file:
        try:
            data: Any = json.load(clients_file)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in OAuth 1.0 clients file: {e.msg} (line {e.lineno})") from None

    if not isinstance(data, dict):
        raise ValueError("OAuth 1.0 clients file must contain a JSON object")

    data = load_env_vars(data)
    clients = {key: OAuth1Client.from_config(key, entry) for key, entry in data.items()}
    logger.info(f"Loaded {len(clients)} OAuth 1.0 client(s) from {path}")
    return clients


def build_nonce_store(settings: OAuth1Settings) -> NonceStore:
    if settings.nonce_backend == "redis":
        return RedisNonceStore(settings.redis_url, max_age_seconds=settings.nonce_max_age)
    return OAuth1NonceTracker(max_age_seconds=settings.nonce_max_age)


def build_client_storage(settings: Optional[OAuth1Settings] = None) -> InMemoryClientStorage:
    """Create client storage from settings (defaults to the environment)."""
    if settings is None:
        settings = OAuth1Settings.from_env()
    return InMemoryClientStorage(
        load_clients(settings.clients_file),
        nonce_store=build_nonce_store(settings),
        timestamp_window=settings.timestamp_window,
    )
