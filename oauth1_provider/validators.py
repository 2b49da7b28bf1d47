import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

from fastapi import HTTPException, Request

from oauth1_provider.errors import (
    InvalidParameterError,
    MalformedRequestError,
    OAuth1Error,
)
from oauth1_provider.provider import validate_signature
from oauth1_provider.request import IncomingRequest
from oauth1_provider.storage import ClientStorage, InMemoryClientStorage
from oauth1_provider.utils import sanitize_error_message

logger = logging.getLogger(__name__)


class BaseValidator(ABC):
    """Base class for request validators."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize validator with configuration.

        Args:
            config: The endpoint configuration
        """
        if not isinstance(config, dict):
            raise TypeError(f"Config must be a dictionary, got {type(config).__name__}")
        self.config = config

    @abstractmethod
    async def validate(self, headers: Dict[str, str], body: bytes) -> Tuple[bool, str]:
        """
        Validate the request.

        Args:
            headers: Request headers
            body: Raw request body

        Returns:
            Tuple of (is_valid, message)
        """
        pass


def status_code_for(error: OAuth1Error) -> int:
    """HTTP status for a validation error: 400 for bad requests, 401 otherwise."""
    if isinstance(error, (MalformedRequestError, InvalidParameterError)):
        return 400
    return 401


class OAuth1Validator(BaseValidator):
    """Validates OAuth 1.0 signatures (RFC 5849) made with client credentials."""

    def __init__(
        self,
        config: Dict[str, Any],
        storage: Optional[ClientStorage] = None,
        request: Optional[Any] = None
    ):
        """
        Args:
            config: Endpoint configuration; the "oauth1" section holds
                "clients" and "timestamp_window" when no storage is given
            storage: Client storage to use instead of the configured clients
            request: The FastAPI request, for the method and URL
        """
        super().__init__(config)
        self.request = request
        self.storage = storage

        oauth1_config = config.get("oauth1")
        if self.storage is None and oauth1_config is not None:
            if not isinstance(oauth1_config, dict):
                raise TypeError("oauth1 configuration must be a dictionary")
            self.storage = InMemoryClientStorage(
                oauth1_config.get("clients", {}),
                timestamp_window=oauth1_config.get("timestamp_window", 300),
            )
        if self.storage is None:
            raise ValueError("OAuth 1.0 validation requires client storage or an 'oauth1' config section")

    async def validate(self, headers: Dict[str, str], body: bytes) -> Tuple[bool, str]:
        """Validate OAuth 1.0 signature."""
        if self.request is None:
            return False, "OAuth 1.0 validation requires the request method and URL"

        incoming = IncomingRequest(
            method=self.request.method,
            url=str(self.request.url),
            headers=headers,
            body=body,
        )
        try:
            await validate_signature(incoming, self.storage)
        except OAuth1Error as e:
            return False, str(e)
        except Exception as e:
            return False, sanitize_error_message(e, "OAuth 1.0 validation")

        return True, "Valid OAuth 1.0 signature"


class OAuth1Dependency:
    """
    FastAPI dependency rejecting requests without a valid OAuth 1.0 signature.

    Usage:
        require_oauth1 = OAuth1Dependency(storage)

        @app.post("/resource", dependencies=[Depends(require_oauth1)])
        async def resource(): ...
    """

    def __init__(self, storage: ClientStorage):
        self.storage = storage

    async def __call__(self, request: Request) -> None:
        incoming = await IncomingRequest.from_starlette(request)
        try:
            await validate_signature(incoming, self.storage)
        except OAuth1Error as e:
            raise HTTPException(
                status_code=status_code_for(e),
                detail=str(e),
                headers={"WWW-Authenticate": "OAuth"},
            )
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=sanitize_error_message(e, "OAuth 1.0 validation"),
            )
