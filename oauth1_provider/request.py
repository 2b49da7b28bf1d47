"""
Transport-neutral view of an inbound HTTP request.

Validation only needs the method, the full request URL, the headers and the
raw body. FastAPI/Starlette requests are adapted with from_starlette().
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

FORM_CONTENT_TYPE = 'application/x-www-form-urlencoded'

# Methods whose body is parsed as form parameters.
BODY_METHODS = ('POST', 'PUT', 'PATCH')


@dataclass(frozen=True)
class IncomingRequest:
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b''

    def __post_init__(self):
        # Header lookups are case-insensitive; the first value of a repeated header wins
        normalized = {}
        for name, value in self.headers.items():
            normalized.setdefault(name.lower(), value)
        object.__setattr__(self, 'headers', normalized)
        object.__setattr__(self, 'method', self.method.upper())

    def header(self, name: str, default: str = '') -> str:
        return self.headers.get(name.lower(), default)

    @property
    def authorization(self) -> str:
        return self.header('authorization')

    @property
    def query_string(self) -> str:
        return urlsplit(self.url).query

    @property
    def has_form_body(self) -> bool:
        """True when the body carries application/x-www-form-urlencoded parameters."""
        if self.method not in BODY_METHODS or not self.body:
            return False
        content_type = self.header('content-type').split(';', 1)[0].strip().lower()
        return content_type == FORM_CONTENT_TYPE

    @classmethod
    async def from_starlette(cls, request: Any, body: Optional[bytes] = None) -> 'IncomingRequest':
        """
        Build an IncomingRequest from a FastAPI/Starlette Request.

        Args:
            request: The Starlette request
            body: Already-read body, if the caller consumed it

        Returns:
            IncomingRequest snapshot of the request
        """
        if body is None:
            body = await request.body()
        headers = {}
        for name, value in request.headers.items():
            headers.setdefault(name.lower(), value)
        return cls(
            method=request.method,
            url=str(request.url),
            headers=headers,
            body=body,
        )
