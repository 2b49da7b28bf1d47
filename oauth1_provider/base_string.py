"""Signature base string construction (RFC 5849, section 3.4.1)."""
from typing import Dict, List, Tuple
from urllib.parse import quote, urlsplit

from oauth1_provider.errors import MalformedRequestError
from oauth1_provider.params import OAUTH_SIGNATURE, REALM, is_protocol_param, request_parameter_pairs
from oauth1_provider.request import IncomingRequest

DEFAULT_PORTS = {'http': 80, 'https': 443}


def percent_encode(value: str) -> str:
    """RFC 3986 encoding: everything except unreserved characters is escaped."""
    return quote(value.encode('utf-8'), safe='~')


def base_string_uri(url: str) -> str:
    """Normalize a request URL to scheme://host[:port]/path."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or '').lower()
    if not scheme or not host:
        raise MalformedRequestError("request URL must be absolute")
    try:
        port = parts.port
    except ValueError:
        raise MalformedRequestError("invalid port in request URL") from None
    if ':' in host:
        host = f"[{host}]"
    if port is not None and DEFAULT_PORTS.get(scheme) != port:
        host = f"{host}:{port}"
    return f"{scheme}://{host}{parts.path or '/'}"


def normalized_parameters(request: IncomingRequest, oauth_params: Dict[str, str]) -> str:
    pairs: List[Tuple[str, str]] = [
        (name, value) for name, value in oauth_params.items()
        if name not in (REALM, OAUTH_SIGNATURE)
    ]
    pairs.extend(
        (name, value) for name, value in request_parameter_pairs(request)
        if not is_protocol_param(name, oauth_params)
    )
    encoded = sorted((percent_encode(name), percent_encode(value)) for name, value in pairs)
    return '&'.join(f"{name}={value}" for name, value in encoded)


def signature_base(request: IncomingRequest, oauth_params: Dict[str, str]) -> str:
    """
    Build the signature base string for a request.

    Args:
        request: The incoming request
        oauth_params: Canonical parameter map, signature excluded

    Returns:
        METHOD&encoded-base-uri&encoded-normalized-parameters
    """
    return '&'.join([
        percent_encode(request.method.upper()),
        percent_encode(base_string_uri(request.url)),
        percent_encode(normalized_parameters(request, oauth_params)),
    ])
