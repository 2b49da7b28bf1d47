"""
OAuth 1.0 protocol parameters: Authorization header parsing and
parameter collection from the query string and form body.
"""
import logging
import re
from typing import Dict, List, Tuple
from urllib.parse import unquote

from oauth1_provider.errors import MalformedRequestError
from oauth1_provider.request import IncomingRequest

logger = logging.getLogger(__name__)

AUTHORIZATION_PREFIX = 'OAuth '
OAUTH_PARAM_PREFIX = 'oauth_'
DEFAULT_OAUTH_VERSION = '1.0'

OAUTH_CONSUMER_KEY = 'oauth_consumer_key'
OAUTH_NONCE = 'oauth_nonce'
OAUTH_SIGNATURE = 'oauth_signature'
OAUTH_SIGNATURE_METHOD = 'oauth_signature_method'
OAUTH_TIMESTAMP = 'oauth_timestamp'
OAUTH_TOKEN = 'oauth_token'
OAUTH_VERSION = 'oauth_version'
REALM = 'realm'

MANDATORY_PARAMS = (
    OAUTH_SIGNATURE,
    OAUTH_CONSUMER_KEY,
    OAUTH_NONCE,
    OAUTH_TIMESTAMP,
    OAUTH_SIGNATURE_METHOD,
)

# name="value" with optional quotes; the first '=' separates name and value
_AUTHORIZATION_PARAM_PATTERN = re.compile(r'\s*([^=]+)="?(\S*?)"?\s*')
_BAD_ESCAPE_PATTERN = re.compile(r'%(?![0-9A-Fa-f]{2})')


def percent_decode(value: str, plus_as_space: bool = False) -> str:
    """
    Decode a percent-encoded value exactly once.

    Args:
        value: The encoded value
        plus_as_space: Translate '+' to a space (form encoding)

    Returns:
        The decoded string

    Raises:
        MalformedRequestError: On a truncated or non-hex escape, or if the
            decoded bytes are not valid UTF-8
    """
    bad_escape = _BAD_ESCAPE_PATTERN.search(value)
    if bad_escape:
        raise MalformedRequestError(f"invalid URL escape {value[bad_escape.start():bad_escape.start() + 3]!r}")
    if plus_as_space:
        value = value.replace('+', ' ')
    try:
        return unquote(value, encoding='utf-8', errors='strict')
    except UnicodeDecodeError:
        raise MalformedRequestError("invalid UTF-8 in percent-encoded value") from None


def parse_authorization_header(header: str) -> Dict[str, str]:
    """
    Parse the parameters of an 'OAuth' Authorization header.

    Headers using another scheme (or too short to carry parameters) yield no
    parameters. Every comma-separated segment must be a name="value" pair.

    Raises:
        MalformedRequestError: On a malformed segment, a bad escape or a
            repeated parameter name
    """
    params: Dict[str, str] = {}
    if len(header) <= len(AUTHORIZATION_PREFIX):
        return params
    if header[:len(AUTHORIZATION_PREFIX)].lower() != AUTHORIZATION_PREFIX.lower():
        return params

    for pair in header[len(AUTHORIZATION_PREFIX):].split(','):
        match = _AUTHORIZATION_PARAM_PATTERN.fullmatch(pair)
        if match is None:
            raise MalformedRequestError("Invalid Authorization header")
        name, value = match.group(1), percent_decode(match.group(2))
        if name in params:
            raise MalformedRequestError(f"duplicate oauth parameter {name}")
        params[name] = value
    return params


def parse_form_encoded(data: str) -> List[Tuple[str, str]]:
    """Decode application/x-www-form-urlencoded data into ordered pairs."""
    pairs = []
    for segment in data.split('&'):
        if not segment:
            continue
        name, _, value = segment.partition('=')
        pairs.append((percent_decode(name, plus_as_space=True), percent_decode(value, plus_as_space=True)))
    return pairs


def request_parameter_pairs(request: IncomingRequest) -> List[Tuple[str, str]]:
    """Query string pairs followed by form body pairs, in request order."""
    pairs = parse_form_encoded(request.query_string)
    if request.has_form_body:
        try:
            body = request.body.decode('utf-8')
        except UnicodeDecodeError:
            raise MalformedRequestError("form body is not valid UTF-8") from None
        pairs.extend(parse_form_encoded(body))
    return pairs


def collect_parameters(request: IncomingRequest, auth_params: Dict[str, str]) -> Dict[str, str]:
    """
    Merge Authorization header parameters with protocol parameters carried
    in the query string and form body.

    Header parameter names and oauth_* names must be unique across all
    locations; non-protocol parameters may repeat and are left out of the
    returned map.

    Args:
        request: The incoming request
        auth_params: Parameters parsed from the Authorization header

    Returns:
        Canonical parameter map

    Raises:
        MalformedRequestError: If a protocol parameter appears more than once
    """
    params = dict(auth_params)
    for name, value in request_parameter_pairs(request):
        if name in params:
            raise MalformedRequestError(f"duplicate oauth parameter {name}")
        if name.startswith(OAUTH_PARAM_PREFIX):
            params[name] = value
    return params


def is_protocol_param(name: str, params: Dict[str, str]) -> bool:
    """True if the name belongs to the canonical parameter map."""
    return name in params or name.startswith(OAUTH_PARAM_PREFIX)
