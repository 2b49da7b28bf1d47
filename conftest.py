import base64
import hashlib
import hmac
import time
from urllib.parse import parse_qsl, quote, urlsplit

import pytest

from oauth1_provider.request import IncomingRequest
from oauth1_provider.storage import InMemoryClientStorage, OAuth1NonceTracker

CLIENT_KEY = "client-key"
CLIENT_SECRET = "client-secret"


def _encode(value: str) -> str:
    return quote(value, safe='~')


def compute_signature(method, url, oauth_params, consumer_secret, body=b"", form=False,
                      signature_method="HMAC-SHA1"):
    """Sign a request independently of the package's base string code."""
    signing_key = f"{_encode(consumer_secret)}&"
    if signature_method == "PLAINTEXT":
        return signing_key

    parts = urlsplit(url)
    base_uri = f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path or '/'}"
    pairs = [(k, v) for k, v in oauth_params.items() if k not in ("oauth_signature", "realm")]
    pairs.extend(parse_qsl(parts.query, keep_blank_values=True))
    if form:
        pairs.extend(parse_qsl(body.decode("utf-8"), keep_blank_values=True))
    normalized = "&".join(f"{k}={v}" for k, v in sorted((_encode(k), _encode(v)) for k, v in pairs))
    base_string = "&".join(_encode(part) for part in (method.upper(), base_uri, normalized))

    digestmod = hashlib.sha256 if signature_method == "HMAC-SHA256" else hashlib.sha1
    digest = hmac.new(signing_key.encode("utf-8"), base_string.encode("utf-8"), digestmod).digest()
    return base64.b64encode(digest).decode("utf-8")


def build_signed_request(method="POST", url="https://api.example.com/resource",
                         consumer_key=CLIENT_KEY, consumer_secret=CLIENT_SECRET,
                         signature_method="HMAC-SHA1", timestamp=None, nonce="nonce-123",
                         extra_oauth=None, body=b"", content_type=None, signature=None):
    """Build an IncomingRequest carrying a signed OAuth Authorization header."""
    oauth_params = {
        "oauth_consumer_key": consumer_key,
        "oauth_signature_method": signature_method,
        "oauth_timestamp": str(int(time.time()) if timestamp is None else timestamp),
        "oauth_nonce": nonce,
        "oauth_version": "1.0",
    }
    oauth_params.update(extra_oauth or {})

    form = content_type == "application/x-www-form-urlencoded"
    if signature is None:
        signature = compute_signature(method, url, oauth_params, consumer_secret, body, form, signature_method)
    oauth_params["oauth_signature"] = signature

    headers = {"Authorization": "OAuth " + ", ".join(f'{k}="{_encode(v)}"' for k, v in oauth_params.items())}
    if content_type:
        headers["Content-Type"] = content_type
    return IncomingRequest(method=method, url=url, headers=headers, body=body)


@pytest.fixture
def signed_request():
    """Factory building signed requests for the test client credentials."""
    return build_signed_request


@pytest.fixture
def nonce_tracker():
    return OAuth1NonceTracker(max_age_seconds=600)


@pytest.fixture
def client_storage(nonce_tracker):
    return InMemoryClientStorage({CLIENT_KEY: CLIENT_SECRET}, nonce_store=nonce_tracker)


@pytest.fixture(autouse=True)
def clear_oauth1_nonce_tracker():
    """Clear the shared OAuth 1.0 nonce tracker before and after each test."""
    from oauth1_provider.storage import _oauth1_nonce_tracker

    _oauth1_nonce_tracker.nonces.clear()

    yield

    _oauth1_nonce_tracker.nonces.clear()
