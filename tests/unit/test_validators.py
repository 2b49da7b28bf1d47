"""
Tests for the OAuth1Validator tuple API and the FastAPI dependency.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from oauth1_provider.errors import (
    InvalidTimestampError,
    MalformedRequestError,
    MissingParametersError,
    NonceReplayError,
    SignatureMismatchError,
)
from oauth1_provider.storage import InMemoryClientStorage
from oauth1_provider.validators import OAuth1Dependency, OAuth1Validator, status_code_for


def create_mock_request(url="https://api.example.com/resource", method="POST"):
    """Create a mock request object exposing the method and URL."""
    return type("MockRequest", (), {"url": url, "method": method})()


class TestOAuth1Validator:

    @pytest.fixture
    def config(self):
        return {
            "oauth1": {
                "clients": {"client-key": "client-secret"},
                "timestamp_window": 300,
            }
        }

    def test_not_configured_rejected(self):
        with pytest.raises(ValueError, match="oauth1"):
            OAuth1Validator({}, request=create_mock_request())

    @pytest.mark.asyncio
    async def test_valid_signature(self, config, signed_request):
        validator = OAuth1Validator(config, request=create_mock_request())
        request = signed_request()

        is_valid, message = await validator.validate(request.headers, b"")
        assert is_valid is True
        assert message == "Valid OAuth 1.0 signature"

    @pytest.mark.asyncio
    async def test_invalid_signature(self, config, signed_request):
        validator = OAuth1Validator(config, request=create_mock_request())
        request = signed_request(consumer_secret="wrong")

        is_valid, message = await validator.validate(request.headers, b"")
        assert is_valid is False
        assert message == "signature mismatch"

    @pytest.mark.asyncio
    async def test_unknown_client_message_is_generic(self, config, signed_request):
        validator = OAuth1Validator(config, request=create_mock_request())
        request = signed_request(consumer_key="stranger")

        is_valid, message = await validator.validate(request.headers, b"")
        assert is_valid is False
        assert message == "signature mismatch"

    @pytest.mark.asyncio
    async def test_missing_params_listed(self, config):
        validator = OAuth1Validator(config, request=create_mock_request())
        headers = {"authorization": 'OAuth oauth_consumer_key="client-key", oauth_signature="x"'}

        is_valid, message = await validator.validate(headers, b"")
        assert is_valid is False
        assert "oauth_nonce" in message
        assert "oauth_timestamp" in message
        assert "oauth_signature_method" in message

    @pytest.mark.asyncio
    async def test_replay(self, config, signed_request):
        validator = OAuth1Validator(config, request=create_mock_request())
        request = signed_request(nonce="replayed")

        assert (await validator.validate(request.headers, b""))[0] is True
        is_valid, message = await validator.validate(request.headers, b"")
        assert is_valid is False
        assert "already been used" in message

    @pytest.mark.asyncio
    async def test_missing_request(self, config, signed_request):
        validator = OAuth1Validator(config)
        is_valid, message = await validator.validate(signed_request().headers, b"")
        assert is_valid is False
        assert "URL" in message

    @pytest.mark.asyncio
    async def test_storage_failure_sanitized(self, signed_request):
        storage = MagicMock()
        storage.validate_nonce = AsyncMock(side_effect=ConnectionError("redis://10.0.0.5:6379 refused"))
        validator = OAuth1Validator({}, storage=storage, request=create_mock_request())

        is_valid, message = await validator.validate(signed_request().headers, b"")
        assert is_valid is False
        assert "redis" not in message
        assert "10.0.0.5" not in message

    def test_config_must_be_dict(self):
        with pytest.raises(TypeError):
            OAuth1Validator(["oauth1"])

    def test_oauth1_section_must_be_dict(self):
        with pytest.raises(TypeError):
            OAuth1Validator({"oauth1": "client-secret"})


class TestStatusCodeFor:

    @pytest.mark.parametrize("error,status", [
        (MalformedRequestError("Invalid Authorization header"), 400),
        (MissingParametersError(["oauth_nonce"]), 400),
        (InvalidTimestampError("invalid timestamp 0"), 400),
        (NonceReplayError("replay"), 401),
        (SignatureMismatchError(), 401),
    ])
    def test_status(self, error, status):
        assert status_code_for(error) == status


class TestOAuth1Dependency:

    URL = "http://testserver/resource"

    @pytest.fixture
    def client(self, nonce_tracker):
        storage = InMemoryClientStorage({"client-key": "client-secret"}, nonce_store=nonce_tracker)
        require_oauth1 = OAuth1Dependency(storage)
        app = FastAPI()

        @app.post("/resource", dependencies=[Depends(require_oauth1)])
        async def resource():
            return {"status": "ok"}

        return TestClient(app)

    def test_valid_request(self, client, signed_request):
        request = signed_request(url=self.URL)
        response = client.post("/resource", headers={"Authorization": request.authorization})
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_valid_form_request(self, client, signed_request):
        body = b"amount=10&currency=EUR"
        request = signed_request(url=self.URL, body=body, content_type="application/x-www-form-urlencoded")
        response = client.post(
            "/resource",
            content=body,
            headers={
                "Authorization": request.authorization,
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )
        assert response.status_code == 200

    def test_bad_signature(self, client, signed_request):
        request = signed_request(url=self.URL, consumer_secret="wrong")
        response = client.post("/resource", headers={"Authorization": request.authorization})
        assert response.status_code == 401
        assert response.json()["detail"] == "signature mismatch"
        assert response.headers["www-authenticate"] == "OAuth"

    def test_replay(self, client, signed_request):
        request = signed_request(url=self.URL, nonce="once")
        assert client.post("/resource", headers={"Authorization": request.authorization}).status_code == 200

        response = client.post("/resource", headers={"Authorization": request.authorization})
        assert response.status_code == 401
        assert "already been used" in response.json()["detail"]

    def test_malformed_header(self, client):
        response = client.post("/resource", headers={"Authorization": "OAuth foo"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid Authorization header"

    def test_missing_credentials(self, client):
        response = client.post("/resource")
        assert response.status_code == 400
        assert "missing required oauth params" in response.json()["detail"]

    def test_token_credentials(self, client, signed_request):
        request = signed_request(url=self.URL, extra_oauth={"oauth_token": "access"})
        response = client.post("/resource", headers={"Authorization": request.authorization})
        assert response.status_code == 400
        assert "not implemented" in response.json()["detail"]
