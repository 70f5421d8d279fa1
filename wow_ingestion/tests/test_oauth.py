"""
Unit tests for the OAuth2 client-credentials transport and its cache.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest
import requests

from wow_ingestion.errors import AuthenticationError
from wow_ingestion.extract.oauth import (
    ClientCredentialsAuth,
    TransportCache,
    authenticate,
)


def _token_response(token="token-1", expires_in=86399):
    response = MagicMock()
    response.json.return_value = {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": expires_in,
    }
    return response


class TestAuthenticate:
    """Test transport construction."""

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_grant_uses_basic_auth(self, mock_post):
        """Test client id/secret are sent as HTTP Basic auth to the regional endpoint."""
        mock_post.return_value = _token_response()

        session = authenticate("my-id", "my-secret", "eu")

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://eu.battle.net/oauth/token"
        assert kwargs["auth"] == ("my-id", "my-secret")
        assert kwargs["data"] == {"grant_type": "client_credentials"}
        assert isinstance(session, requests.Session)
        assert isinstance(session.auth, ClientCredentialsAuth)

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_rejected_grant(self, mock_post):
        """Test a rejected grant fails construction."""
        response = MagicMock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "401 Client Error: Unauthorized"
        )
        mock_post.return_value = response

        with pytest.raises(AuthenticationError) as exc_info:
            authenticate("my-id", "bad-secret", "us")
        assert "401" in str(exc_info.value)
        assert "bad-secret" not in str(exc_info.value)

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_unreachable_endpoint(self, mock_post):
        """Test an unreachable token endpoint fails construction."""
        mock_post.side_effect = requests.exceptions.ConnectTimeout("timed out")

        with pytest.raises(AuthenticationError):
            authenticate("my-id", "my-secret", "us")

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_response_without_token(self, mock_post):
        """Test a 2xx response without an access token is rejected."""
        response = MagicMock()
        response.json.return_value = {"error": "invalid_client"}
        mock_post.return_value = response

        with pytest.raises(AuthenticationError):
            authenticate("my-id", "my-secret", "us")


class TestClientCredentialsAuth:
    """Test bearer token attachment and renewal."""

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_attaches_bearer_token(self, mock_post):
        """Test requests carry the current access token."""
        mock_post.return_value = _token_response("abc")
        auth = ClientCredentialsAuth("id", "secret", "https://us.battle.net/oauth/token")
        auth.fetch_token()

        request = requests.Request("GET", "https://us.api.blizzard.com/data/wow/item/1").prepare()
        auth(request)

        assert request.headers["Authorization"] == "Bearer abc"
        assert mock_post.call_count == 1

    @patch("wow_ingestion.extract.oauth.requests.post")
    def test_renews_expired_token(self, mock_post):
        """Test an expired token is renewed before the next request."""
        mock_post.side_effect = [_token_response("old", expires_in=0), _token_response("new")]
        auth = ClientCredentialsAuth("id", "secret", "https://us.battle.net/oauth/token")
        auth.fetch_token()
        assert auth.expired

        request = requests.Request("GET", "https://us.api.blizzard.com/data/wow/item/1").prepare()
        auth(request)

        assert request.headers["Authorization"] == "Bearer new"
        assert mock_post.call_count == 2
        assert not auth.expired


class TestTransportCache:
    """Test the process-scoped transport cache."""

    def test_reuses_transport(self):
        """Test the factory runs once for repeated identical requests."""
        factory = MagicMock(return_value=MagicMock(spec=requests.Session))
        cache = TransportCache(factory=factory)

        first = cache.get("id", "secret", "us")
        second = cache.get("id", "secret", "us")

        assert first is second
        factory.assert_called_once_with("id", "secret", "us")

    def test_new_credentials_replace_transport(self):
        """Test rotated credentials build a new transport."""
        factory = MagicMock(side_effect=lambda *args: MagicMock(spec=requests.Session))
        cache = TransportCache(factory=factory)

        first = cache.get("id", "secret", "us")
        second = cache.get("id", "rotated", "us")

        assert first is not second
        assert factory.call_count == 2

    def test_concurrent_first_use_builds_once(self):
        """Test concurrent first calls initialise the transport once."""
        started = threading.Event()
        session = MagicMock(spec=requests.Session)

        def slow_factory(*args):
            started.wait(timeout=1)
            return session

        factory = MagicMock(side_effect=slow_factory)
        cache = TransportCache(factory=factory)
        results = []
        threads = [
            threading.Thread(target=lambda: results.append(cache.get("id", "secret", "us")))
            for _ in range(8)
        ]
        for thread in threads:
            thread.start()
        started.set()
        for thread in threads:
            thread.join(timeout=5)

        assert factory.call_count == 1
        assert len(results) == 8
        assert all(result is session for result in results)

    def test_failed_authentication_is_not_cached(self):
        """Test a failed build leaves the cache empty so the next call retries."""
        session = MagicMock(spec=requests.Session)
        factory = MagicMock(side_effect=[AuthenticationError("rejected"), session])
        cache = TransportCache(factory=factory)

        with pytest.raises(AuthenticationError):
            cache.get("id", "secret", "us")
        assert cache.get("id", "secret", "us") is session
