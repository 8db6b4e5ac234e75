"""Tests for the Google OAuth2 strategy against a fake Google server."""
import asyncio
from urllib.parse import urlparse, parse_qs

import httpx
import pytest

from google_login.services.google_strategy import (
    AUTHORIZATION_URL,
    AuthenticationError,
    GoogleStrategy,
)


def _make_strategy(google, calls):
    async def verify(access_token, refresh_token, profile):
        calls.append((access_token, refresh_token, profile))
        return {"id": "u1", "google": {"id": profile["id"]}}

    return GoogleStrategy(
        client_id="cid",
        client_secret="secret",
        callback_url="http://localhost:3000/auth/google/callback",
        verify=verify,
        transport=httpx.MockTransport(google.handler),
    )


class TestGoogleStrategy:

    def test_authorization_url_requests_email_scope(self, google):
        strategy = _make_strategy(google, [])
        url = urlparse(strategy.authorization_url("xyz"))
        params = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == AUTHORIZATION_URL
        assert params["scope"] == ["email"]
        assert params["response_type"] == ["code"]
        assert params["client_id"] == ["cid"]
        assert params["redirect_uri"] == ["http://localhost:3000/auth/google/callback"]
        assert params["state"] == ["xyz"]

    def test_new_state_is_random(self):
        assert GoogleStrategy.new_state() != GoogleStrategy.new_state()

    def test_success_calls_verify_with_tokens_and_profile(self, google):
        calls = []
        strategy = _make_strategy(google, calls)

        user = asyncio.run(strategy.authenticate({"code": "abc", "state": "s1"}, "s1"))

        assert user["google"]["id"] == google.profile["id"]
        assert calls == [("ya29.first-token", None, google.profile)]
        sent = google.token_requests[0]
        assert sent["grant_type"] == ["authorization_code"]
        assert sent["code"] == ["abc"]
        assert sent["client_secret"] == ["secret"]

    @pytest.mark.parametrize("query, expected_state", [
        ({"error": "access_denied", "state": "s1"}, "s1"),
        ({"state": "s1"}, "s1"),
        ({"code": "abc", "state": "forged"}, "s1"),
        ({"code": "abc", "state": "s1"}, None),
        ({"code": "abc"}, "s1"),
    ])
    def test_rejected_callbacks(self, google, query, expected_state):
        calls = []
        strategy = _make_strategy(google, calls)

        with pytest.raises(AuthenticationError):
            asyncio.run(strategy.authenticate(query, expected_state))
        assert calls == []
        assert google.token_requests == []

    def test_token_endpoint_failure(self, google):
        google.token_status = 400
        strategy = _make_strategy(google, [])

        with pytest.raises(AuthenticationError, match="token"):
            asyncio.run(strategy.authenticate({"code": "abc", "state": "s1"}, "s1"))

    def test_userinfo_failure(self, google):
        google.userinfo_status = 401
        strategy = _make_strategy(google, [])

        with pytest.raises(AuthenticationError, match="user info"):
            asyncio.run(strategy.authenticate({"code": "abc", "state": "s1"}, "s1"))

    def test_transport_error_becomes_authentication_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def verify(access_token, refresh_token, profile):
            raise AssertionError("verify must not run")

        strategy = GoogleStrategy("cid", "secret", "http://cb", verify, transport=httpx.MockTransport(handler))

        with pytest.raises(AuthenticationError):
            asyncio.run(strategy.authenticate({"code": "abc", "state": "s1"}, "s1"))

    def test_verify_errors_propagate(self, google):
        async def verify(access_token, refresh_token, profile):
            raise RuntimeError("database down")

        strategy = GoogleStrategy("cid", "secret", "http://cb", verify, transport=httpx.MockTransport(google.handler))

        with pytest.raises(RuntimeError, match="database down"):
            asyncio.run(strategy.authenticate({"code": "abc", "state": "s1"}, "s1"))
