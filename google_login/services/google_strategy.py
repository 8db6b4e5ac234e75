"""Google OAuth2 authentication strategy.

Implements the authorization-code flow against Google:

1. `authorization_url()` builds the consent-screen redirect.
2. `authenticate()` validates the callback query, exchanges the code for
   tokens, fetches the user profile and hands the result to the `verify`
   callback supplied by the application.

`verify(access_token, refresh_token, profile)` is an async callable that
returns the application's user. Anything it raises propagates unchanged;
only protocol-level problems become `AuthenticationError`.
"""
import logging
import secrets
from typing import Awaitable, Callable, Optional
from urllib.parse import urlencode

import certifi
import httpx

logger = logging.getLogger(__name__)

AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

VerifyCallback = Callable[[str, Optional[str], dict], Awaitable[dict]]


class AuthenticationError(Exception):
    """The provider did not authenticate the user."""


class GoogleStrategy:
    name = "google"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        verify: VerifyCallback,
        scope: str = "email",
        success_redirect: str = "/",
        failure_redirect: str = "/",
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.verify = verify
        self.scope = scope
        self.success_redirect = success_redirect
        self.failure_redirect = failure_redirect
        # Use certifi CA bundle unless verification is explicitly disabled
        self._verify_arg = certifi.where() if verify_ssl else False
        self._transport = transport

    @staticmethod
    def new_state() -> str:
        return secrets.token_urlsafe(24)

    def authorization_url(self, state: str) -> str:
        """Return the Google consent-screen URL for this client."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "scope": self.scope,
            "redirect_uri": self.callback_url,
            "state": state,
        }
        return f"{AUTHORIZATION_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(verify=self._verify_arg, transport=self._transport, timeout=10.0)

    async def authenticate(self, query: dict, expected_state: Optional[str]) -> dict:
        """Run the callback half of the flow and return the verified user."""
        error = query.get("error")
        if error:
            raise AuthenticationError(f"Provider returned error: {error}")

        code = query.get("code")
        if not code:
            raise AuthenticationError("Missing code in callback")

        state = query.get("state")
        if not expected_state or not state or not secrets.compare_digest(state, expected_state):
            raise AuthenticationError("OAuth state mismatch")

        try:
            async with self._client() as client:
                tokens = await self._exchange_code(client, code)
                profile = await self._fetch_profile(client, tokens["access_token"])
        except httpx.HTTPError as e:
            raise AuthenticationError(f"HTTP error while contacting Google APIs: {e}") from e

        return await self.verify(tokens["access_token"], tokens.get("refresh_token"), profile)

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> dict:
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.callback_url,
            "grant_type": "authorization_code",
        }
        resp = await client.post(TOKEN_URL, data=data, headers={"Accept": "application/json"})
        if resp.status_code != 200:
            raise AuthenticationError(f"Failed to fetch token from Google ({resp.status_code})")
        tokens = resp.json()
        if not tokens.get("access_token"):
            raise AuthenticationError("No access token returned")
        return tokens

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> dict:
        resp = await client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        if resp.status_code != 200:
            raise AuthenticationError(f"Failed to fetch user info ({resp.status_code})")
        return resp.json()
