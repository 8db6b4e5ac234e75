"""Shared fixtures: an in-memory MongoDB and a fake Google OAuth server."""
from urllib.parse import urlparse, parse_qs

import httpx
import mongomock
import pytest
from fastapi.testclient import TestClient

from google_login import config
from google_login.db import mongo
from google_login.api.v1.endpoints import auth as auth_module
from google_login.services.google_strategy import GoogleStrategy
from google_login.main import app

CALLBACK_URL = "http://testserver/auth/google/callback"


class FakeGoogle:
    """Answers Google's token and userinfo endpoints from canned data."""

    def __init__(self):
        self.profile = {"id": "108234567890", "email": "ada@example.com", "verified_email": True}
        self.access_token = "ya29.first-token"
        self.token_status = 200
        self.userinfo_status = 200
        self.token_requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            self.token_requests.append(parse_qs(request.content.decode()))
            return httpx.Response(
                self.token_status,
                json={"access_token": self.access_token, "expires_in": 3599, "token_type": "Bearer"},
            )
        if request.url.path == "/oauth2/v2/userinfo":
            return httpx.Response(self.userinfo_status, json=self.profile)
        return httpx.Response(404)


@pytest.fixture
def mongo_client(monkeypatch):
    client = mongomock.MongoClient()
    monkeypatch.setattr(mongo, "get_client", lambda: client)
    return client


@pytest.fixture
def db(mongo_client):
    return mongo_client[config.DB_NAME]


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def strategy(monkeypatch, google):
    strat = GoogleStrategy(
        client_id="client-id.apps.googleusercontent.com",
        client_secret="client-secret",
        callback_url=CALLBACK_URL,
        verify=auth_module.verify_google_user,
        transport=httpx.MockTransport(google.handler),
    )
    monkeypatch.setattr(auth_module, "_strategy", strat)
    return strat


@pytest.fixture
def client(mongo_client, strategy):
    with TestClient(app, follow_redirects=False) as c:
        yield c


@pytest.fixture
def login(client):
    """Walk the browser through /auth/google and back through the callback."""
    def _login():
        resp = client.get("/auth/google")
        state = parse_qs(urlparse(resp.headers["location"]).query)["state"][0]
        return client.get("/auth/google/callback", params={"code": "4/0Aabc", "state": state})
    return _login
