"""
tests/conftest.py -- Shared test fixtures for Predix integration tests.

This module provides:
  - FakeVerifier: a provider double that counts calls and returns or raises
  - make_settings(): Settings with a fixed JWT secret and no database
  - _patch_lifespan(): wires test doubles into app.state, bypassing real startup
  - api_client: TestClient + FakeVerifier + SessionIssuer for API tests
  - web_client: TestClient with follow_redirects=False for page tests

The DEBUG env var must be set before any api/ import: api/main.py reads
get_settings() at import time and production mode requires JWT_SECRET.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate JWT_SECRET in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from asgi import app
from auth.exceptions import InvalidTokenError, MissingTokenError
from auth.models import VerifiedIdentity
from auth.tokens import SessionIssuer
from core.config import Settings

TEST_SECRET = "predix-test-secret-0123456789abcdef0123456789"
TEST_APP_ID = "test-privy-app"

# Rate limits are covered by slowapi itself; tests hit /auth/login far more
# often than 10 times a minute.
limiter.enabled = False


class FakeVerifier:
    """Stand-in for PrivyClient.

    Returns identity for every non-blank string token, or raises error
    when one is given. Blank and non-string tokens are rejected the way the
    real client rejects them.
    calls records every token passed in, so tests can assert that no
    provider call happened.
    """

    def __init__(self, identity: VerifiedIdentity | None = None, error: Exception | None = None) -> None:
        self.identity = identity or VerifiedIdentity(user_id="u1", wallet="0xabc")
        self.error = error
        self.calls: list = []
        self.configured = True

    def verify_auth_token(self, token) -> VerifiedIdentity:
        self.calls.append(token)
        if not token:
            raise MissingTokenError("Missing token")
        if not isinstance(token, str) or not token.strip():
            raise InvalidTokenError("not a provider token")
        if self.error is not None:
            raise self.error
        if token == "bad":
            raise InvalidTokenError("rejected by provider")
        return self.identity

    def close(self) -> None:
        pass


def make_settings(**overrides) -> Settings:
    values = {"debug": True, "jwt_secret": TEST_SECRET, "privy_app_id": TEST_APP_ID}
    values.update(overrides)
    return Settings(**values)


def _patch_lifespan(settings: Settings, verifier, issuer: SessionIssuer):
    """Return an async context manager that replaces the real lifespan.

    No database and no migrations: app.state.database is a MagicMock so
    nothing touches a real server.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.database = MagicMock()
        app.state.verifier = verifier
        app.state.issuer = issuer
        yield

    return test_lifespan


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def issuer() -> SessionIssuer:
    return SessionIssuer(TEST_SECRET)


@pytest.fixture
def api_client(verifier: FakeVerifier, issuer: SessionIssuer) -> Generator[TestClient, None, None]:
    """Yield a TestClient whose app.state holds the FakeVerifier and issuer fixtures.

    Tests can swap app.state.verifier mid-test to plug in a real PrivyClient
    with a mocked HTTP session.
    """
    app.router.lifespan_context = _patch_lifespan(make_settings(), verifier, issuer)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def web_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient for page routes. follow_redirects=False so tests see 302s.

    Parametrize indirectly with a dict of Settings overrides, e.g.
    {"privy_app_id": ""} for an unconfigured provider.
    """
    overrides = getattr(request, "param", {}) or {}
    app.router.lifespan_context = _patch_lifespan(make_settings(**overrides), FakeVerifier(), SessionIssuer(TEST_SECRET))
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client
