"""
tests/test_auth_login.py -- Integration tests for POST /auth/login and GET /auth/me.

These tests go through the real ASGI stack: routing -> body validation ->
verifier -> issuer -> response. The provider is either the FakeVerifier from
conftest or a real PrivyClient whose HTTP session is a MagicMock, so no
request ever leaves the process.

Coverage:
  - Missing credential (absent body, absent field, null, empty) -> 400,
    zero provider calls
  - Present credential of any shape (whitespace, oversized, non-string) -> 401,
    never a 422
  - Provider rejection, non-2xx status, timeout, malformed body or key set ->
    identical 401 {"error": "Invalid token"}
  - Success -> 200 {"token": ...} decoding to the verified identity, 7-day expiry
  - GET /auth/me with and without a session token
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests
from conftest import TEST_APP_ID, TEST_SECRET, FakeVerifier
from fastapi.testclient import TestClient
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt

from auth.models import VerifiedIdentity
from auth.privy import PrivyClient

MISSING = {"error": "Missing token"}
INVALID = {"error": "Invalid token"}


def _es256_token() -> str:
    """A well-formed ES256 token, so verification gets as far as the key set."""
    key = ec.generate_private_key(ec.SECP256R1())
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    return jwt.encode({"sub": "did:privy:x", "aud": TEST_APP_ID, "iss": "privy.io"}, pem, algorithm="ES256")


class TestMissingToken:
    """Requests without a credential are answered before the provider is called."""

    @pytest.mark.parametrize(
        "body",
        [{}, {"privyToken": ""}, {"privyToken": None}, {"somethingElse": "x"}],
        ids=["empty-object", "empty-string", "null", "other-field"],
    )
    def test_missing_token_returns_400(self, api_client: TestClient, verifier: FakeVerifier, body: dict) -> None:
        resp = api_client.post("/auth/login", json=body)
        assert resp.status_code == 400
        assert resp.json() == MISSING
        assert verifier.calls == []

    def test_no_body_returns_400(self, api_client: TestClient, verifier: FakeVerifier) -> None:
        resp = api_client.post("/auth/login")
        assert resp.status_code == 400
        assert resp.json() == MISSING
        assert verifier.calls == []


class TestInvalidToken:
    """Every verification failure looks the same to the client."""

    def test_rejected_token_returns_401(self, api_client: TestClient, verifier: FakeVerifier) -> None:
        resp = api_client.post("/auth/login", json={"privyToken": "bad"})
        assert resp.status_code == 401
        assert resp.json() == INVALID
        assert verifier.calls == ["bad"]

    @pytest.mark.parametrize("failure", ["non_success", "timeout", "malformed"])
    def test_provider_failures_collapse_to_401(self, api_client: TestClient, failure: str) -> None:
        """Non-2xx, timeout and malformed JSON from the provider all yield the same 401 body."""
        session = MagicMock()
        if failure == "non_success":
            resp = MagicMock(status_code=503)
            resp.raise_for_status.side_effect = requests.HTTPError("503 Service Unavailable")
            session.get.return_value = resp
        elif failure == "timeout":
            session.get.side_effect = requests.Timeout("read timed out")
        else:
            resp = MagicMock(status_code=200)
            resp.json.side_effect = ValueError("Expecting value: line 1 column 1")
            session.get.return_value = resp

        api_client.app.state.verifier = PrivyClient(app_id=TEST_APP_ID, session=session)

        resp = api_client.post("/auth/login", json={"privyToken": "some.provider.token"})
        assert resp.status_code == 401
        assert resp.json() == INVALID
        assert session.get.call_count == 1

    def test_unexpected_provider_payload_returns_401(self, api_client: TestClient) -> None:
        """A JWKS response that is not a key set cannot verify anything."""
        session = MagicMock()
        session.get.return_value.json.return_value = {"unexpected": True}
        api_client.app.state.verifier = PrivyClient(app_id=TEST_APP_ID, session=session)

        resp = api_client.post("/auth/login", json={"privyToken": "not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json() == INVALID

    @pytest.mark.parametrize(
        "jwks",
        [
            {"keys": [{"kty": "EC", "crv": "P-256"}]},
            {"keys": [None]},
            "not a key set",
            [{"kty": "EC"}],
        ],
        ids=["ec-key-without-coordinates", "null-key", "string-body", "list-body"],
    )
    def test_malformed_key_set_returns_401(self, api_client: TestClient, jwks) -> None:
        """A key set that cannot be parsed into keys is a verification failure, not a 500."""
        session = MagicMock()
        session.get.return_value.json.return_value = jwks
        api_client.app.state.verifier = PrivyClient(app_id=TEST_APP_ID, session=session)

        resp = api_client.post("/auth/login", json={"privyToken": _es256_token()})
        assert resp.status_code == 401
        assert resp.json() == INVALID
        assert session.get.call_count == 1


class TestCredentialShapes:
    """A present credential always reaches the verifier; the schema never answers 422."""

    @pytest.mark.parametrize(
        "value",
        ["   ", "x" * 9000, 123, ["a.b.c"], {"token": "a.b.c"}, True],
        ids=["whitespace", "oversized", "int", "list", "object", "true"],
    )
    def test_present_credential_is_verified(self, api_client: TestClient, verifier: FakeVerifier, value) -> None:
        resp = api_client.post("/auth/login", json={"privyToken": value})
        assert resp.status_code == 401
        assert resp.json() == INVALID
        assert verifier.calls == [value]

    @pytest.mark.parametrize("value", ["   ", "x" * 9000], ids=["whitespace", "oversized"])
    def test_string_credentials_fail_real_verification(self, api_client: TestClient, value: str) -> None:
        session = MagicMock()
        session.get.return_value.json.return_value = {"keys": []}
        api_client.app.state.verifier = PrivyClient(app_id=TEST_APP_ID, session=session)

        resp = api_client.post("/auth/login", json={"privyToken": value})
        assert resp.status_code == 401
        assert resp.json() == INVALID

    def test_non_string_credential_fails_without_provider_call(self, api_client: TestClient) -> None:
        session = MagicMock()
        api_client.app.state.verifier = PrivyClient(app_id=TEST_APP_ID, session=session)

        resp = api_client.post("/auth/login", json={"privyToken": 123})
        assert resp.status_code == 401
        assert resp.json() == INVALID
        session.get.assert_not_called()


class TestLoginSuccess:
    def test_returns_signed_session_token(self, api_client: TestClient, verifier: FakeVerifier) -> None:
        resp = api_client.post("/auth/login", json={"privyToken": "good"})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert set(body) == {"token"}

        claims = jwt.decode(body["token"], TEST_SECRET, algorithms=["HS256"])
        assert claims["userId"] == "u1"
        assert claims["wallet"] == "0xabc"
        assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())
        assert verifier.calls == ["good"]

    def test_identity_without_wallet_issues_null_wallet(self, api_client: TestClient, verifier: FakeVerifier) -> None:
        verifier.identity = VerifiedIdentity(user_id="did:privy:abc", wallet=None)
        resp = api_client.post("/auth/login", json={"privyToken": "good"})
        assert resp.status_code == 200
        claims = jwt.decode(resp.json()["token"], TEST_SECRET, algorithms=["HS256"])
        assert claims["userId"] == "did:privy:abc"
        assert "wallet" in claims
        assert claims["wallet"] is None

    def test_each_request_verifies_again(self, api_client: TestClient, verifier: FakeVerifier) -> None:
        """No caching of verification results: the same credential is re-verified."""
        api_client.post("/auth/login", json={"privyToken": "good"})
        api_client.post("/auth/login", json={"privyToken": "good"})
        assert verifier.calls == ["good", "good"]

    def test_login_responses_are_not_cached(self, api_client: TestClient) -> None:
        for token in ("good", "bad", ""):
            resp = api_client.post("/auth/login", json={"privyToken": token})
            assert resp.headers["cache-control"] == "no-store"


class TestSessionMe:
    def test_me_returns_identity_from_session_token(self, api_client: TestClient) -> None:
        token = api_client.post("/auth/login", json={"privyToken": "good"}).json()["token"]
        resp = api_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["userId"] == "u1"
        assert data["wallet"] == "0xabc"
        assert "expiresAt" in data

    def test_me_without_token_returns_401(self, api_client: TestClient) -> None:
        resp = api_client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_me_rejects_provider_token(self, api_client: TestClient) -> None:
        """Only locally issued session tokens are accepted."""
        resp = api_client.get("/auth/me", headers={"Authorization": "Bearer good"})
        assert resp.status_code == 401
