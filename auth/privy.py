"""
auth/privy.py -- Verification of Privy access tokens.

A Privy access token is an ES256 JWT signed by Privy for one app. Verifying
it takes one or two HTTP round trips to the Privy API:

  1. GET {api_url}/apps/{app_id}/jwks.json -- the app's verification keys.
     The signature, audience (app id), issuer ("privy.io") and expiry are
     then checked locally with python-jose.
  2. GET {api_url}/users/{user_id} -- only when an app secret is configured.
     Returns the user's linked accounts, from which the first wallet address
     is taken. Basic auth (app id, app secret) plus the privy-app-id header.

Error policy:
  Every failure past the empty-token check -- network error, timeout,
  non-2xx status, bad signature, malformed JSON or key set, missing claims -- raises
  InvalidTokenError. The underlying cause is chained and logged here but the
  distinction is not passed on to callers; the login endpoint answers 401
  "Invalid token" for all of them. No retries: each call is attempted once.

  The verification keys are fetched on every call. There is no key cache,
  so repeated logins each cost the full round trip.

Layer rule: no imports from api/, web/, or db/.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from jose import jwt
from jose.exceptions import JOSEError

from auth.exceptions import InvalidTokenError, MissingTokenError
from auth.models import VerifiedIdentity

logger = logging.getLogger("predix.auth.privy")

PRIVY_ISSUER = "privy.io"
_ALGORITHM = "ES256"


class PrivyClient:
    """Client for the Privy verification API.

    One instance per process, created in the lifespan. The requests.Session
    is shared across calls for connection pooling and is safe for the
    one-call-per-request usage here.

    Usage:
        client = PrivyClient(app_id="clxyz...", app_secret="...")
        identity = client.verify_auth_token(privy_token)
        client.close()
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str = "",
        api_url: str = "https://auth.privy.io/api/v1",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        # Known API host; a short redirect budget keeps a misbehaving proxy
        # from bouncing verification requests around.
        self._session.max_redirects = 3

    @property
    def configured(self) -> bool:
        return bool(self.app_id)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def verify_auth_token(self, token: Any) -> VerifiedIdentity:
        """Verify a Privy access token and return the identity it carries.

        Raises:
            MissingTokenError: token is None or empty. No request is sent.
            InvalidTokenError: any other failure, including a token that is
                not a string. Whitespace-only and oversized strings go
                through full verification like any other.
        """
        if not token:
            raise MissingTokenError("Missing token")
        if not self.configured:
            raise InvalidTokenError("PRIVY_APP_ID is not configured")
        if not isinstance(token, str):
            raise InvalidTokenError(f"Token must be a string, got {type(token).__name__}")

        try:
            jwks = self._get_json(f"{self.api_url}/apps/{self.app_id}/jwks.json")
            claims = jwt.decode(
                token,
                jwks,
                algorithms=[_ALGORITHM],
                audience=self.app_id,
                issuer=PRIVY_ISSUER,
            )
            user_id = claims.get("sub")
            if not isinstance(user_id, str) or not user_id:
                raise InvalidTokenError("Token has no subject claim")
            wallet = self._lookup_wallet(user_id) if self.app_secret else None
        except InvalidTokenError as exc:
            logger.info("Privy token rejected: %s", exc)
            raise
        except (requests.RequestException, JOSEError, ValueError, KeyError, TypeError) as exc:
            logger.info("Privy token rejected: %s: %s", type(exc).__name__, exc)
            raise InvalidTokenError(str(exc)) from exc

        return VerifiedIdentity(user_id=user_id, wallet=wallet)

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_json(self, url: str, **kwargs: Any) -> Any:
        resp = self._session.get(url, timeout=self.timeout, **kwargs)
        resp.raise_for_status()
        return resp.json()

    def _lookup_wallet(self, user_id: str) -> str | None:
        """Return the first linked wallet address for user_id, or None."""
        user = self._get_json(
            f"{self.api_url}/users/{user_id}",
            auth=(self.app_id, self.app_secret),
            headers={"privy-app-id": self.app_id},
        )
        return extract_wallet_address(user)


def extract_wallet_address(user: dict) -> str | None:
    """Pick the wallet address out of a Privy user object.

    Accepts both the top-level "wallet" shorthand ({"wallet": {"address": ...}})
    and the "linked_accounts" list, where wallets have type "wallet". The
    shorthand wins when both are present.
    """
    if not isinstance(user, dict):
        raise ValueError("Privy user response is not an object")

    wallet = user.get("wallet")
    if isinstance(wallet, dict) and wallet.get("address"):
        return str(wallet["address"])

    for account in user.get("linked_accounts") or []:
        if isinstance(account, dict) and account.get("type") == "wallet" and account.get("address"):
            return str(account["address"])
    return None
