"""
auth/tokens.py -- Session token issuing and decoding.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       userId, wallet, iat and exp. Verification returns None on any
       failure -- the route layer turns that into a 401.

  Expiry: fixed at 7 days from issuance. There is no server-side revocation
       list, so a token stays valid until exp even if the provider account
       changes. Validity is a function of signature and expiry only.

  JWT_SECRET: validated once at startup by core.config.Settings (length,
       presence). SessionIssuer receives the already-validated secret and has
       no error path of its own.

Layer rule: no imports from api/, web/, or db/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import SessionClaims, VerifiedIdentity

logger = logging.getLogger("predix.auth")

_ALGORITHM = "HS256"

SESSION_TTL = timedelta(days=7)


class SessionIssuer:
    """Mints and decodes locally signed session tokens.

    One instance per process, built from Settings.jwt_secret in the lifespan.
    """

    def __init__(self, secret: str, ttl: timedelta = SESSION_TTL) -> None:
        self._secret = secret
        self.ttl = ttl

    def issue(self, identity: VerifiedIdentity, now: datetime | None = None) -> str:
        """Encode a signed session token for identity.

        Deterministic for the same identity, secret and now. The wallet claim
        is always present and null when the identity has no wallet.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "userId": identity.user_id,
            "wallet": identity.wallet,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> SessionClaims | None:
        """Decode and verify a session token. Returns None on any failure.

        Returning None (rather than raising) keeps the caller simple: any
        invalid token is treated as unauthenticated.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except JWTError:
            return None
        user_id = payload.get("userId")
        exp = payload.get("exp")
        if not isinstance(user_id, str) or not isinstance(exp, (int, float)):
            return None
        return SessionClaims(
            user_id=user_id,
            wallet=payload.get("wallet"),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
