"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Verifiers and issuers
do the work; routes map these to response models.

Layer rule: no imports from api/, web/, or db/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class VerifiedIdentity:
    """A user confirmed by the identity provider for the span of one request.

    Never persisted. wallet is None when the user has no linked wallet or the
    provider app secret is not configured.
    """

    user_id: str  # provider's stable user ID (Privy DID)
    wallet: str | None = None


@dataclass(frozen=True)
class SessionClaims:
    """Decoded contents of a session token issued by SessionIssuer."""

    user_id: str
    wallet: str | None
    expires_at: datetime
