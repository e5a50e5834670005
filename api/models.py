"""
API request and response models for Predix REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names follow the JSON the frontend already speaks (privyToken, userId),
so the aliases below are the wire names and the attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import SessionClaims

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class PrivyLoginRequest(BaseModel):
    """Request body for POST /auth/login.

    privy_token accepts any JSON value. Absent, null and empty values are
    answered with 400 "Missing token"; everything else, whatever its type or
    length, is handed to the verifier, which answers 401 for anything it
    cannot verify. The schema never turns a credential into a 422.
    """

    model_config = ConfigDict(populate_by_name=True)

    privy_token: Any = Field(default=None, alias="privyToken")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Successful POST /auth/login response."""

    model_config = ConfigDict(frozen=True)

    token: str


class LoginErrorResponse(BaseModel):
    """Flat error body used by POST /auth/login ("Missing token", "Invalid token")."""

    model_config = ConfigDict(frozen=True)

    error: str


class SessionResponse(BaseModel):
    """Response for GET /auth/me -- the decoded session token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="userId")
    wallet: Optional[str] = None
    expires_at: datetime = Field(alias="expiresAt")

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "SessionResponse":
        return cls(user_id=claims.user_id, wallet=claims.wallet, expires_at=claims.expires_at)


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    timestamp: datetime
    service: str
