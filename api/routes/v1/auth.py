"""
api/routes/v1/auth.py -- Login and session endpoints.

Routes:
  POST /auth/login  -- exchange a Privy access token for a session token
  GET  /auth/me     -- decode the presented session token (requires auth)

Login flow (one pass, no retries):
  awaiting-request -> verifying -> issuing -> responded
  Any failure while verifying jumps straight to responded with 401.

Security:
  [H1] POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [H2] Verification failures are collapsed to one 401 "Invalid token" body.
       Whether the provider was unreachable or rejected the token is only
       visible in the server log. Clients get a uniform contract.
  [H3] Cache-Control: no-store on every login response.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginErrorResponse, LoginResponse, PrivyLoginRequest, SessionResponse
from auth.dependencies import get_current_session
from auth.exceptions import InvalidTokenError, MissingTokenError
from auth.models import SessionClaims
from auth.privy import PrivyClient
from auth.tokens import SessionIssuer

logger = logging.getLogger("predix.api.auth")

# Auth policy:
# - POST /auth/login: public -- this is where sessions come from
# - GET  /auth/me:    requires a session token (get_current_session)
router = APIRouter()


def _login_response(status_code: int, content: dict) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"  # [H3]
    return resp


@limiter.limit(login_rate_limit)  # [H1] must be ABOVE @router to preserve FastAPI introspection
@router.post(
    "/auth/login",
    response_model=LoginResponse,
    responses={400: {"model": LoginErrorResponse}, 401: {"model": LoginErrorResponse}},
)
def login(request: Request, body: Optional[PrivyLoginRequest] = None) -> JSONResponse:
    """Verify a Privy access token and return a 7-day session token.

    A missing body, missing field, null or empty value is answered with 400
    before the provider is contacted. Any other value, including a
    whitespace-only string or a non-string, goes to the verifier.
    Every verification failure becomes 401 "Invalid token" [H2].

    Declared sync so FastAPI runs it in the thread pool: the provider call
    blocks until Privy answers or the request times out.
    """
    verifier: PrivyClient = request.app.state.verifier
    issuer: SessionIssuer = request.app.state.issuer

    privy_token = body.privy_token if body is not None else None
    if not privy_token:
        return _login_response(400, {"error": "Missing token"})

    try:
        identity = verifier.verify_auth_token(privy_token)
    except MissingTokenError:
        return _login_response(400, {"error": "Missing token"})
    except InvalidTokenError:
        return _login_response(401, {"error": "Invalid token"})

    token = issuer.issue(identity)
    logger.info("Session issued for %s", identity.user_id)
    return _login_response(200, LoginResponse(token=token).model_dump())


@router.get("/auth/me", response_model=SessionResponse)
async def me(session: SessionClaims = Depends(get_current_session)) -> SessionResponse:
    """Return the identity carried by the presented session token."""
    return SessionResponse.from_claims(session)
