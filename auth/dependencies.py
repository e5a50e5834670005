"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

Session tokens are presented as "Authorization: Bearer <token>". The token
is decoded with the SessionIssuer stored on app.state by the lifespan.

try_get_session() is the soft variant (returns None on failure).
get_current_session() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from web/ or db/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import SessionClaims
from auth.tokens import SessionIssuer


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_session(request: Request) -> SessionClaims | None:
    """Decode the bearer session token. Returns None on any failure. Never raises."""
    token = _bearer_token(request)
    if not token:
        return None
    issuer: SessionIssuer = request.app.state.issuer
    return issuer.decode(token)


def get_current_session(request: Request) -> SessionClaims:
    """Require a valid session token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(session: SessionClaims = Depends(get_current_session)): ...
    """
    session = try_get_session(request)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return session
