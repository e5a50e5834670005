"""
web/routes.py -- Jinja2 template routes for the Predix web UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (settings, provider client) but return HTML instead of JSON.

Routes:
  GET  /           -- markets placeholder; polls /api/health from the page
  GET  /login      -- login page carrying the Privy client configuration
  GET  /portfolio  -- portfolio placeholder, gated by SessionGate

Session gating:
  /portfolio consults the identity provider's own client state, not the
  session token minted by POST /auth/login. The provider is "ready" once it
  is configured (PRIVY_APP_ID set) and "authenticated" when its session
  cookie is present. See web/gate.py for the evaluation order.
"""

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from web.gate import GateState, SessionGate, StateCell

logger = logging.getLogger("predix.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# Cookie the Privy browser SDK writes when it holds a session.
PROVIDER_SESSION_COOKIE = "privy-token"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _provider_app_id(request: Request) -> str:
    settings = getattr(request.app.state, "settings", None)
    return settings.privy_app_id if settings is not None else ""


def _safe_next(next_url: Optional[str]) -> str:
    """Validate a post-login redirect target. Only accept relative paths.

    Rejects absolute URLs and protocol-relative ("//host") targets so the
    login page can never bounce a user off-site.
    """
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def evaluate_gate(request: Request) -> GateState:
    """Run the session gate for one request and return where it settled.

    The cells start out not-ready/not-authenticated. The authenticated flag
    is loaded first and readiness last, so the gate only reads it once the
    provider reports ready.
    """
    ready: StateCell[bool] = StateCell(False)
    authenticated: StateCell[bool] = StateCell(False)
    gate = SessionGate(ready, authenticated)
    try:
        authenticated.set(bool(request.cookies.get(PROVIDER_SESSION_COOKIE)))
        ready.set(bool(_provider_app_id(request)))
        return gate.state
    finally:
        gate.close()


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def home(request: Request) -> HTMLResponse:
    """Render the markets placeholder page."""
    return templates.TemplateResponse(request, "home.html", {})


@router.get("/login", response_class=HTMLResponse)
def login_page(request: Request) -> HTMLResponse:
    """Render the login page, which trades the provider session for a session token."""
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "privy_app_id": _provider_app_id(request),
            "provider_cookie": PROVIDER_SESSION_COOKIE,
            "next_url": _safe_next(request.query_params.get("next")),
        },
    )


@router.get("/portfolio", response_class=HTMLResponse, response_model=None)
def portfolio(request: Request) -> HTMLResponse | RedirectResponse:
    """Render the portfolio placeholder for users with a provider session.

    LOADING renders a placeholder (never a redirect); REDIRECT sends the user
    to /login with a next= back to this page.
    """
    state = evaluate_gate(request)
    if state is GateState.LOADING:
        return templates.TemplateResponse(request, "loading.html", {})
    if state is GateState.REDIRECT:
        return RedirectResponse(f"/login?next={quote(request.url.path)}", status_code=302)
    return templates.TemplateResponse(request, "portfolio.html", {})
