"""Authentication router: Discord OAuth entry/callback and /api/auth/* endpoints.

OAuth failures surface as ``?error=`` query flags on the redirect back to the
frontend, since the browser is mid-redirect and cannot read a status code.
"""

from __future__ import annotations

import secrets

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.auth.dependencies import get_current_identity, get_session_id
from quizgate.auth.oauth import DiscordOAuthClient, OAuthError
from quizgate.auth.schemas import IdentityResponse, MessageResponse
from quizgate.auth.service import ActiveSessionError, complete_login, logout
from quizgate.auth.sessions import SessionStore
from quizgate.config import Settings, get_settings
from quizgate.database import get_session
from quizgate.db.models import Identity
from quizgate.dependencies import get_oauth_client, get_session_store

logger = structlog.get_logger()

router = APIRouter(tags=["Authentication"])

AUTH_FAILED = "auth_failed"
ACTIVE_SESSION = "active_session"


def _frontend_url(settings: Settings, path: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}{path}"


def _error_redirect(settings: Settings, error: str) -> RedirectResponse:
    return RedirectResponse(_frontend_url(settings, f"/?error={error}"), status_code=302)


def _set_session_cookie(response: Response, settings: Settings, sid: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        sid,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


# ---------------------------------------------------------------------------
# Discord OAuth
# ---------------------------------------------------------------------------


@router.get("/auth/discord")
async def discord_login(
    sid: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
    oauth: DiscordOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    """Start the OAuth handshake: remember a state value and redirect to Discord."""
    settings = get_settings()
    if not settings.oauth_configured:
        logger.warning("oauth_not_configured")
        return _error_redirect(settings, AUTH_FAILED)

    data = await store.get(sid) if sid else None
    if data is None:
        sid = await store.create()
        data = {}
    state = secrets.token_urlsafe(16)
    data["oauth_state"] = state
    await store.save(sid, data)

    response = RedirectResponse(oauth.authorize_url(state), status_code=302)
    _set_session_cookie(response, settings, sid)
    return response


@router.get("/auth/discord/callback")
async def discord_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    sid: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
    oauth: DiscordOAuthClient = Depends(get_oauth_client),
    db: AsyncSession = Depends(get_session),
) -> RedirectResponse:
    """Finish the handshake, enforce one live session per identity, and sign in."""
    settings = get_settings()
    data = await store.get(sid) if sid else None

    expected_state = None
    if data is not None:
        # State is single-use
        expected_state = data.pop("oauth_state", None)
        await store.save(sid, data)

    if (
        error
        or not code
        or not state
        or expected_state is None
        or not secrets.compare_digest(state.encode(), expected_state.encode())
    ):
        logger.info("oauth_callback_rejected", provider_error=error, has_code=bool(code))
        return _error_redirect(settings, AUTH_FAILED)

    try:
        profile = await oauth.fetch_profile(code)
    except OAuthError as e:
        logger.warning("oauth_exchange_failed", error=str(e))
        return _error_redirect(settings, AUTH_FAILED)

    try:
        _identity, new_sid = await complete_login(db, store, profile, sid, settings.admin_discord_ids)
    except ActiveSessionError:
        return _error_redirect(settings, ACTIVE_SESSION)

    response = RedirectResponse(_frontend_url(settings, "/test"), status_code=302)
    _set_session_cookie(response, settings, new_sid)
    return response


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@router.get("/api/auth/me", response_model=IdentityResponse | None)
async def me(
    identity: Identity | None = Depends(get_current_identity),
) -> IdentityResponse | None:
    """Current identity, or null when signed out."""
    if identity is None:
        return None
    return IdentityResponse.model_validate(identity)


@router.post("/api/auth/logout", response_model=MessageResponse)
async def logout_endpoint(
    sid: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
) -> Response:
    """End the session. Calling it while signed out still succeeds."""
    settings = get_settings()
    try:
        await logout(store, sid)
    except Exception:
        logger.exception("logout_failed")
        return JSONResponse(status_code=500, content={"message": "Logout failed"})

    response = JSONResponse(content=MessageResponse(message="Logged out").model_dump())
    response.delete_cookie(settings.session_cookie_name)
    return response
