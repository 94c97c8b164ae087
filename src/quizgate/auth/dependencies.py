"""FastAPI authentication dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.auth.service import get_identity
from quizgate.auth.sessions import SessionStore
from quizgate.config import get_settings
from quizgate.database import get_session
from quizgate.db.models import Identity
from quizgate.dependencies import get_session_store


def get_session_id(request: Request) -> str | None:
    """The session id from the request cookie, if any."""
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_identity(
    sid: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
    db: AsyncSession = Depends(get_session),
) -> Identity | None:
    """Return the identity bound to the caller's session, or None when signed out."""
    if sid is None:
        return None
    data = await store.get(sid)
    if not data or "identity_id" not in data:
        return None
    return await get_identity(db, data["identity_id"])


async def require_identity(
    identity: Identity | None = Depends(get_current_identity),
) -> Identity:
    """Same as get_current_identity but raises 401 when signed out."""
    if identity is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return identity


async def require_admin(
    identity: Identity | None = Depends(get_current_identity),
) -> Identity:
    """Require a signed-in administrator. Non-admins get 401, not 403."""
    if identity is None or not identity.is_admin:
        raise HTTPException(status_code=401, detail="Unauthorized Admin")
    return identity
