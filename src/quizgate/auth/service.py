"""
Identity business logic.

Handles identity upsert on OAuth completion and the one-active-session
login gate.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from quizgate.db.models import Identity

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from quizgate.auth.oauth import DiscordProfile
    from quizgate.auth.sessions import SessionStore

logger = structlog.get_logger()


class ActiveSessionError(Exception):
    """The identity already has a live session elsewhere."""

    def __init__(self, identity_id: str) -> None:
        super().__init__(f"Identity {identity_id} already has an active session")
        self.identity_id = identity_id


# ---------------------------------------------------------------------------
# Identity queries
# ---------------------------------------------------------------------------


async def get_identity(db: AsyncSession, identity_id: str) -> Identity | None:
    """Fetch an identity by Discord id."""
    result = await db.execute(select(Identity).where(Identity.id == identity_id))
    return result.scalar_one_or_none()


async def list_admins(db: AsyncSession) -> list[Identity]:
    result = await db.execute(select(Identity).where(Identity.is_admin.is_(True)))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def upsert_identity(
    db: AsyncSession,
    profile: DiscordProfile,
    admin_ids: Collection[str] = (),
) -> tuple[Identity, bool]:
    """
    Create the identity on first login, otherwise refresh its display fields.

    Returns:
        Tuple of (identity, created).
    """
    now = datetime.now(timezone.utc)
    identity = await get_identity(db, profile.id)
    created = identity is None

    if identity is None:
        identity = Identity(
            id=profile.id,
            username=profile.username,
            discriminator=profile.discriminator,
            avatar_url=profile.avatar_url,
            is_admin=False,
            created_at=now,
            submission_count=0,
        )
        db.add(identity)
    else:
        identity.username = profile.username
        identity.discriminator = profile.discriminator
        identity.avatar_url = profile.avatar_url

    identity.last_login = now
    if profile.id in admin_ids:
        identity.is_admin = True

    await db.flush()
    if created:
        logger.info("identity_created", identity_id=identity.id, username=identity.username)
    return identity, created


async def complete_login(
    db: AsyncSession,
    store: SessionStore,
    profile: DiscordProfile,
    current_sid: str | None,
    admin_ids: Collection[str] = (),
) -> tuple[Identity, str]:
    """
    Bind a verified Discord profile to a fresh session.

    The identity record is written even when the login is then refused.
    The caller's pre-login session is replaced by a new session id.

    Returns:
        Tuple of (identity, new session id).

    Raises:
        ActiveSessionError: Another live session is already bound to this identity.
    """
    identity, _created = await upsert_identity(db, profile, admin_ids)
    await db.commit()

    # The new session exists before the claim so a racing login sees it as live
    sid = await store.create()
    other_sid = await store.claim_identity(identity.id, sid, exclude_sid=current_sid)
    if other_sid is not None:
        await store.delete(sid)
        logger.info("login_rejected_active_session", identity_id=identity.id)
        raise ActiveSessionError(identity.id)

    if current_sid is not None:
        await store.delete(current_sid)
    logger.info("login_completed", identity_id=identity.id)
    return identity, sid


async def logout(store: SessionStore, sid: str | None) -> None:
    """Invalidate the session. Safe to call without a session."""
    if sid is None:
        return
    await store.delete(sid)
