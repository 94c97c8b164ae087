"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.auth.oauth import DiscordOAuthClient
from quizgate.auth.sessions import MemorySessionStore
from quizgate.config import get_settings
from quizgate.database import close_db, get_engine, get_session_factory, init_db
from quizgate.db.base import Base
from quizgate.db.models import Identity
from quizgate.discord.notifier import DiscordNotifier
from quizgate.main import create_app

COOKIE_NAME = "quizgate_session"
FRONTEND = "http://frontend.test"

DISCORD_USER = {
    "id": "111111111111111111",
    "username": "trialmod",
    "discriminator": "0",
    "avatar": "abc123",
}


def discord_oauth_handler(request: httpx.Request) -> httpx.Response:
    """Fake Discord: accepts code 'good-code', rejects everything else."""
    if request.url.path.endswith("/oauth2/token"):
        if b"code=good-code" not in request.content:
            return httpx.Response(400, json={"error": "invalid_grant"})
        return httpx.Response(200, json={"access_token": "token-xyz", "token_type": "Bearer"})
    if request.url.path.endswith("/users/@me"):
        assert request.headers["Authorization"] == "Bearer token-xyz"
        return httpx.Response(200, json=DISCORD_USER)
    return httpx.Response(404)


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    """Point settings at a throwaway SQLite file and the memory session store."""
    monkeypatch.setenv("QUIZGATE_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'quizgate.db'}")
    monkeypatch.setenv("QUIZGATE_SESSION_BACKEND", "memory")
    monkeypatch.setenv("QUIZGATE_PUBLIC_BASE_URL", FRONTEND)
    monkeypatch.setenv("QUIZGATE_DISCORD_CLIENT_ID", "client-id")
    monkeypatch.setenv("QUIZGATE_DISCORD_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("QUIZGATE_DISCORD_BOT_TOKEN", "")
    monkeypatch.setenv("QUIZGATE_ADMIN_DISCORD_IDS", "[]")
    monkeypatch.setenv("QUIZGATE_LOG_FORMAT", "console")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Initialize the engine and create all tables."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test setup and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore(ttl_seconds=3600)


@pytest.fixture
def mock_rest() -> AsyncMock:
    """Stand-in for the hikari REST client."""
    rest = AsyncMock()
    rest.create_message.return_value = MagicMock(id=900001, channel_id=200, embeds=[])
    rest.create_dm_channel.return_value = MagicMock(id=700001)
    rest.fetch_message.return_value = MagicMock(id=900001, channel_id=200, embeds=[])
    return rest


@pytest.fixture
def notifier(mock_rest: AsyncMock) -> DiscordNotifier:
    return DiscordNotifier(
        mock_rest,
        guild_id="100",
        channel_id="200",
        role_ids=["301", "302"],
        timeout=2.0,
        role_grant_delay=0,
        review_url=f"{FRONTEND}/admin",
    )


@pytest.fixture
def oauth_client() -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://test/auth/discord/callback",
        transport=httpx.MockTransport(discord_oauth_handler),
    )


@pytest_asyncio.fixture
async def app(database, session_store, notifier, oauth_client) -> FastAPI:
    """App with explicit handles in place of the lifespan-built ones."""
    application = create_app()
    application.state.session_store = session_store
    application.state.oauth_client = oauth_client
    application.state.discord = SimpleNamespace(notifier=notifier)
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_identity(
    db: AsyncSession,
    identity_id: str = "222222222222222222",
    username: str = "applicant",
    is_admin: bool = False,
) -> Identity:
    identity = Identity(
        id=identity_id,
        username=username,
        discriminator=None,
        avatar_url=None,
        is_admin=is_admin,
        created_at=datetime.now(timezone.utc),
        submission_count=0,
    )
    db.add(identity)
    await db.commit()
    return identity


async def sign_in(client: AsyncClient, store: MemorySessionStore, identity_id: str) -> str:
    """Bind a fresh session to identity_id and attach its cookie to the client."""
    sid = await store.create({"identity_id": identity_id})
    client.cookies.clear()
    client.cookies.set(COOKIE_NAME, sid)
    return sid


@pytest_asyncio.fixture
async def applicant(db_session: AsyncSession) -> Identity:
    return await make_identity(db_session)


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Identity:
    return await make_identity(db_session, identity_id="333333333333333333", username="moderator", is_admin=True)


@pytest_asyncio.fixture
async def applicant_client(client: AsyncClient, session_store, applicant: Identity) -> AsyncClient:
    """Client signed in as a regular applicant."""
    await sign_in(client, session_store, applicant.id)
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, session_store, admin: Identity) -> AsyncClient:
    """Client signed in as an administrator."""
    await sign_in(client, session_store, admin.id)
    return client
