"""
Server-side session store.

Sessions are opaque ids carried in a cookie and mapped to a small JSON
record. The store can enumerate every live session, which is what the
login gate uses to enforce one active session per identity.

Backends: Redis (default) and an in-process memory store for local
development and tests. The backend is selected via configuration.
"""

from __future__ import annotations

import json
import secrets
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import WatchError

from quizgate.config import Settings

logger = structlog.get_logger()

SessionData = dict[str, Any]


class SessionStore(ABC):
    """Abstract session store."""

    def __init__(self, ttl_seconds: int) -> None:
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def get(self, sid: str) -> SessionData | None:
        """Return the session record, or None if missing or expired."""
        ...

    @abstractmethod
    async def save(self, sid: str, data: SessionData) -> None:
        """Write the record and reset its expiry."""
        ...

    @abstractmethod
    async def delete(self, sid: str) -> None:
        """Remove the session. Deleting a missing session is a no-op."""
        ...

    @abstractmethod
    def all(self) -> AsyncIterator[tuple[str, SessionData]]:
        """Iterate over all live sessions."""
        ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def create(self, data: SessionData | None = None) -> str:
        """Create a new session and return its id."""
        sid = secrets.token_urlsafe(32)
        await self.save(sid, dict(data or {}))
        return sid

    async def find_identity_session(self, identity_id: str, exclude_sid: str | None = None) -> str | None:
        """Return the id of a live session bound to identity_id, other than exclude_sid."""
        async for sid, data in self.all():
            if sid != exclude_sid and data.get("identity_id") == identity_id:
                return sid
        return None

    async def claim_identity(self, identity_id: str, sid: str, exclude_sid: str | None = None) -> str | None:
        """Bind identity_id to sid unless another live session already holds it.

        ``exclude_sid`` is the caller's own pre-login session. Returns the id of
        the conflicting session, or None once sid is bound.
        """
        other = await self.find_identity_session(identity_id, exclude_sid=exclude_sid)
        if other is not None:
            return other
        await self._bind(sid, identity_id)
        return None

    async def _bind(self, sid: str, identity_id: str) -> None:
        data = await self.get(sid) or {}
        data["identity_id"] = identity_id
        await self.save(sid, data)


class RedisSessionStore(SessionStore):
    """Sessions as JSON strings under session:<sid> with a Redis TTL.

    Each bound identity also has a session_owner:<identity id> marker holding
    the sid that owns it. Claims take the marker with SET NX, so two logins
    racing across workers cannot both succeed.
    """

    key_prefix = "session:"
    owner_prefix = "session_owner:"

    def __init__(self, client: redis.Redis, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self.client = client

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int) -> RedisSessionStore:
        client = redis.from_url(  # type: ignore[no-untyped-call]
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        return cls(client, ttl_seconds)

    def _key(self, sid: str) -> str:
        return f"{self.key_prefix}{sid}"

    async def get(self, sid: str) -> SessionData | None:
        raw = await self.client.get(self._key(sid))
        if raw is None:
            return None
        return json.loads(raw)

    async def save(self, sid: str, data: SessionData) -> None:
        await self.client.set(self._key(sid), json.dumps(data), ex=self.ttl_seconds)

    async def delete(self, sid: str) -> None:
        await self.client.delete(self._key(sid))

    async def all(self) -> AsyncIterator[tuple[str, SessionData]]:
        async for key in self.client.scan_iter(match=f"{self.key_prefix}*", count=500):
            raw = await self.client.get(key)
            # Expired between SCAN and GET
            if raw is None:
                continue
            yield key[len(self.key_prefix):], json.loads(raw)

    async def claim_identity(self, identity_id: str, sid: str, exclude_sid: str | None = None) -> str | None:
        # Sessions whose marker has already expired are only visible to a scan
        other = await self.find_identity_session(identity_id, exclude_sid=exclude_sid)
        if other is not None:
            return other

        owner_key = f"{self.owner_prefix}{identity_id}"
        if not await self.client.set(owner_key, sid, nx=True, ex=self.ttl_seconds):
            other = await self._take_over_marker(owner_key, sid, exclude_sid)
            if other is not None:
                return other

        await self._bind(sid, identity_id)
        return None

    async def _take_over_marker(self, owner_key: str, sid: str, exclude_sid: str | None) -> str | None:
        """Replace a marker left by a dead or excluded session.

        Returns the owning sid when the marker belongs to another live session.
        """
        async with self.client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(owner_key)
                owner = await pipe.get(owner_key)
                if owner and owner not in (sid, exclude_sid) and await pipe.exists(self._key(owner)):
                    return owner
                pipe.multi()
                pipe.set(owner_key, sid, ex=self.ttl_seconds)
                await pipe.execute()
            except WatchError:
                # Another login rewrote the marker first
                logger.info("session_claim_lost", owner_key=owner_key)
                return await self.client.get(owner_key)
        return None

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


class MemorySessionStore(SessionStore):
    """In-process store. Sessions are lost on restart and not shared between workers."""

    def __init__(self, ttl_seconds: int) -> None:
        super().__init__(ttl_seconds)
        self._sessions: dict[str, tuple[float, SessionData]] = {}

    def _prune(self) -> None:
        now = time.monotonic()
        expired = [sid for sid, (expires_at, _) in self._sessions.items() if expires_at <= now]
        for sid in expired:
            del self._sessions[sid]

    async def get(self, sid: str) -> SessionData | None:
        self._prune()
        entry = self._sessions.get(sid)
        if entry is None:
            return None
        return dict(entry[1])

    async def save(self, sid: str, data: SessionData) -> None:
        self._sessions[sid] = (time.monotonic() + self.ttl_seconds, dict(data))

    async def delete(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    async def all(self) -> AsyncIterator[tuple[str, SessionData]]:
        self._prune()
        for sid, (_, data) in list(self._sessions.items()):
            yield sid, dict(data)


def build_session_store(settings: Settings) -> SessionStore:
    """Create the configured session store."""
    backend = settings.session_backend.lower()
    logger.info("session_store_init", backend=backend, ttl_seconds=settings.session_ttl_seconds)
    if backend == "memory":
        return MemorySessionStore(settings.session_ttl_seconds)
    if backend == "redis":
        return RedisSessionStore.from_url(settings.redis_url, settings.session_ttl_seconds)
    msg = f"Unknown session backend: {settings.session_backend}"
    raise ValueError(msg)
