"""Request/response schemas for identity and session endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class IdentityResponse(BaseModel):
    """A signed-in Discord identity."""

    id: str
    username: str
    discriminator: str | None = None
    avatar_url: str | None = None
    is_admin: bool = False
    created_at: datetime
    last_login: datetime | None = None
    submission_count: int = 0

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str
