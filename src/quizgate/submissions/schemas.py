"""Request/response schemas for submission and review endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from quizgate.auth.schemas import IdentityResponse


class SubmissionCreateRequest(BaseModel):
    """A completed quiz: question id -> chosen answer text."""

    answers: dict[str, str] = Field(..., max_length=100)


class SubmissionResponse(BaseModel):
    id: str
    identity_id: str
    answers: dict[str, str]
    score: int
    passed: bool
    status: Literal["pending", "approved", "denied"]
    reviewed_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SubmissionWithIdentityResponse(SubmissionResponse):
    """Submission joined with the identity that made it."""

    identity: IdentityResponse


class ReviewActionRequest(BaseModel):
    """Admin decision on a pending submission."""

    # Validated by resolve_submission
    action: str = Field(..., max_length=32)
