"""ORM models for identities and quiz submissions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quizgate.db.base import Base

SUBMISSION_STATUSES = ("pending", "approved", "denied")

_JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


class Identity(Base):
    """A Discord account that has signed in at least once.

    The primary key is the Discord user snowflake, kept as a string.
    """

    __tablename__ = "identities"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    discriminator: Mapped[str | None] = mapped_column(String(8), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submission_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    submissions: Mapped[list[Submission]] = relationship("Submission", back_populates="identity")


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class Submission(Base):
    """One scored quiz attempt and its review state."""

    __tablename__ = "submissions"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'approved', 'denied')", name="ck_submissions_status"),
        CheckConstraint("score >= 0 AND score <= 100", name="ck_submissions_score"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    identity_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("identities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answers: Mapped[dict[str, Any]] = mapped_column(_JSONType, nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Where the review notification was posted, so either entry point can edit it
    notification_channel_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notification_message_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    identity: Mapped[Identity] = relationship("Identity", back_populates="submissions")
