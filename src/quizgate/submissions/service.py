"""Submission persistence and notification fan-out."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from quizgate.auth.service import list_admins
from quizgate.db.models import Identity, Submission
from quizgate.quiz.questions import QUESTIONS, Question
from quizgate.quiz.scoring import score_answers

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from quizgate.discord.notifier import DiscordNotifier

logger = structlog.get_logger()


async def create_submission(
    db: AsyncSession,
    identity: Identity,
    answers: Mapping[str, str],
    questions: tuple[Question, ...] = QUESTIONS,
) -> Submission:
    """Score and store a new pending submission. Score and passed are never recomputed."""
    result = score_answers(answers, questions)
    now = datetime.now(timezone.utc)

    submission = Submission(
        identity_id=identity.id,
        answers=dict(answers),
        score=result.score,
        passed=result.passed,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    db.add(submission)
    identity.submission_count = (identity.submission_count or 0) + 1
    await db.commit()

    logger.info(
        "submission_created",
        submission_id=submission.id,
        identity_id=identity.id,
        score=result.score,
        passed=result.passed,
        correct=result.correct,
        total=result.total,
    )
    return submission


async def notify_new_submission(
    db: AsyncSession,
    notifier: DiscordNotifier,
    submission: Submission,
    identity: Identity,
) -> None:
    """Post the review message and DM admins; remember where the message went."""
    if not notifier.enabled:
        return
    admins = await list_admins(db)
    message = await notifier.notify_submission(submission, identity, admins)
    if message is None:
        return
    submission.notification_channel_id = str(message.channel_id)
    submission.notification_message_id = str(message.id)
    await db.commit()


async def get_submission(db: AsyncSession, submission_id: str) -> Submission | None:
    """Fetch one submission with its identity, bypassing any stale cached copy."""
    result = await db.execute(
        select(Submission)
        .options(selectinload(Submission.identity))
        .where(Submission.id == submission_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_submissions(db: AsyncSession) -> list[Submission]:
    """All submissions with their identity, most recent first."""
    result = await db.execute(
        select(Submission)
        .options(selectinload(Submission.identity))
        .order_by(Submission.created_at.desc())
    )
    return list(result.scalars().all())
