"""
Approval workflow.

A submission moves pending -> approved or pending -> denied exactly once.
The status write is a conditional UPDATE guarded on status = 'pending', so
when the dashboard and a Discord button race on the same submission only one
caller wins, and only the winner runs the role/DM/message side effects.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import update

from quizgate.db.models import Submission
from quizgate.submissions.service import get_submission

if TYPE_CHECKING:
    import hikari
    from sqlalchemy.ext.asyncio import AsyncSession

    from quizgate.discord.notifier import DiscordNotifier

logger = structlog.get_logger()

ACTION_STATUS = {"approve": "approved", "deny": "denied"}


class InvalidActionError(ValueError):
    """The requested action is not approve or deny."""


class SubmissionNotFoundError(LookupError):
    """No submission with that id exists."""


class SubmissionAlreadyResolvedError(Exception):
    """The submission has already left the pending state."""

    def __init__(self, submission: Submission) -> None:
        super().__init__(f"Submission {submission.id} is already {submission.status}")
        self.submission = submission


async def transition_status(
    db: AsyncSession,
    submission_id: str,
    status: str,
    reviewed_by: str,
) -> bool:
    """Move a pending submission to a terminal status.

    Returns True when this call performed the transition.
    """
    result = await db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.status == "pending")
        .values(status=status, reviewed_by=reviewed_by, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


async def resolve_submission(
    db: AsyncSession,
    notifier: DiscordNotifier,
    submission_id: str,
    action: str,
    *,
    reviewed_by: str,
    resolver_label: str,
    message: hikari.Message | None = None,
) -> Submission:
    """
    Approve or deny a submission and run the Discord side effects.

    ``reviewed_by`` is stored on the submission; ``resolver_label`` is what the
    review message shows. ``message`` is the clicked notification when the
    action comes from a button, otherwise the stored notification is fetched.

    Role grants, DMs and the message edit never affect the result: once the
    status write succeeds the submission is returned as resolved.

    Raises:
        InvalidActionError: action is not approve/deny.
        SubmissionNotFoundError: unknown submission id.
        SubmissionAlreadyResolvedError: someone else resolved it first.
    """
    status = ACTION_STATUS.get(action)
    if status is None:
        msg = f"Invalid action: {action}"
        raise InvalidActionError(msg)

    won = await transition_status(db, submission_id, status, reviewed_by)
    submission = await get_submission(db, submission_id)
    if submission is None:
        msg = f"Submission {submission_id} not found"
        raise SubmissionNotFoundError(msg)
    if not won:
        logger.info(
            "submission_already_resolved",
            submission_id=submission_id,
            status=submission.status,
            attempted=status,
            reviewed_by=reviewed_by,
        )
        raise SubmissionAlreadyResolvedError(submission)

    logger.info("submission_resolved", submission_id=submission_id, status=status, reviewed_by=reviewed_by)
    await notifier.apply_outcome(submission, resolver_label, message=message)
    return submission
