"""Submission router: /api/submissions endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.auth.dependencies import require_admin, require_identity
from quizgate.database import get_session
from quizgate.db.models import Identity
from quizgate.dependencies import get_notifier
from quizgate.discord.notifier import DiscordNotifier
from quizgate.submissions.schemas import (
    SubmissionCreateRequest,
    SubmissionResponse,
    SubmissionWithIdentityResponse,
)
from quizgate.submissions.service import (
    create_submission,
    get_submission,
    list_submissions,
    notify_new_submission,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


@router.post("", response_model=SubmissionResponse, status_code=201)
async def create(
    body: SubmissionCreateRequest,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
    notifier: DiscordNotifier = Depends(get_notifier),
) -> SubmissionResponse:
    """Score and store a quiz attempt, then notify reviewers."""
    submission = await create_submission(db, identity, body.answers)
    response = SubmissionResponse.model_validate(submission)

    try:
        await notify_new_submission(db, notifier, submission, identity)
    except Exception:
        # Delivery problems never fail the submission itself
        logger.exception("submission_notification_failed", submission_id=submission.id)
        await db.rollback()

    return response


@router.get("", response_model=list[SubmissionWithIdentityResponse])
async def list_all(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[SubmissionWithIdentityResponse]:
    """All submissions, newest first. Admin only."""
    submissions = await list_submissions(db)
    return [SubmissionWithIdentityResponse.model_validate(s) for s in submissions]


@router.get("/{submission_id}", response_model=SubmissionWithIdentityResponse)
async def get_one(
    submission_id: str,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> SubmissionWithIdentityResponse:
    """One submission, visible to its owner and to admins."""
    submission = await get_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Not found")
    if submission.identity_id != identity.id and not identity.is_admin:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return SubmissionWithIdentityResponse.model_validate(submission)
