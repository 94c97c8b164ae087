"""Admin review router: POST /api/admin/submissions/{id}/action."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quizgate.auth.dependencies import require_admin
from quizgate.database import get_session
from quizgate.db.models import Identity
from quizgate.dependencies import get_notifier
from quizgate.discord.notifier import DiscordNotifier
from quizgate.review.service import (
    InvalidActionError,
    SubmissionAlreadyResolvedError,
    SubmissionNotFoundError,
    resolve_submission,
)
from quizgate.submissions.schemas import ReviewActionRequest, SubmissionResponse

router = APIRouter(prefix="/api/admin", tags=["Review"])


@router.post("/submissions/{submission_id}/action", response_model=SubmissionResponse)
async def review_action(
    submission_id: str,
    body: ReviewActionRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
    notifier: DiscordNotifier = Depends(get_notifier),
) -> SubmissionResponse:
    """Approve or deny a pending submission from the dashboard."""
    try:
        submission = await resolve_submission(
            db,
            notifier,
            submission_id,
            body.action,
            reviewed_by=f"web:{admin.id}",
            resolver_label=f"<@{admin.id}> (dashboard)",
        )
    except InvalidActionError as e:
        raise HTTPException(status_code=400, detail="Invalid action") from e
    except SubmissionNotFoundError as e:
        raise HTTPException(status_code=404, detail="Not found") from e
    except SubmissionAlreadyResolvedError as e:
        raise HTTPException(status_code=409, detail=f"Submission already {e.submission.status}") from e
    return SubmissionResponse.model_validate(submission)
