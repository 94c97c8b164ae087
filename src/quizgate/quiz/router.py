"""Quiz API endpoint: GET /api/quiz."""

from __future__ import annotations

from fastapi import APIRouter

from quizgate.quiz.questions import QUESTIONS
from quizgate.quiz.schemas import QuestionResponse, QuizResponse
from quizgate.quiz.scoring import PASS_THRESHOLD

router = APIRouter(prefix="/api/quiz", tags=["Quiz"])


@router.get("", response_model=QuizResponse)
async def get_quiz() -> QuizResponse:
    """Questions and options for rendering the assessment."""
    return QuizResponse(
        questions=[QuestionResponse(id=q.id, text=q.text, options=list(q.options)) for q in QUESTIONS],
        total=len(QUESTIONS),
        pass_threshold=PASS_THRESHOLD,
    )
