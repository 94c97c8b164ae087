"""Response schemas for the quiz endpoint."""

from __future__ import annotations

from pydantic import BaseModel


class QuestionResponse(BaseModel):
    """A question as shown to the test taker. Never carries the answer."""

    id: str
    text: str
    options: list[str]


class QuizResponse(BaseModel):
    questions: list[QuestionResponse]
    total: int
    pass_threshold: int
