"""Quiz scoring.

score = round(100 * correct / total), rounded half up, and a submission
passes when score >= PASS_THRESHOLD. A missing answer is simply wrong.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from quizgate.quiz.questions import QUESTIONS, Question

PASS_THRESHOLD = 80


@dataclass(frozen=True)
class ScoreResult:
    correct: int
    total: int
    score: int
    passed: bool


def percentage(correct: int, total: int) -> int:
    """Integer percentage rounded half up; 0 when there are no questions."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def score_answers(
    answers: Mapping[str, str],
    questions: tuple[Question, ...] = QUESTIONS,
) -> ScoreResult:
    """Score an answer set against the question bank."""
    correct = sum(1 for q in questions if answers.get(q.id) == q.correct)
    total = len(questions)
    score = percentage(correct, total)
    return ScoreResult(correct=correct, total=total, score=score, passed=score >= PASS_THRESHOLD)
