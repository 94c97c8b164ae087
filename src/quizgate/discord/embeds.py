"""Message builders for submission review notifications."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone

import hikari
from hikari.impl import MessageActionRowBuilder

from quizgate.quiz.questions import QUESTIONS, Question

GREEN = hikari.Color(0x00FF00)
RED = hikari.Color(0xFF0000)

ANSWER_PREVIEW_LENGTH = 50
CUSTOM_ID_SEPARATOR = ":"
REVIEW_ACTIONS = ("approve", "deny")


def _preview(text: str) -> str:
    if len(text) > ANSWER_PREVIEW_LENGTH:
        return text[:ANSWER_PREVIEW_LENGTH] + "..."
    return text


def build_response_sheet(
    answers: Mapping[str, str],
    questions: tuple[Question, ...] = QUESTIONS,
) -> str:
    """One block per question: correctness mark and the user's answer."""
    lines = []
    for q in questions:
        given = answers.get(q.id) or "No response"
        mark = "✅" if given == q.correct else "❌"
        lines.append(f"**{q.id.upper()}**: {mark}\n*User:* {_preview(given)}")
    return "\n".join(lines)


def build_submission_embed(
    submission_id: str,
    username: str,
    score: int,
    passed: bool,
    answers: Mapping[str, str],
    questions: tuple[Question, ...] = QUESTIONS,
) -> hikari.Embed:
    embed = hikari.Embed(
        title=f"New Test Submission: {username}",
        description=f"**Response Sheet**\n{build_response_sheet(answers, questions)}",
        color=GREEN if passed else RED,
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(name="Score", value=f"{score}%", inline=True)
    embed.add_field(name="Passed", value="Yes" if passed else "No", inline=True)
    embed.add_field(name="Submission ID", value=submission_id, inline=True)
    return embed


def build_admin_summary(username: str, score: int, passed: bool, review_url: str) -> str:
    verdict = "passed" if passed else "failed"
    return (
        f"New test submission from **{username}**: {score}% ({verdict}).\n"
        f"Review it here: {review_url}"
    )


def make_custom_id(action: str, submission_id: str) -> str:
    return f"{action}{CUSTOM_ID_SEPARATOR}{submission_id}"


def parse_custom_id(custom_id: str) -> tuple[str, str] | None:
    """Split a review button id into (action, submission id).

    Returns None for ids that do not belong to review buttons.
    """
    action, sep, submission_id = custom_id.partition(CUSTOM_ID_SEPARATOR)
    if not sep or action not in REVIEW_ACTIONS or not submission_id:
        return None
    return action, submission_id


def build_review_row(submission_id: str) -> MessageActionRowBuilder:
    row = MessageActionRowBuilder()
    row.add_interactive_button(hikari.ButtonStyle.SUCCESS, make_custom_id("approve", submission_id), label="Approve")
    row.add_interactive_button(hikari.ButtonStyle.DANGER, make_custom_id("deny", submission_id), label="Deny")
    return row


def mark_embed_resolved(embed: hikari.Embed, status: str, resolved_by: str) -> hikari.Embed:
    """Annotate a notification embed with its outcome."""
    embed.add_field(name="Status", value=f"marked as {status} by {resolved_by}")
    embed.color = GREEN if status == "approved" else RED
    return embed
