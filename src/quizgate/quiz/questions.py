"""The staff assessment question bank.

This is the only copy of the answer key. Quiz rendering, scoring and the
Discord response sheet all read it from here.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    options: tuple[str, ...]
    correct: str


QUESTIONS: tuple[Question, ...] = (
    Question(
        id="q1",
        text="A user creates a roster ticket with the message: 'I want to join the team, what should I do?'",
        options=(
            "Hello, what is your age and how may I assist you today? "
            "Please review the requirements and choose a roster.",
            "Sup how did you find us?",
            "Hey, someone else would be helping you.",
            "I accepted your ticket, what do you need help with?",
        ),
        correct=(
            "Hello, what is your age and how may I assist you today? "
            "Please review the requirements and choose a roster."
        ),
    ),
    Question(
        id="q2",
        text="A user submits an application for Pro or Semi-Pro roster position.",
        options=(
            "Ping a fellow trial moderator.",
            "Give them the role they asked for.",
            "Request Fortnite tracker and earnings verification",
            "Choose to ignore and close their ticket.",
        ),
        correct="Request Fortnite tracker and earnings verification",
    ),
    Question(
        id="q3",
        text="An Academy roster applicant meets PR requirements.",
        options=(
            "Give them the role without verification.",
            "Verify Fortnite tracker authenticity and PR.",
            "Choose to ignore",
            "Ping high authority moderators.",
        ),
        correct="Verify Fortnite tracker authenticity and PR.",
    ),
    Question(
        id="q4",
        text="A user applies for Streamer or Content Creator position.",
        options=(
            "Ask their PR and tracker link.",
            "Choose to ignore / Close their ticket.",
            "Ping @Creative Department.",
            "Ask for socials and check their content & follower requirements.",
        ),
        correct="Ask for socials and check their content & follower requirements.",
    ),
    Question(
        id="q5",
        text="A GFX/VFX applicant submits their portfolio.",
        options=(
            "Give them role directly.",
            "Request portfolio and proof of work & ping @GFX/VFX Lead.",
            "Ignore their request.",
            "Ping @Content Department.",
        ),
        correct="Request portfolio and proof of work & ping @GFX/VFX Lead.",
    ),
    Question(
        id="q6",
        text="A Creative roster applicant provides freebuilding clips.",
        options=(
            "Ping @Content Department",
            "Request portfolio and give them roles directly.",
            "Ignore their request.",
            "Ask for 2-3 clips including one freebuild. After sending, ping @Creative Department.",
        ),
        correct="Ask for 2-3 clips including one freebuild. After sending, ping @Creative Department.",
    ),
    Question(
        id="q7",
        text="A Grinder applicant seeks representation.",
        options=(
            "Ask them to include Void in their username. Use the creator code Team.Void in shop. Verify them.",
            "Give a 12 year old grinder directly.",
            "Ignore their request.",
            "Ping higher authority moderators.",
        ),
        correct="Ask them to include Void in their username. Use the creator code Team.Void in shop. Verify them.",
    ),
)


def answer_key(questions: tuple[Question, ...] = QUESTIONS) -> dict[str, str]:
    """Map question id to the correct answer text, in bank order."""
    return {q.id: q.correct for q in questions}
