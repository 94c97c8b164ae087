"""Approve/Deny button handling for review messages."""

from __future__ import annotations

import asyncio
from collections.abc import Collection
from typing import TYPE_CHECKING

import hikari
import structlog

from quizgate.auth.service import get_identity
from quizgate.discord.embeds import parse_custom_id
from quizgate.review.service import (
    SubmissionAlreadyResolvedError,
    SubmissionNotFoundError,
    resolve_submission,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from quizgate.discord.notifier import DiscordNotifier

logger = structlog.get_logger()


async def _can_review(
    db: AsyncSession,
    interaction: hikari.ComponentInteraction,
    reviewer_role_ids: Collection[str],
) -> bool:
    if not reviewer_role_ids:
        return True
    member = interaction.member
    if member is not None and any(str(role_id) in reviewer_role_ids for role_id in member.role_ids):
        return True
    identity = await get_identity(db, str(interaction.user.id))
    return identity is not None and identity.is_admin


async def handle_review_interaction(
    interaction: hikari.PartialInteraction,
    *,
    notifier: DiscordNotifier,
    session_factory: async_sessionmaker[AsyncSession],
    reviewer_role_ids: Collection[str] = (),
    timeout: float = 10.0,
) -> None:
    """Resolve a submission from a button click.

    Defers an ephemeral reply, runs the approval workflow, then edits the
    reply with the outcome. Clicks on unrelated components are ignored.
    """
    if not isinstance(interaction, hikari.ComponentInteraction):
        return
    parsed = parse_custom_id(interaction.custom_id)
    if parsed is None:
        return
    action, submission_id = parsed

    try:
        await asyncio.wait_for(
            interaction.create_initial_response(
                hikari.ResponseType.DEFERRED_MESSAGE_CREATE,
                flags=hikari.MessageFlag.EPHEMERAL,
            ),
            timeout=timeout,
        )
    except Exception:
        logger.warning("interaction_defer_failed", submission_id=submission_id, exc_info=True)
        return

    try:
        async with session_factory() as db:
            if not await _can_review(db, interaction, reviewer_role_ids):
                reply = "You are not allowed to review submissions."
            else:
                submission = await resolve_submission(
                    db,
                    notifier,
                    submission_id,
                    action,
                    reviewed_by=f"discord:{interaction.user.id}",
                    resolver_label=interaction.user.mention,
                    message=interaction.message,
                )
                reply = f"Submission {submission.status} successfully."
    except SubmissionNotFoundError:
        reply = "Submission not found."
    except SubmissionAlreadyResolvedError as e:
        reply = f"Submission was already {e.submission.status}."
    except Exception:
        logger.exception("interaction_failed", submission_id=submission_id, action=action)
        reply = "An error occurred processing this action."

    try:
        await asyncio.wait_for(interaction.edit_initial_response(reply), timeout=timeout)
    except Exception:
        logger.warning("interaction_reply_failed", submission_id=submission_id, exc_info=True)
