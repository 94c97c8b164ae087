"""
Discord side effects for the review flow.

Every call here is best-effort: it runs under a timeout, is never retried,
and a failure is logged and swallowed. Callers treat the database as the
source of truth and these effects as fire-and-forget.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TYPE_CHECKING, TypeVar

import hikari
import structlog

from quizgate.discord.embeds import (
    build_admin_summary,
    build_review_row,
    build_submission_embed,
    mark_embed_resolved,
)

if TYPE_CHECKING:
    from quizgate.config import Settings
    from quizgate.db.models import Identity, Submission

logger = structlog.get_logger()

T = TypeVar("T")

APPROVED_DM = "Congratulations! Your submission has been approved and you have been given the Verified Staff role."
DENIED_DM = "Your submission has been denied."


class DiscordNotifier:
    """Posts review notifications, grants roles and sends DMs through the Discord REST API.

    ``rest`` stays None until the bot has connected; while it is None every
    operation is a logged no-op.
    """

    def __init__(
        self,
        rest: hikari.api.RESTClient | None = None,
        *,
        guild_id: str = "",
        channel_id: str = "",
        role_ids: Iterable[str] = (),
        timeout: float = 10.0,
        role_grant_delay: float = 0.5,
        review_url: str = "",
    ) -> None:
        self.rest = rest
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.role_ids = list(role_ids)
        self.timeout = timeout
        self.role_grant_delay = role_grant_delay
        self.review_url = review_url

    @classmethod
    def from_settings(cls, settings: Settings, rest: hikari.api.RESTClient | None = None) -> DiscordNotifier:
        return cls(
            rest,
            guild_id=settings.discord_guild_id,
            channel_id=settings.discord_channel_id,
            role_ids=settings.discord_role_ids,
            timeout=settings.discord_timeout_seconds,
            role_grant_delay=settings.role_grant_delay_seconds,
            review_url=f"{settings.public_base_url.rstrip('/')}/admin",
        )

    @property
    def enabled(self) -> bool:
        return self.rest is not None

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    # ------------------------------------------------------------------
    # New submission fan-out
    # ------------------------------------------------------------------

    async def notify_submission(
        self,
        submission: Submission,
        identity: Identity,
        admins: Iterable[Identity] = (),
    ) -> hikari.Message | None:
        """Post the review message to the channel and DM every admin.

        Returns the channel message, or None if it could not be posted.
        """
        if self.rest is None:
            logger.debug("discord_disabled", op="notify_submission", submission_id=submission.id)
            return None

        message = await self.post_review_message(submission, identity)
        summary = build_admin_summary(identity.username, submission.score, submission.passed, self.review_url)
        for admin in admins:
            await self.send_dm(admin.id, summary)
        return message

    async def post_review_message(self, submission: Submission, identity: Identity) -> hikari.Message | None:
        if self.rest is None or not self.channel_id:
            return None
        embed = build_submission_embed(
            submission.id,
            identity.username,
            submission.score,
            submission.passed,
            submission.answers,
        )
        try:
            message = await self._call(
                self.rest.create_message(
                    hikari.Snowflake(self.channel_id),
                    embed=embed,
                    components=[build_review_row(submission.id)],
                )
            )
        except Exception:
            logger.exception("review_message_failed", submission_id=submission.id, channel_id=self.channel_id)
            return None
        logger.info("review_message_posted", submission_id=submission.id, message_id=str(message.id))
        return message

    # ------------------------------------------------------------------
    # Review outcome effects
    # ------------------------------------------------------------------

    async def send_dm(self, user_id: str, content: str) -> bool:
        if self.rest is None:
            return False
        try:
            channel = await self._call(self.rest.create_dm_channel(hikari.Snowflake(user_id)))
            await self._call(self.rest.create_message(channel, content))
        except Exception:
            # Usually the user has DMs closed
            logger.warning("dm_failed", user_id=user_id, exc_info=True)
            return False
        return True

    async def grant_roles(self, user_id: str) -> list[str]:
        """Add every configured role to the member, one at a time.

        Returns the role ids that were granted.
        """
        if self.rest is None or not self.guild_id:
            return []

        granted: list[str] = []
        for index, role_id in enumerate(self.role_ids):
            if index and self.role_grant_delay > 0:
                await asyncio.sleep(self.role_grant_delay)
            try:
                await self._call(
                    self.rest.add_role_to_member(
                        hikari.Snowflake(self.guild_id),
                        hikari.Snowflake(user_id),
                        hikari.Snowflake(role_id),
                        reason="Quiz submission approved",
                    )
                )
            except Exception:
                logger.warning("role_grant_failed", user_id=user_id, role_id=role_id, exc_info=True)
                continue
            granted.append(role_id)

        logger.info("roles_granted", user_id=user_id, granted=granted, configured=len(self.role_ids))
        return granted

    async def mark_resolved(
        self,
        submission: Submission,
        resolved_by: str,
        message: hikari.Message | None = None,
    ) -> bool:
        """Annotate the review message with the outcome and remove its buttons."""
        if self.rest is None:
            return False
        try:
            if message is None:
                if not (submission.notification_channel_id and submission.notification_message_id):
                    return False
                message = await self._call(
                    self.rest.fetch_message(
                        hikari.Snowflake(submission.notification_channel_id),
                        hikari.Snowflake(submission.notification_message_id),
                    )
                )
            embeds = list(message.embeds)
            if embeds:
                mark_embed_resolved(embeds[0], submission.status, resolved_by)
            await self._call(
                self.rest.edit_message(message.channel_id, message.id, embeds=embeds, components=[])
            )
        except Exception:
            logger.warning("review_message_edit_failed", submission_id=submission.id, exc_info=True)
            return False
        return True

    async def apply_outcome(
        self,
        submission: Submission,
        resolved_by: str,
        message: hikari.Message | None = None,
    ) -> None:
        """Run the role/DM/message effects for a freshly resolved submission."""
        if submission.status == "approved":
            await self.grant_roles(submission.identity_id)
            await self.send_dm(submission.identity_id, APPROVED_DM)
        else:
            await self.send_dm(submission.identity_id, DENIED_DM)
        await self.mark_resolved(submission, resolved_by, message=message)
