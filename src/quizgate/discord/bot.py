"""Discord gateway bot lifecycle."""

from __future__ import annotations

import asyncio

import hikari
import structlog

from quizgate.config import Settings
from quizgate.database import get_session_factory
from quizgate.discord.interactions import handle_review_interaction
from quizgate.discord.notifier import DiscordNotifier

logger = structlog.get_logger()

INTENTS = hikari.Intents.GUILDS | hikari.Intents.GUILD_MEMBERS | hikari.Intents.GUILD_MESSAGES


class DiscordBot:
    """Owns the gateway connection and the notifier that uses its REST client.

    Built and started by the app lifespan. Without a bot token, or if login
    fails, the notifier stays disabled and the rest of the app keeps working.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.notifier = DiscordNotifier.from_settings(settings)
        self.bot: hikari.GatewayBot | None = None
        if settings.bot_configured:
            self.bot = hikari.GatewayBot(settings.discord_bot_token, intents=INTENTS, banner=None, logs=None)
            self.bot.subscribe(hikari.InteractionCreateEvent, self.on_interaction)

    @property
    def ready(self) -> bool:
        return self.notifier.enabled

    async def start(self) -> None:
        if self.bot is None:
            logger.warning("discord_bot_disabled", reason="QUIZGATE_DISCORD_BOT_TOKEN not set")
            return
        timeout = self.settings.discord_login_timeout_seconds
        try:
            await asyncio.wait_for(self.bot.start(), timeout=timeout)
        except TimeoutError:
            logger.error("discord_bot_login_timeout", timeout_seconds=timeout)
            return
        except Exception:
            logger.exception("discord_bot_login_failed")
            return
        self.notifier.rest = self.bot.rest
        me = self.bot.get_me()
        logger.info("discord_bot_ready", user=str(me) if me else None)

    async def close(self) -> None:
        self.notifier.rest = None
        if self.bot is not None and self.bot.is_alive:
            await self.bot.close()

    async def on_interaction(self, event: hikari.InteractionCreateEvent) -> None:
        await handle_review_interaction(
            event.interaction,
            notifier=self.notifier,
            session_factory=get_session_factory(),
            reviewer_role_ids=self.settings.discord_reviewer_role_ids,
            timeout=self.settings.discord_timeout_seconds,
        )
