"""Shared FastAPI dependencies.

Long-lived handles are built in the app lifespan and kept on ``app.state``;
these accessors hand them to routes.
"""

from fastapi import Request

from quizgate.auth.oauth import DiscordOAuthClient
from quizgate.auth.sessions import SessionStore
from quizgate.discord.notifier import DiscordNotifier


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_oauth_client(request: Request) -> DiscordOAuthClient:
    return request.app.state.oauth_client


def get_notifier(request: Request) -> DiscordNotifier:
    return request.app.state.discord.notifier
