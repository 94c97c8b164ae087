"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quizgate.auth.oauth import DiscordOAuthClient
from quizgate.auth.router import router as auth_router
from quizgate.auth.sessions import build_session_store
from quizgate.config import get_settings
from quizgate.database import close_db, init_db
from quizgate.discord.bot import DiscordBot
from quizgate.health.router import router as health_router
from quizgate.middleware import setup_middleware
from quizgate.quiz.router import router as quiz_router
from quizgate.review.router import router as review_router
from quizgate.submissions.router import router as submissions_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    app.state.session_store = build_session_store(settings)
    app.state.oauth_client = DiscordOAuthClient.from_settings(settings)
    app.state.discord = DiscordBot(settings)
    await app.state.discord.start()

    yield

    await app.state.discord.close()
    await app.state.session_store.close()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="quizgate",
        description="Discord-gated staff certification quiz with moderator review",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(quiz_router)
    app.include_router(submissions_router)
    app.include_router(review_router)

    return app


app = create_app()
