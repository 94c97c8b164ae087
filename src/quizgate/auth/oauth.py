"""Discord OAuth2 authorization-code client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from quizgate.config import Settings

logger = structlog.get_logger()

DISCORD_API_BASE = "https://discord.com/api/v10"
AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
TOKEN_URL = f"{DISCORD_API_BASE}/oauth2/token"
CDN_BASE = "https://cdn.discordapp.com"
SCOPES = ("identify",)


class OAuthError(Exception):
    """The provider handshake failed. The caller should not retry."""


@dataclass(frozen=True)
class DiscordProfile:
    """The subset of /users/@me that identities are built from."""

    id: str
    username: str
    discriminator: str | None = None
    avatar: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DiscordProfile:
        try:
            return cls(
                id=str(payload["id"]),
                username=str(payload["username"]),
                discriminator=payload.get("discriminator"),
                avatar=payload.get("avatar"),
            )
        except KeyError as e:
            msg = f"Profile is missing {e.args[0]}"
            raise OAuthError(msg) from e

    @property
    def avatar_url(self) -> str | None:
        if not self.avatar:
            return None
        return f"{CDN_BASE}/avatars/{self.id}/{self.avatar}.png"


class DiscordOAuthClient:
    """Builds the authorize redirect and turns a callback code into a profile."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> DiscordOAuthClient:
        return cls(
            client_id=settings.discord_client_id,
            client_secret=settings.discord_client_secret,
            redirect_uri=settings.discord_redirect_uri,
            timeout=settings.oauth_timeout_seconds,
        )

    def authorize_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "prompt": "none",
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def fetch_profile(self, code: str) -> DiscordProfile:
        """Exchange an authorization code and fetch the user's profile.

        Raises:
            OAuthError: On any transport, HTTP status or payload problem.
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                token_resp = await client.post(
                    TOKEN_URL,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self.redirect_uri,
                    },
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                token_resp.raise_for_status()
                access_token = token_resp.json()["access_token"]

                me_resp = await client.get(
                    f"{DISCORD_API_BASE}/users/@me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                me_resp.raise_for_status()
                payload = me_resp.json()
            except httpx.HTTPStatusError as e:
                logger.warning("oauth_http_error", status=e.response.status_code, url=str(e.request.url))
                msg = f"Discord returned {e.response.status_code}"
                raise OAuthError(msg) from e
            except httpx.HTTPError as e:
                logger.warning("oauth_transport_error", error=str(e))
                msg = "Could not reach Discord"
                raise OAuthError(msg) from e
            except (KeyError, ValueError) as e:
                msg = "Malformed token response"
                raise OAuthError(msg) from e

        return DiscordProfile.from_payload(payload)
