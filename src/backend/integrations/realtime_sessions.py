"""
Realtime sessions: ephemeral client secrets for browser voice clients.

A browser talks to the Realtime API directly with a short-lived secret
minted here, so the server's API key never reaches the client.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from openai import AsyncOpenAI

from api.middleware.exception_handlers import ExternalServiceError
from utils.logger import logger


@dataclass(frozen=True, slots=True)
class RealtimeSecret:
    value: str
    expires_at: int | None
    model: str
    voice: str


class RealtimeSessionClient:
    def __init__(self, client: AsyncOpenAI, model: str, voice: str):
        self._client = client
        self.model = model
        self.voice = voice

    async def create_secret(self) -> RealtimeSecret:
        """Mint one ephemeral secret for a realtime session.

        Raises:
            openai.APIError: Provider rejected the request
            ExternalServiceError: Transport failure
        """
        try:
            response = await self._client.realtime.client_secrets.create(
                session={
                    "type": "realtime",
                    "model": self.model,
                    "audio": {"output": {"voice": self.voice}},
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"Realtime session request failed: {type(e).__name__}: {e}", exc_info=True)
            raise ExternalServiceError("OpenAI", "Failed to create realtime session", cause=e) from e

        logger.info("Created realtime session secret", realtime_model=self.model)
        return RealtimeSecret(
            value=response.value,
            expires_at=response.expires_at,
            model=self.model,
            voice=self.voice,
        )


__all__ = ["RealtimeSecret", "RealtimeSessionClient"]
