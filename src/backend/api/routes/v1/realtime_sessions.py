"""
Realtime session endpoint (v1).

Mints an ephemeral client secret so a browser can open a voice session
with the Realtime API directly.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import RealtimeSessionsDep
from models.schemas.chat import ClientSecret, RealtimeSessionResponse

router = APIRouter()


@router.post(
    "/session",
    response_model=RealtimeSessionResponse,
    summary="Create realtime session",
    description="Create an ephemeral client secret for one Realtime API session.",
    responses={502: {"description": "Provider rejected the request"}},
)
async def create_session(realtime_sessions: RealtimeSessionsDep) -> RealtimeSessionResponse:
    secret = await realtime_sessions.create_secret()
    return RealtimeSessionResponse(
        client_secret=ClientSecret(value=secret.value, expires_at=secret.expires_at),
        model=secret.model,
        voice=secret.voice,
    )
