"""
Chat and realtime session API schemas.

``/chat`` is a direct model call outside the supervisor: no routing,
no audio. Context is chained through response ids rather than
conversations.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "input": "Summarize the onboarding guide",
                "vectorStoreId": "vs_123",
                "previousResponseId": "resp_abc",
            }
        },
    )

    input: str | list[dict[str, Any]] | None = Field(
        default=None,
        description="Text, or a list of Responses API input items",
    )
    vectorStoreId: str | None = Field(default=None, description="Vector store searched with the file search tool")
    previousResponseId: str | None = Field(default=None, description="Response to continue from")
    threadId: str | None = Field(default=None, description="Caller's own session id, echoed back")


class ChatResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "responseId": "resp_def",
                "text": "The guide covers VPN setup and laptop provisioning.",
                "raw": {"response_id": "resp_def", "agent": "chat"},
            }
        }
    )

    responseId: str | None = None
    text: str
    threadId: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class ClientSecret(BaseModel):
    value: str
    expires_at: int | None = None


class RealtimeSessionResponse(BaseModel):
    """Ephemeral credentials for one browser Realtime API session."""

    client_secret: ClientSecret
    model: str
    voice: str


__all__ = ["ChatRequest", "ChatResponse", "ClientSecret", "RealtimeSessionResponse"]
