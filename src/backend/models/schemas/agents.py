"""
Agent API schemas.

Request/response models for the supervisor endpoints. Field names are
camelCase on the wire.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from models.agent_models import AgentResult, OriginalInputType


class SupervisorRequest(BaseModel):
    """JSON body for the supervisor endpoints (multipart uses the same field names)."""

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "input": "What does the onboarding guide say about VPN access?",
                "conversationId": "conv_abc123",
                "vectorStoreIds": ["vs_123"],
                "targetAgent": "supervisor",
            }
        },
    )

    input: str | None = Field(default=None, description="Text input")
    conversationId: str | None = Field(default=None, description="Existing conversation id (conv_*)")
    vectorStoreIds: list[str] | str | None = Field(
        default=None,
        description="Vector store ids for retrieval: array, JSON array string, or comma-separated string",
    )
    params: dict[str, Any] | str | None = Field(default=None, description="Extra agent parameters")
    targetAgent: str | None = Field(default=None, description="supervisor, direct or rag")
    processingMode: str | None = Field(default=None, description="Batch mode: sequential, parallel or merged")


class SupervisorResponse(BaseModel):
    """Result of a single-shot supervisor run."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "conversationId": "conv_abc123",
                "agent": "direct",
                "text": "Hello! How can I help?",
                "raw": {"response_id": "resp_1", "supervisorMetadata": {"originalInputType": "text"}},
                "audioProcessed": False,
                "originalInputType": "text",
            }
        }
    )

    conversationId: str
    agent: str
    text: str
    raw: dict[str, Any] = Field(default_factory=dict)
    audioProcessed: bool | None = None
    audioType: Literal["single", "batch"] | None = None
    originalInputType: OriginalInputType | None = None
    transcribedText: str | None = Field(default=None, description="What was heard, for audio input")

    @classmethod
    def from_result(cls, result: AgentResult) -> SupervisorResponse:
        metadata = result.supervisor_metadata
        if metadata is None:
            return cls(conversationId=result.conversation_id, agent=result.agent, text=result.text, raw=result.raw)
        return cls(
            conversationId=result.conversation_id,
            agent=result.agent,
            text=result.text,
            raw=result.raw,
            audioProcessed=metadata.audio_transcription.audio_processed,
            audioType=metadata.audio_transcription.audio_type,
            originalInputType=metadata.original_input_type,
            transcribedText=metadata.audio_transcription.transcript,
        )


class ConversationResponse(BaseModel):
    conversationId: str = Field(..., json_schema_extra={"example": "conv_abc123"})


class AgentInfo(BaseModel):
    name: str
    description: str


class AgentListResponse(BaseModel):
    """Registered agents, supervisor first."""

    agents: list[AgentInfo]


__all__ = [
    "AgentInfo",
    "AgentListResponse",
    "ConversationResponse",
    "SupervisorRequest",
    "SupervisorResponse",
]
