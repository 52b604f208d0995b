"""
Typed contracts for the supervisor pipeline.

Inputs are a closed union of frozen dataclasses (text, single audio, batch
audio) dispatched by pattern matching. Results and provenance metadata are
pydantic models so they serialize straight into API responses.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.constants import (
    DEFAULT_AUDIO_MIME_TYPE,
    PROCESSING_MODE_MERGED,
    PROCESSING_MODE_PARALLEL,
    PROCESSING_MODE_SEQUENTIAL,
)

# ============================================================================
# Inputs
# ============================================================================


class ProcessingMode(str, Enum):
    """Policy for combining batch audio chunks into one transcript."""

    SEQUENTIAL = PROCESSING_MODE_SEQUENTIAL
    PARALLEL = PROCESSING_MODE_PARALLEL
    MERGED = PROCESSING_MODE_MERGED

    @classmethod
    def parse(cls, value: str | ProcessingMode | None, default: ProcessingMode | None = None) -> ProcessingMode:
        """Resolve a mode name, falling back to ``default`` (sequential) when absent or unknown."""
        fallback = default or cls.SEQUENTIAL
        if value is None:
            return fallback
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return fallback


@dataclass(frozen=True, slots=True)
class AudioMetadata:
    """Optional descriptive properties of an audio buffer."""

    duration: float | None = None
    sample_rate: int | None = None
    channels: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True, slots=True)
class TextInput:
    """Plain text input."""

    input_type: ClassVar[str] = "text"

    text: str


@dataclass(frozen=True, slots=True)
class SingleAudioInput:
    """One recorded audio clip.

    ``prompt`` is optional typed text sent alongside the recording; it is
    placed ahead of the transcript.
    """

    input_type: ClassVar[str] = "audio"

    audio: bytes
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    metadata: AudioMetadata = field(default_factory=AudioMetadata)
    prompt: str | None = None


@dataclass(frozen=True, slots=True)
class AudioChunk:
    """One chunk of a batch.

    ``timestamp`` is informational; chunk order is the position in the batch.
    """

    audio: bytes
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
    timestamp: float | None = None
    metadata: AudioMetadata | None = None


@dataclass(frozen=True, slots=True)
class BatchMetadata:
    total_duration: float | None = None
    processing_mode: ProcessingMode = ProcessingMode.SEQUENTIAL


@dataclass(frozen=True, slots=True)
class BatchAudioInput:
    """Ordered audio chunks combined under one processing mode."""

    input_type: ClassVar[str] = "batch_audio"

    chunks: tuple[AudioChunk, ...]
    batch_metadata: BatchMetadata = field(default_factory=BatchMetadata)
    prompt: str | None = None


AgentInput = TextInput | SingleAudioInput | BatchAudioInput


@dataclass(frozen=True, slots=True)
class AgentParams:
    """Per-request options forwarded to the sub-agents."""

    vector_store_ids: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)


OriginalInputType = Literal["text", "audio", "batch_audio"]


# ============================================================================
# Routing and results
# ============================================================================

Route = Literal["direct", "rag"]


class RoutingDecision(BaseModel):
    """Destination sub-agent and the query forwarded to it."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    route: Route
    query: str = Field(..., min_length=1)


class _CamelModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AudioTranscriptionMetadata(_CamelModel):
    """How (and whether) audio was turned into text. Descriptive only."""

    audio_processed: bool
    audio_type: Literal["single", "batch"] | None = None
    mime_type: str | None = None
    metadata: dict[str, Any] | None = None
    chunks_count: int | None = None
    processing_mode: ProcessingMode | None = None
    total_duration: float | None = None
    transcript: str | None = None

class SupervisorMetadata(_CamelModel):
    """Provenance attached to supervisor results."""

    routing_decision: RoutingDecision
    audio_transcription: AudioTranscriptionMetadata
    original_input_type: OriginalInputType
    route_fallback: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AgentResult(BaseModel):
    """Outcome of one agent run.

    ``raw`` is an opaque description of the provider response.
    ``supervisor_metadata`` is only set on supervisor-produced results.
    """

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    agent: str
    text: str
    raw: dict[str, Any] = Field(default_factory=dict)
    supervisor_metadata: SupervisorMetadata | None = None


@dataclass(frozen=True, slots=True)
class NormalizedInput:
    """Text produced from any input variant plus how it was produced."""

    text: str
    transcription: AudioTranscriptionMetadata
    original_input_type: OriginalInputType

    @property
    def was_audio(self) -> bool:
        return self.transcription.audio_processed


__all__ = [
    "AgentInput",
    "AgentParams",
    "AgentResult",
    "AudioChunk",
    "AudioMetadata",
    "AudioTranscriptionMetadata",
    "BatchAudioInput",
    "BatchMetadata",
    "NormalizedInput",
    "OriginalInputType",
    "ProcessingMode",
    "Route",
    "RoutingDecision",
    "SingleAudioInput",
    "SupervisorMetadata",
    "TextInput",
]
