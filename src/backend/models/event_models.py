"""
Stream event models for Agent Relay.

One request produces an ordered sequence of these events:
conversation, [transcript], text_delta*, final, done. A failure at any
stage ends the sequence with a single error event instead of done.
The same models back the SSE endpoint and the WebSocket endpoint.
"""

from __future__ import annotations

import json

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from core.constants import (
    EVENT_CONVERSATION,
    EVENT_DONE,
    EVENT_ERROR,
    EVENT_FINAL,
    EVENT_TEXT_DELTA,
    EVENT_TRANSCRIPT,
)

EventName = Literal["conversation", "transcript", "text_delta", "final", "error", "done"]

#: Events after which nothing else is emitted
TERMINAL_EVENTS: frozenset[str] = frozenset({EVENT_ERROR, EVENT_DONE})


class StreamEvent(BaseModel):
    """Base for every event of the streaming protocol."""

    model_config = ConfigDict(frozen=True)

    event: EventName

    def data(self) -> dict[str, Any]:
        """Event payload without the event name."""
        return self.model_dump(mode="json", exclude={"event"}, exclude_none=True, by_alias=True)

    @property
    def is_terminal(self) -> bool:
        return self.event in TERMINAL_EVENTS

    def to_sse(self) -> str:
        """Frame as a Server-Sent Event."""
        return f"event: {self.event}\ndata: {json.dumps(self.data(), ensure_ascii=False)}\n\n"

    def to_message(self) -> dict[str, Any]:
        """Frame as a WebSocket JSON message."""
        return {"event": self.event, "data": self.data()}


class ConversationEvent(StreamEvent):
    event: Literal["conversation"] = EVENT_CONVERSATION
    conversationId: str


class TranscriptEvent(StreamEvent):
    event: Literal["transcript"] = EVENT_TRANSCRIPT
    text: str
    audioType: Literal["single", "batch"]


class TextDeltaEvent(StreamEvent):
    event: Literal["text_delta"] = EVENT_TEXT_DELTA
    text: str


class FinalEvent(StreamEvent):
    event: Literal["final"] = EVENT_FINAL
    conversationId: str
    text: str
    agent: str
    routingDecision: dict[str, Any] | None = None


class ErrorEvent(StreamEvent):
    event: Literal["error"] = EVENT_ERROR
    error: str
    code: str | None = None


class DoneEvent(StreamEvent):
    event: Literal["done"] = EVENT_DONE


AnyStreamEvent = ConversationEvent | TranscriptEvent | TextDeltaEvent | FinalEvent | ErrorEvent | DoneEvent


__all__ = [
    "TERMINAL_EVENTS",
    "AnyStreamEvent",
    "ConversationEvent",
    "DoneEvent",
    "ErrorEvent",
    "EventName",
    "FinalEvent",
    "StreamEvent",
    "TextDeltaEvent",
    "TranscriptEvent",
]
