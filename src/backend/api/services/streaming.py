"""
Streaming Coordinator.

Runs the supervisor stages one at a time and reports each as a stream
event, so callers can render the transcript before generation starts:

    conversation -> [transcript] -> text_delta* -> final -> done

Any stage failure ends the sequence with exactly one ``error`` event and
no ``done``. Transports push events through an EventSink; once a write
fails (client went away) the sink goes quiet and pump() stops pulling,
which closes the generator and cancels the in-flight model run.
"""

from __future__ import annotations

import time

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field

from fastapi import WebSocket

from api.middleware.exception_handlers import AppException
from api.services.supervisor import Supervisor
from core.constants import ERROR_AUDIO_PROCESSING_FAILED, ERROR_NO_INPUT, ERROR_TEXT_PROCESSING_FAILED
from integrations.model_client import ModelStream
from models.agent_models import AgentInput, AgentParams, BatchAudioInput, SingleAudioInput, TextInput
from models.error_models import ErrorCode
from models.event_models import (
    ConversationEvent,
    DoneEvent,
    ErrorEvent,
    FinalEvent,
    StreamEvent,
    TextDeltaEvent,
    TranscriptEvent,
)
from utils.logger import logger


@dataclass(slots=True)
class StreamRequest:
    """One streaming request as received from a transport."""

    input: AgentInput | str | None
    conversation_id: str | None = None
    params: AgentParams = field(default_factory=AgentParams)
    target_agent: str | None = None

    @property
    def is_audio(self) -> bool:
        return isinstance(self.input, SingleAudioInput | BatchAudioInput)

    @property
    def has_input(self) -> bool:
        match self.input:
            case None:
                return False
            case str():
                return bool(self.input.strip())
            case TextInput(text=text):
                return bool(text.strip())
            case _:
                return True


class EventSink:
    """Write side of a stream.

    The first failed write marks the sink closed; every later emit is a
    no-op returning False.
    """

    def __init__(self, send: Callable[[StreamEvent], Awaitable[None]]):
        self._send = send
        self.closed = False

    async def emit(self, event: StreamEvent) -> bool:
        if self.closed:
            return False
        try:
            await self._send(event)
        except Exception as e:
            logger.info(f"Stream consumer went away ({type(e).__name__}); dropping remaining events")
            self.closed = True
            return False
        return True


class WebSocketEventSink(EventSink):
    """Sends events as ``{"event": name, "data": {...}}`` JSON messages."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        super().__init__(self._send_json)

    async def _send_json(self, event: StreamEvent) -> None:
        await self.websocket.send_json(event.to_message())


class StreamingCoordinator:
    def __init__(self, supervisor: Supervisor):
        self._supervisor = supervisor

    async def events(self, request: StreamRequest) -> AsyncIterator[StreamEvent]:
        """Produce the ordered event sequence for one request.

        Never raises for stage failures; they become a single ErrorEvent.
        Closing the generator early cancels the model run.
        """
        started = time.monotonic()
        failure_message = ERROR_AUDIO_PROCESSING_FAILED if request.is_audio else ERROR_TEXT_PROCESSING_FAILED
        model_stream: ModelStream | None = None

        try:
            conversation_id = await self._supervisor.ensure_conversation(request.conversation_id)
            yield ConversationEvent(conversationId=conversation_id)

            if not request.has_input:
                yield ErrorEvent(error=ERROR_NO_INPUT, code=ErrorCode.VALIDATION_MISSING_FIELD.value)
                return

            normalized = await self._supervisor.normalize(request.input)  # type: ignore[arg-type]
            if normalized.was_audio:
                yield TranscriptEvent(
                    text=normalized.transcription.transcript or normalized.text,
                    audioType=normalized.transcription.audio_type,
                )

            decision, agent, fallback = await self._supervisor.decide(
                normalized.text, request.params, request.target_agent
            )
            model_stream = agent.stream(conversation_id, decision.query, request.params)

            final_text = ""
            async for event in model_stream:
                if event.type == "text_delta":
                    yield TextDeltaEvent(text=event.data)
                else:
                    final_text = event.data

            yield FinalEvent(
                conversationId=conversation_id,
                text=final_text,
                agent=agent.name,
                routingDecision=decision.model_dump(mode="json"),
            )
        except Exception as e:
            code = e.code.value if isinstance(e, AppException) else ErrorCode.INTERNAL_ERROR.value
            logger.error(f"{failure_message}: {e}", error_code=code, exc_info=True)
            yield ErrorEvent(error=failure_message, code=code)
            return
        finally:
            if model_stream is not None:
                model_stream.cancel()

        logger.log_agent_turn(
            user_input=normalized.text,
            response=final_text,
            input_type=normalized.original_input_type,
            agent=agent.name,
            conversation_id=conversation_id,
            duration_ms=(time.monotonic() - started) * 1000,
            streamed=True,
            route_fallback=fallback,
        )
        yield DoneEvent()

    async def pump(self, events: AsyncIterator[StreamEvent], sink: EventSink) -> int:
        """Forward events to a sink until the stream ends or the sink closes.

        Returns:
            Number of events delivered
        """
        delivered = 0
        try:
            async for event in events:
                if not await sink.emit(event):
                    break
                delivered += 1
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()
        return delivered

    async def stream_to(self, request: StreamRequest, sink: EventSink) -> int:
        return await self.pump(self.events(request), sink)


__all__ = ["EventSink", "StreamRequest", "StreamingCoordinator", "WebSocketEventSink"]
