"""Tests for the streaming coordinator and event sinks."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, Mock

import pytest

from api.middleware.exception_handlers import TranscriptionFailedError, UnknownAgentError
from api.services.streaming import EventSink, StreamingCoordinator, StreamRequest, WebSocketEventSink
from integrations.model_client import ModelEvent
from models.agent_models import (
    AgentParams,
    AudioChunk,
    AudioTranscriptionMetadata,
    BatchAudioInput,
    NormalizedInput,
    RoutingDecision,
    SingleAudioInput,
    TextInput,
)
from models.event_models import DoneEvent, StreamEvent


class FakeModelStream:
    """Replays model events; optionally raises after replaying them."""

    def __init__(self, events: list[ModelEvent], error: Exception | None = None):
        self._events = events
        self._error = error
        self.cancel = Mock()

    def __aiter__(self) -> AsyncIterator[ModelEvent]:
        return self._replay()

    async def _replay(self) -> AsyncIterator[ModelEvent]:
        for event in self._events:
            yield event
        if self._error is not None:
            raise self._error


def _text(value: str) -> NormalizedInput:
    return NormalizedInput(
        text=value,
        transcription=AudioTranscriptionMetadata(audio_processed=False),
        original_input_type="text",
    )


def _transcribed(value: str, audio_type: str = "single") -> NormalizedInput:
    return NormalizedInput(
        text=value,
        transcription=AudioTranscriptionMetadata(audio_processed=True, audio_type=audio_type),
        original_input_type="audio" if audio_type == "single" else "batch_audio",
    )


async def _collect(events: AsyncIterator[StreamEvent]) -> list[StreamEvent]:
    return [event async for event in events]


def _names(events: list[StreamEvent]) -> list[str]:
    return [event.event for event in events]


@pytest.fixture
def model_stream() -> FakeModelStream:
    return FakeModelStream(
        [
            ModelEvent(type="text_delta", data="Hi"),
            ModelEvent(type="text_delta", data=" there"),
            ModelEvent(type="final", data="Hi there"),
        ]
    )


@pytest.fixture
def agent(model_stream: FakeModelStream) -> Mock:
    sub_agent = Mock()
    sub_agent.name = "direct"
    sub_agent.stream = Mock(return_value=model_stream)
    return sub_agent


@pytest.fixture
def supervisor(agent: Mock) -> Mock:
    sup = Mock()
    sup.ensure_conversation = AsyncMock(return_value="conv_1")
    sup.normalize = AsyncMock(return_value=_text("Hello"))
    sup.decide = AsyncMock(return_value=(RoutingDecision(route="direct", query="Hello"), agent, False))
    return sup


@pytest.fixture
def coordinator(supervisor: Mock) -> StreamingCoordinator:
    return StreamingCoordinator(supervisor)


class TestStreamRequest:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, False),
            ("", False),
            ("   ", False),
            (TextInput(text=" "), False),
            ("Hello", True),
            (TextInput(text="Hello"), True),
            (SingleAudioInput(audio=b"a"), True),
        ],
    )
    def test_has_input(self, value: object, expected: bool) -> None:
        assert StreamRequest(input=value).has_input is expected  # type: ignore[arg-type]

    def test_is_audio(self) -> None:
        assert StreamRequest(input=SingleAudioInput(audio=b"a")).is_audio is True
        assert StreamRequest(input=BatchAudioInput(chunks=(AudioChunk(audio=b"a"),))).is_audio is True
        assert StreamRequest(input="Hello").is_audio is False


class TestEvents:
    @pytest.mark.asyncio
    async def test_text_sequence(
        self,
        coordinator: StreamingCoordinator,
        supervisor: Mock,
        agent: Mock,
        model_stream: FakeModelStream,
    ) -> None:
        params = AgentParams(vector_store_ids=("vs_1",))
        events = await _collect(coordinator.events(StreamRequest(input="Hello", params=params)))

        assert _names(events) == ["conversation", "text_delta", "text_delta", "final", "done"]
        assert events[0].data() == {"conversationId": "conv_1"}
        assert [e.data()["text"] for e in events[1:3]] == ["Hi", " there"]
        assert events[3].data() == {
            "conversationId": "conv_1",
            "text": "Hi there",
            "agent": "direct",
            "routingDecision": {"route": "direct", "query": "Hello"},
        }
        supervisor.decide.assert_awaited_once_with("Hello", params, None)
        agent.stream.assert_called_once_with("conv_1", "Hello", params)
        model_stream.cancel.assert_called_once()

    @pytest.mark.asyncio
    async def test_audio_sequence_has_transcript_before_deltas(
        self, coordinator: StreamingCoordinator, supervisor: Mock
    ) -> None:
        supervisor.normalize.return_value = _transcribed("what is the vpn policy")

        events = await _collect(coordinator.events(StreamRequest(input=SingleAudioInput(audio=b"a"))))

        assert _names(events) == ["conversation", "transcript", "text_delta", "text_delta", "final", "done"]
        assert events[1].data() == {"text": "what is the vpn policy", "audioType": "single"}

    @pytest.mark.asyncio
    async def test_transcript_event_carries_only_what_was_heard(
        self, coordinator: StreamingCoordinator, supervisor: Mock
    ) -> None:
        supervisor.normalize.return_value = NormalizedInput(
            text="Summarize\n\n[Audio transcript]: buy milk",
            transcription=AudioTranscriptionMetadata(audio_processed=True, audio_type="single", transcript="buy milk"),
            original_input_type="audio",
        )

        events = await _collect(
            coordinator.events(StreamRequest(input=SingleAudioInput(audio=b"a", prompt="Summarize")))
        )

        assert events[1].data() == {"text": "buy milk", "audioType": "single"}
        assert supervisor.decide.await_args.args[0] == "Summarize\n\n[Audio transcript]: buy milk"

    @pytest.mark.asyncio
    async def test_target_agent_forwarded(self, coordinator: StreamingCoordinator, supervisor: Mock) -> None:
        await _collect(coordinator.events(StreamRequest(input="Hello", target_agent="direct")))
        assert supervisor.decide.await_args.args[2] == "direct"

    @pytest.mark.asyncio
    async def test_transcription_failure_is_single_error(
        self, coordinator: StreamingCoordinator, supervisor: Mock, agent: Mock
    ) -> None:
        supervisor.normalize.side_effect = TranscriptionFailedError()

        events = await _collect(coordinator.events(StreamRequest(input=SingleAudioInput(audio=b"a"))))

        assert _names(events) == ["conversation", "error"]
        assert events[1].data() == {"error": "Audio processing failed", "code": "AUD_10001"}
        agent.stream.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_failure_message(self, coordinator: StreamingCoordinator, supervisor: Mock) -> None:
        supervisor.decide.side_effect = UnknownAgentError("web")

        events = await _collect(coordinator.events(StreamRequest(input="Hello", target_agent="web")))

        assert _names(events) == ["conversation", "error"]
        assert events[1].data() == {"error": "Text processing failed", "code": "AGT_11005"}

    @pytest.mark.asyncio
    async def test_generation_failure_after_deltas(
        self, coordinator: StreamingCoordinator, agent: Mock
    ) -> None:
        broken = FakeModelStream([ModelEvent(type="text_delta", data="Hi")], error=RuntimeError("boom"))
        agent.stream.return_value = broken

        events = await _collect(coordinator.events(StreamRequest(input="Hello")))

        assert _names(events) == ["conversation", "text_delta", "error"]
        assert events[-1].data() == {"error": "Text processing failed", "code": "INT_9001"}
        broken.cancel.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, "", "  "])
    async def test_missing_input(self, coordinator: StreamingCoordinator, supervisor: Mock, value: object) -> None:
        events = await _collect(coordinator.events(StreamRequest(input=value)))  # type: ignore[arg-type]

        assert _names(events) == ["conversation", "error"]
        assert events[1].data() == {"error": "No input provided (text or audio)", "code": "VAL_2002"}
        supervisor.normalize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conversation_failure(self, coordinator: StreamingCoordinator, supervisor: Mock) -> None:
        supervisor.ensure_conversation.side_effect = RuntimeError("provider down")

        events = await _collect(coordinator.events(StreamRequest(input="Hello")))

        assert _names(events) == ["error"]


class TestPump:
    @pytest.mark.asyncio
    async def test_delivers_all_events(self, coordinator: StreamingCoordinator) -> None:
        send = AsyncMock()

        delivered = await coordinator.stream_to(StreamRequest(input="Hello"), EventSink(send))

        assert delivered == 5
        assert [call.args[0].event for call in send.await_args_list][-1] == "done"

    @pytest.mark.asyncio
    async def test_stops_when_consumer_goes_away(
        self, coordinator: StreamingCoordinator, model_stream: FakeModelStream
    ) -> None:
        send = AsyncMock(side_effect=[None, OSError("connection reset")])
        sink = EventSink(send)

        delivered = await coordinator.stream_to(StreamRequest(input="Hello"), sink)

        assert delivered == 1
        assert send.await_count == 2
        assert sink.closed is True
        model_stream.cancel.assert_called_once()


class TestEventSinks:
    @pytest.mark.asyncio
    async def test_closed_sink_drops_events(self) -> None:
        send = AsyncMock(side_effect=RuntimeError("closed"))
        sink = EventSink(send)

        assert await sink.emit(DoneEvent()) is False
        assert await sink.emit(DoneEvent()) is False
        send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_websocket_sink_frames_messages(self) -> None:
        websocket = Mock()
        websocket.send_json = AsyncMock()

        assert await WebSocketEventSink(websocket).emit(DoneEvent()) is True
        websocket.send_json.assert_awaited_once_with({"event": "done", "data": {}})
