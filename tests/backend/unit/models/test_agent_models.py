"""Tests for the supervisor pipeline contracts."""

from __future__ import annotations

import dataclasses

import pytest

from pydantic import ValidationError

from models.agent_models import (
    AgentResult,
    AudioMetadata,
    AudioTranscriptionMetadata,
    BatchAudioInput,
    ProcessingMode,
    RoutingDecision,
    SingleAudioInput,
    SupervisorMetadata,
    TextInput,
)


class TestProcessingMode:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("sequential", ProcessingMode.SEQUENTIAL),
            ("PARALLEL", ProcessingMode.PARALLEL),
            (" merged ", ProcessingMode.MERGED),
            (ProcessingMode.MERGED, ProcessingMode.MERGED),
            (None, ProcessingMode.SEQUENTIAL),
            ("turbo", ProcessingMode.SEQUENTIAL),
        ],
    )
    def test_parse(self, value: str | None, expected: ProcessingMode) -> None:
        assert ProcessingMode.parse(value) is expected

    def test_parse_with_default(self) -> None:
        assert ProcessingMode.parse("turbo", default=ProcessingMode.MERGED) is ProcessingMode.MERGED
        assert ProcessingMode.parse(None, default=ProcessingMode.PARALLEL) is ProcessingMode.PARALLEL


class TestInputs:
    def test_input_type_tags(self) -> None:
        assert TextInput.input_type == "text"
        assert SingleAudioInput.input_type == "audio"
        assert BatchAudioInput.input_type == "batch_audio"

    def test_single_audio_defaults(self) -> None:
        audio = SingleAudioInput(audio=b"abc")
        assert audio.mime_type == "audio/webm"
        assert audio.metadata.to_dict() == {}

    def test_inputs_are_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            TextInput(text="a").text = "b"  # type: ignore[misc]

    def test_audio_metadata_drops_unset(self) -> None:
        assert AudioMetadata(duration=2.0, channels=1).to_dict() == {"duration": 2.0, "channels": 1}


class TestRoutingDecision:
    def test_strips_query(self) -> None:
        assert RoutingDecision(route="rag", query="  q  ").query == "q"

    @pytest.mark.parametrize("payload", [{"route": "web", "query": "q"}, {"route": "direct", "query": " "}])
    def test_invalid(self, payload: dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            RoutingDecision.model_validate(payload)


def test_supervisor_metadata_payload_uses_camel_case() -> None:
    metadata = SupervisorMetadata(
        routing_decision=RoutingDecision(route="direct", query="hi"),
        audio_transcription=AudioTranscriptionMetadata(
            audio_processed=True,
            audio_type="batch",
            chunks_count=3,
            processing_mode=ProcessingMode.PARALLEL,
        ),
        original_input_type="batch_audio",
        route_fallback=True,
    )

    assert metadata.to_payload() == {
        "routingDecision": {"route": "direct", "query": "hi"},
        "audioTranscription": {
            "audioProcessed": True,
            "audioType": "batch",
            "chunksCount": 3,
            "processingMode": "parallel",
        },
        "originalInputType": "batch_audio",
        "routeFallback": True,
    }


def test_agent_result_defaults() -> None:
    result = AgentResult(conversation_id="conv_1", agent="direct", text="hi")
    assert result.raw == {}
    assert result.supervisor_metadata is None
