"""
Supervisor: the routing core.

A run goes through four stages, strictly in order:

1. normalize - text passes through; audio is transcribed (batches via AudioBatchProcessor)
2. classify  - the routing model picks ``direct`` or ``rag`` in a disposable conversation
3. dispatch  - the chosen sub-agent answers in the caller's conversation
4. assemble  - the result is extended with supervisor metadata

A caller may name a target agent to skip classification.
"""

from __future__ import annotations

import time

from collections.abc import Sequence
from typing import ClassVar

from api.middleware.exception_handlers import (
    EmptyTranscriptError,
    RoutingClassificationMalformedError,
    UnsupportedInputTypeError,
    ValidationException,
)
from api.middleware.request_context import update_request_context
from api.services.audio_batch import AudioBatchProcessor
from api.services.routing import heuristic_route, parse_routing_decision
from api.services.sub_agents import AgentRegistry, SubAgent
from core.constants import AGENT_SUPERVISOR, CONVERSATION_ID_PREFIX, ERROR_NO_INPUT
from core.prompts import build_routing_prompt
from integrations.model_client import ModelClient
from integrations.transcription import TranscriptionClient
from models.agent_models import (
    AgentInput,
    AgentParams,
    AgentResult,
    AudioTranscriptionMetadata,
    BatchAudioInput,
    NormalizedInput,
    RoutingDecision,
    SingleAudioInput,
    SupervisorMetadata,
    TextInput,
)
from utils.logger import logger


def with_prompt(prompt: str | None, transcript: str) -> str:
    """Place typed text sent alongside a recording ahead of its transcript."""
    if prompt and prompt.strip():
        return f"{prompt.strip()}\n\n[Audio transcript]: {transcript}"
    return transcript


def is_conversation_id(candidate: object) -> bool:
    """Whether a caller-supplied value looks like a provider conversation id."""
    if not isinstance(candidate, str):
        return False
    return candidate.startswith(CONVERSATION_ID_PREFIX) and len(candidate) > len(CONVERSATION_ID_PREFIX)


class Supervisor:
    name: ClassVar[str] = AGENT_SUPERVISOR
    description: ClassVar[str] = "Routes text or audio input to the direct or RAG agent"

    def __init__(
        self,
        model_client: ModelClient,
        transcriber: TranscriptionClient,
        batch_processor: AudioBatchProcessor,
        agents: AgentRegistry,
        routing_model: str | None = None,
    ):
        self._model = model_client
        self._transcriber = transcriber
        self._batch = batch_processor
        self.agents = agents
        self._routing_model = routing_model

    def list_agents(self) -> list[dict[str, str]]:
        return [{"name": self.name, "description": self.description}, *self.agents.describe()]

    async def ensure_conversation(self, candidate: str | None) -> str:
        """Return the caller's conversation id, or mint a new one when absent or malformed."""
        if is_conversation_id(candidate):
            conversation_id = candidate
        else:
            if candidate:
                logger.info("Ignoring conversation id without the expected prefix")
            conversation_id = await self._model.create_conversation()
        update_request_context(conversation_id=conversation_id)
        return conversation_id

    def _normalize_text(self, text: str) -> NormalizedInput:
        if not text.strip():
            raise ValidationException(ERROR_NO_INPUT, field="input")
        return NormalizedInput(
            text=text,
            transcription=AudioTranscriptionMetadata(audio_processed=False),
            original_input_type="text",
        )

    async def normalize(self, agent_input: AgentInput | str) -> NormalizedInput:
        """Turn any input variant into text plus transcription metadata.

        Raises:
            UnsupportedInputTypeError: Not a recognized input variant
            EmptyTranscriptError: Single audio produced no text
            NoChunksTranscribedError: Batch audio produced no text
            TranscriptionFailedError: Provider error during transcription
        """
        match agent_input:
            case str():
                return self._normalize_text(agent_input)

            case TextInput(text=text):
                return self._normalize_text(text)

            case SingleAudioInput(audio=audio, mime_type=mime_type, metadata=metadata, prompt=prompt):
                transcript = (await self._transcriber.transcribe(audio, mime_type)).strip()
                if not transcript:
                    raise EmptyTranscriptError()
                return NormalizedInput(
                    text=with_prompt(prompt, transcript),
                    transcription=AudioTranscriptionMetadata(
                        audio_processed=True,
                        audio_type="single",
                        mime_type=mime_type,
                        metadata=metadata.to_dict() or None,
                        transcript=transcript,
                    ),
                    original_input_type="audio",
                )

            case BatchAudioInput(chunks=chunks, batch_metadata=batch_metadata, prompt=prompt):
                text = await self._batch.process_batch(chunks, batch_metadata.processing_mode)
                return NormalizedInput(
                    text=with_prompt(prompt, text),
                    transcription=AudioTranscriptionMetadata(
                        audio_processed=True,
                        audio_type="batch",
                        chunks_count=len(chunks),
                        processing_mode=batch_metadata.processing_mode,
                        total_duration=batch_metadata.total_duration,
                        transcript=text,
                    ),
                    original_input_type="batch_audio",
                )

            case _:
                raise UnsupportedInputTypeError(type(agent_input).__name__)

    async def route(self, text: str, vector_store_ids: Sequence[str] = ()) -> tuple[RoutingDecision, bool]:
        """Classify normalized text into a routing decision.

        Uses a fresh conversation so routing never leaks into the caller's
        context. Malformed model output falls back to the heuristic.

        Returns:
            The decision and whether the heuristic fallback was used
        """
        routing_conversation = await self._model.create_conversation()
        result = await self._model.generate(
            build_routing_prompt(text, vector_store_ids),
            conversation_id=routing_conversation,
            agent_name="router",
            model=self._routing_model,
        )

        fallback = False
        try:
            decision = parse_routing_decision(result.text)
        except RoutingClassificationMalformedError as e:
            logger.warning(f"Routing output unusable, using heuristic: {e.message}")
            decision = heuristic_route(text, vector_store_ids)
            fallback = True

        if decision.route == "rag" and not vector_store_ids:
            logger.info("Routing chose rag without vector stores; degrading to direct")
            decision = RoutingDecision(route="direct", query=decision.query)

        return decision, fallback

    async def decide(
        self,
        text: str,
        params: AgentParams,
        target_agent: str | None = None,
    ) -> tuple[RoutingDecision, SubAgent, bool]:
        """Pick the sub-agent for normalized text, honouring an explicit target."""
        if target_agent and target_agent.lower() != self.name:
            agent = self.agents.get(target_agent)
            update_request_context(agent=agent.name)
            return RoutingDecision(route=agent.name, query=text), agent, False  # type: ignore[arg-type]

        decision, fallback = await self.route(text, params.vector_store_ids)
        update_request_context(agent=decision.route)
        return decision, self.agents.get(decision.route), fallback

    def metadata(
        self,
        normalized: NormalizedInput,
        decision: RoutingDecision,
        fallback: bool,
    ) -> SupervisorMetadata:
        return SupervisorMetadata(
            routing_decision=decision,
            audio_transcription=normalized.transcription,
            original_input_type=normalized.original_input_type,
            route_fallback=fallback,
        )

    async def run(
        self,
        conversation_id: str | None,
        agent_input: AgentInput | str,
        params: AgentParams | None = None,
        target_agent: str | None = None,
    ) -> AgentResult:
        """Normalize, classify, dispatch and assemble one request."""
        started = time.monotonic()
        params = params or AgentParams()

        conversation_id = await self.ensure_conversation(conversation_id)
        normalized = await self.normalize(agent_input)
        decision, agent, fallback = await self.decide(normalized.text, params, target_agent)
        result = await agent.run(conversation_id, decision.query, params)

        metadata = self.metadata(normalized, decision, fallback)
        assembled = result.model_copy(
            update={
                "raw": {**result.raw, "supervisorMetadata": metadata.to_payload()},
                "supervisor_metadata": metadata,
            }
        )

        logger.log_agent_turn(
            user_input=normalized.text,
            response=assembled.text,
            input_type=normalized.original_input_type,
            agent=agent.name,
            conversation_id=conversation_id,
            duration_ms=(time.monotonic() - started) * 1000,
            route_fallback=fallback,
        )
        return assembled


__all__ = ["Supervisor", "is_conversation_id", "with_prompt"]
