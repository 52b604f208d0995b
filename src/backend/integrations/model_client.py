"""
Model Client: text generation through the OpenAI Agents SDK.

Each call builds a throwaway ``Agent`` with the requested instructions and
tools and runs it with ``Runner`` against a provider-side conversation.
Complete results come back as ``ModelResult``; streamed runs are wrapped in
a single-use, cancellable ``ModelStream`` yielding ``text_delta`` events
followed by one ``final`` event.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from agents import Agent, FileSearchTool, RunConfig, Runner, Tool, TResponseInputItem
from agents.exceptions import AgentsException
from agents.models.openai_provider import OpenAIProvider
from agents.result import RunResultBase, RunResultStreaming
from openai import AsyncOpenAI

from api.middleware.exception_handlers import ExternalServiceError
from core.constants import RAW_RESPONSE_EVENT, RESPONSE_OUTPUT_TEXT_DELTA
from models.error_models import ErrorCode
from utils.logger import logger

ModelEventType = Literal["text_delta", "final"]


@dataclass(frozen=True, slots=True)
class ModelResult:
    """Complete generation result."""

    text: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ModelEvent:
    """One element of a streamed generation.

    For ``text_delta`` ``data`` is the increment; for ``final`` it is the full text.
    """

    type: ModelEventType
    data: str
    raw: dict[str, Any] | None = None


def retrieval_tools(vector_store_ids: Sequence[str]) -> list[Tool]:
    """File search tool configuration scoped to the given vector stores."""
    return [FileSearchTool(vector_store_ids=list(vector_store_ids))]


def describe_run(result: RunResultBase) -> dict[str, Any]:
    """Summarize an SDK run result as a JSON-friendly provider response."""
    usage = result.context_wrapper.usage
    return {
        "response_id": result.last_response_id,
        "agent": result.last_agent.name,
        "usage": {
            "requests": usage.requests,
            "input_tokens": usage.input_tokens,
            "output_tokens": usage.output_tokens,
            "total_tokens": usage.total_tokens,
        },
    }


def _output_text(final_output: Any) -> str:
    return "" if final_output is None else str(final_output)


def _model_error(exc: AgentsException) -> ExternalServiceError:
    return ExternalServiceError("OpenAI", str(exc) or type(exc).__name__, code=ErrorCode.OPENAI_ERROR, cause=exc)


class ModelStream:
    """Cancellable, finite, single-use sequence of model events."""

    def __init__(self, run: RunResultStreaming):
        self._run = run
        self._consumed = False

    def cancel(self) -> None:
        """Stop the underlying run. Safe to call more than once or after completion."""
        if not self._run.is_complete:
            self._run.cancel()

    def __aiter__(self) -> AsyncIterator[ModelEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[ModelEvent]:
        if self._consumed:
            raise RuntimeError("ModelStream can only be iterated once")
        self._consumed = True

        parts: list[str] = []
        try:
            async for event in self._run.stream_events():
                if event.type != RAW_RESPONSE_EVENT:
                    continue
                data = getattr(event, "data", None)
                if getattr(data, "type", None) != RESPONSE_OUTPUT_TEXT_DELTA:
                    continue
                delta = getattr(data, "delta", "") or ""
                if delta:
                    parts.append(delta)
                    yield ModelEvent(type="text_delta", data=delta)
        except AgentsException as e:
            raise _model_error(e) from e

        text = _output_text(self._run.final_output) or "".join(parts)
        yield ModelEvent(type="final", data=text, raw=describe_run(self._run))


class ModelClient:
    """Stateless wrapper around the Agents SDK for one AsyncOpenAI client."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self._client = client
        self.model = model
        # A dedicated provider keeps concurrent runs on this client
        self._provider = OpenAIProvider(openai_client=client)

    def _agent(
        self,
        name: str,
        instructions: str | None,
        tools: Sequence[Tool] | None,
        model: str | None,
    ) -> Agent[Any]:
        return Agent(
            name=name,
            instructions=instructions,
            model=model or self.model,
            tools=list(tools or []),
        )

    def _run_config(self) -> RunConfig:
        return RunConfig(model_provider=self._provider, tracing_disabled=True)

    async def create_conversation(self) -> str:
        """Create a provider-side conversation and return its id."""
        conversation = await self._client.conversations.create()
        logger.debug(f"Created conversation {conversation.id}")
        return conversation.id

    async def generate(
        self,
        prompt: str | list[TResponseInputItem],
        *,
        conversation_id: str | None = None,
        previous_response_id: str | None = None,
        tools: Sequence[Tool] | None = None,
        instructions: str | None = None,
        agent_name: str = "assistant",
        model: str | None = None,
    ) -> ModelResult:
        """Run one complete generation.

        ``prompt`` is plain text or a list of Responses API input items.
        Context comes from ``conversation_id`` or, for callers chaining
        responses themselves, ``previous_response_id``.

        Raises:
            openai.APIError: Provider rejected the request
            ExternalServiceError: The SDK run failed
        """
        agent = self._agent(agent_name, instructions, tools, model)
        try:
            result = await Runner.run(
                agent,
                input=prompt,
                conversation_id=conversation_id,
                previous_response_id=previous_response_id,
                run_config=self._run_config(),
            )
        except AgentsException as e:
            raise _model_error(e) from e

        return ModelResult(text=_output_text(result.final_output), raw=describe_run(result))

    def stream(
        self,
        prompt: str,
        *,
        conversation_id: str | None = None,
        tools: Sequence[Tool] | None = None,
        instructions: str | None = None,
        agent_name: str = "assistant",
        model: str | None = None,
    ) -> ModelStream:
        """Start a streamed generation.

        The run starts in the background right away; iterate the returned
        stream to consume it, or ``cancel()`` it to abandon the work.
        """
        agent = self._agent(agent_name, instructions, tools, model)
        run = Runner.run_streamed(
            agent,
            input=prompt,
            conversation_id=conversation_id,
            run_config=self._run_config(),
        )
        return ModelStream(run)


__all__ = [
    "ModelClient",
    "ModelEvent",
    "ModelResult",
    "ModelStream",
    "describe_run",
    "retrieval_tools",
]
