"""
Sub-agents dispatched by the supervisor.

Each sub-agent wraps the Model Client with a fixed tool configuration and
accepts text only. Normalizing audio into text is the supervisor's job, so
anything else reaching a sub-agent is rejected with InvalidInputTypeError.
"""

from __future__ import annotations

from typing import Any, ClassVar

from agents import Tool

from api.middleware.exception_handlers import (
    InvalidInputTypeError,
    MissingVectorStoresError,
    UnknownAgentError,
)
from core.constants import AGENT_DIRECT, AGENT_RAG
from core.prompts import DIRECT_AGENT_INSTRUCTIONS, RAG_AGENT_INSTRUCTIONS
from integrations.model_client import ModelClient, ModelStream, retrieval_tools
from models.agent_models import AgentParams, AgentResult
from utils.logger import logger


class SubAgent:
    """Base class: text in, AgentResult (or a model stream) out."""

    name: ClassVar[str]
    description: ClassVar[str]
    instructions: ClassVar[str]

    def __init__(self, model_client: ModelClient):
        self._model = model_client

    def _require_text(self, value: Any) -> str:
        if not isinstance(value, str):
            raise InvalidInputTypeError(self.name, type(value).__name__)
        return value

    def _tools(self, params: AgentParams) -> list[Tool]:
        return []

    async def run(self, conversation_id: str, text: Any, params: AgentParams | None = None) -> AgentResult:
        query = self._require_text(text)
        tools = self._tools(params or AgentParams())
        logger.debug(f"Running {self.name} agent", agent=self.name, tools=len(tools))
        result = await self._model.generate(
            query,
            conversation_id=conversation_id,
            tools=tools,
            instructions=self.instructions,
            agent_name=self.name,
        )
        return AgentResult(conversation_id=conversation_id, agent=self.name, text=result.text, raw=result.raw)

    def stream(self, conversation_id: str, text: Any, params: AgentParams | None = None) -> ModelStream:
        query = self._require_text(text)
        tools = self._tools(params or AgentParams())
        return self._model.stream(
            query,
            conversation_id=conversation_id,
            tools=tools,
            instructions=self.instructions,
            agent_name=self.name,
        )


class DirectAgent(SubAgent):
    name = AGENT_DIRECT
    description = "Answers directly with the language model, no tools"
    instructions = DIRECT_AGENT_INSTRUCTIONS


class RagAgent(SubAgent):
    name = AGENT_RAG
    description = "Answers with file search over the given vector stores"
    instructions = RAG_AGENT_INSTRUCTIONS

    def _tools(self, params: AgentParams) -> list[Tool]:
        if not params.vector_store_ids:
            raise MissingVectorStoresError()
        return retrieval_tools(params.vector_store_ids)


class AgentRegistry:
    """Name -> sub-agent lookup."""

    def __init__(self, *agents: SubAgent):
        self._agents = {agent.name: agent for agent in agents}

    @classmethod
    def default(cls, model_client: ModelClient) -> AgentRegistry:
        return cls(DirectAgent(model_client), RagAgent(model_client))

    def get(self, name: str) -> SubAgent:
        agent = self._agents.get(name.lower())
        if agent is None:
            raise UnknownAgentError(name)
        return agent

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._agents

    def describe(self) -> list[dict[str, str]]:
        return [{"name": agent.name, "description": agent.description} for agent in self._agents.values()]


__all__ = ["AgentRegistry", "DirectAgent", "RagAgent", "SubAgent"]
