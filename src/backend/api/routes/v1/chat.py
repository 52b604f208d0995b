"""
Chat endpoint (v1).

A direct model call that bypasses the supervisor. A ``vectorStoreId``
enables file search over that store; ``previousResponseId`` continues
from an earlier response.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import ModelClientDep
from api.middleware.exception_handlers import ValidationException
from api.middleware.request_context import update_request_context
from integrations.model_client import retrieval_tools
from models.schemas.chat import ChatRequest, ChatResponse
from utils.logger import logger

router = APIRouter()

CHAT_AGENT_NAME = "chat"


@router.post(
    "",
    response_model=ChatResponse,
    summary="Chat",
    description="Run the model once on the input, with optional file search and response chaining.",
    responses={
        422: {"description": "Missing input"},
        502: {"description": "Model provider failure"},
    },
)
async def chat(body: ChatRequest, model_client: ModelClientDep) -> ChatResponse:
    if not body.input or (isinstance(body.input, str) and not body.input.strip()):
        raise ValidationException("input is required", field="input")

    update_request_context(agent=CHAT_AGENT_NAME)
    tools = retrieval_tools([body.vectorStoreId]) if body.vectorStoreId else None
    result = await model_client.generate(
        body.input,  # type: ignore[arg-type]
        previous_response_id=body.previousResponseId,
        tools=tools,
        agent_name=CHAT_AGENT_NAME,
    )

    logger.info(
        "Chat response generated",
        file_search=bool(tools),
        chained=body.previousResponseId is not None,
    )
    return ChatResponse(
        responseId=result.raw.get("response_id"),
        text=result.text,
        threadId=body.threadId,
        raw=result.raw,
    )
