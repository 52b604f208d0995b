"""
Agent endpoints (v1).

Single-shot and streaming supervisor runs, conversation creation and the
agent listing. Both supervisor endpoints accept JSON or multipart bodies
with the same field names.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from api.dependencies import AppSettings, CoordinatorDep, ModelClientDep, SupervisorDep
from api.middleware.exception_handlers import AppException, ValidationException
from api.services.input_parsing import agent_params, read_supervisor_request
from api.services.streaming import StreamRequest
from core.constants import ERROR_NO_INPUT, SSE_PADDING
from models.error_models import ErrorCode
from models.event_models import ErrorEvent, StreamEvent
from models.schemas.agents import (
    AgentInfo,
    AgentListResponse,
    ConversationResponse,
    SupervisorRequest,
    SupervisorResponse,
)
from utils.logger import logger

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

_MULTIPART_BODY = {
    "requestBody": {
        "content": {
            "application/json": {"schema": SupervisorRequest.model_json_schema()},
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "input": {"type": "string"},
                        "conversationId": {"type": "string"},
                        "vectorStoreIds": {"type": "string"},
                        "params": {"type": "string"},
                        "targetAgent": {"type": "string"},
                        "processingMode": {"type": "string"},
                        "audio": {"type": "string", "format": "binary"},
                        "audioChunks": {"type": "array", "items": {"type": "string", "format": "binary"}},
                    },
                }
            },
        }
    }
}


@router.get(
    "",
    response_model=AgentListResponse,
    summary="List agents",
    description="Every agent that can be named as targetAgent.",
)
async def list_agents(supervisor: SupervisorDep) -> AgentListResponse:
    return AgentListResponse(agents=[AgentInfo(**agent) for agent in supervisor.list_agents()])


@router.get(
    "/conversation/new",
    response_model=ConversationResponse,
    summary="Create conversation",
    description="Create a provider-side conversation without running a model.",
)
async def new_conversation(model_client: ModelClientDep) -> ConversationResponse:
    return ConversationResponse(conversationId=await model_client.create_conversation())


@router.post(
    "/supervisor",
    response_model=SupervisorResponse,
    summary="Run supervisor",
    description="Normalize text or audio, route it, and return the chosen agent's answer.",
    openapi_extra=_MULTIPART_BODY,
    responses={
        404: {"description": "Unknown target agent"},
        413: {"description": "Audio file too large"},
        422: {"description": "No input, empty transcript, or missing vector stores"},
        502: {"description": "Transcription or model provider failure"},
    },
)
async def run_supervisor(
    request: Request,
    supervisor: SupervisorDep,
    settings: AppSettings,
) -> SupervisorResponse:
    body, agent_input = await read_supervisor_request(request, settings)
    if agent_input is None:
        raise ValidationException(ERROR_NO_INPUT, field="input")

    result = await supervisor.run(
        body.conversationId,
        agent_input,
        params=agent_params(body),
        target_agent=body.targetAgent,
    )
    return SupervisorResponse.from_result(result)


async def _sse(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Frame stream events as Server-Sent Events."""
    try:
        yield SSE_PADDING
        async for event in events:
            yield event.to_sse()
    finally:
        await events.aclose()  # type: ignore[attr-defined]
        logger.debug("SSE stream closed")


async def _rejected(error: ErrorEvent) -> AsyncIterator[StreamEvent]:
    yield error


def _request_error(exc: AppException | ValidationError) -> ErrorEvent:
    """Map a request that could not be read to the stream's terminal error event."""
    if isinstance(exc, AppException):
        event = ErrorEvent(error=exc.message, code=exc.code.value)
    else:
        event = ErrorEvent(error="Data validation failed", code=ErrorCode.VALIDATION_ERROR.value)
    logger.warning(f"Stream request rejected: {event.error}", error_code=event.code)
    return event


@router.post(
    "/supervisor/stream",
    summary="Stream supervisor",
    description=(
        "Same inputs as /supervisor. Emits conversation, transcript (audio only), "
        "text_delta, final and done events, or a single terminal error event. "
        "A request that cannot be read (oversized audio, malformed body) also "
        "answers 200 with one error event."
    ),
    openapi_extra=_MULTIPART_BODY,
    response_class=StreamingResponse,
    responses={200: {"content": {"text/event-stream": {}}}},
)
async def stream_supervisor(
    request: Request,
    coordinator: CoordinatorDep,
    settings: AppSettings,
) -> StreamingResponse:
    # Unreadable requests still answer with an event stream
    try:
        body, agent_input = await read_supervisor_request(request, settings)
        params = agent_params(body)
    except (AppException, ValidationError) as e:
        events = _rejected(_request_error(e))
    else:
        stream_request = StreamRequest(
            input=agent_input,
            conversation_id=body.conversationId,
            params=params,
            target_agent=body.targetAgent,
        )
        events = coordinator.events(stream_request)
    return StreamingResponse(
        _sse(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
