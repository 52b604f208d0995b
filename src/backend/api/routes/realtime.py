"""
Realtime supervisor WebSocket.

Clients either send complete text messages or record audio in a batch:

    batch_start {mimeType, conversationId?, vectorStoreIds?, processingMode?, params?, targetAgent?}
    batch_append {audio: <base64>, timestamp?}   (or a binary frame)
    batch_commit
    batch_reset
    message {input, conversationId?, vectorStoreIds?, params?, targetAgent?}

Lifecycle messages are acknowledged with ``{"type": "batch_ack", ...}``.
``batch_commit`` and ``message`` answer with the stream event sequence,
each event sent as ``{"event": name, "data": {...}}``. Each connection
owns one batch accumulator; starting a batch while one is open is
rejected and leaves the open batch untouched.
"""

from __future__ import annotations

import json

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.middleware.exception_handlers import AppException
from api.middleware.request_context import client_ip_from, create_websocket_context
from api.services.audio_batch import AudioBatchAccumulator
from api.services.input_parsing import (
    check_audio_size,
    decode_base64_audio,
    parse_params,
    parse_vector_store_ids,
)
from api.services.streaming import StreamingCoordinator, StreamRequest, WebSocketEventSink
from api.websocket.errors import close_with_error, send_ws_error
from core.constants import (
    AUDIO_FILENAME_FALLBACK,
    WS_MSG_BATCH_ACK,
    WS_MSG_BATCH_APPEND,
    WS_MSG_BATCH_COMMIT,
    WS_MSG_BATCH_RESET,
    WS_MSG_BATCH_START,
    WS_MSG_MESSAGE,
    Settings,
    get_settings,
)
from models.agent_models import AgentInput, AgentParams
from models.error_models import ErrorCode
from utils.logger import logger

router = APIRouter()


class RealtimeSession:
    """Per-connection state: the batch accumulator and the stream sink."""

    def __init__(self, websocket: WebSocket, coordinator: StreamingCoordinator, settings: Settings):
        self.websocket = websocket
        self.coordinator = coordinator
        self.settings = settings
        self.accumulator = AudioBatchAccumulator()
        self.sink = WebSocketEventSink(websocket)

    async def _ack(self, action: str, **data: Any) -> None:
        await self.websocket.send_json({"type": WS_MSG_BATCH_ACK, "action": action, **data})

    @staticmethod
    def _request_context(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "conversation_id": data.get("conversationId"),
            "params": AgentParams(
                vector_store_ids=parse_vector_store_ids(data.get("vectorStoreIds")),
                extra=parse_params(data.get("params")),
            ),
            "target_agent": data.get("targetAgent"),
        }

    async def _stream(self, agent_input: AgentInput | str | None, context: dict[str, Any]) -> None:
        request = StreamRequest(input=agent_input, **context)
        delivered = await self.coordinator.stream_to(request, self.sink)
        logger.debug(f"Streamed {delivered} events over WebSocket")

    async def handle(self, data: dict[str, Any]) -> None:
        msg_type = data.get("type")

        if msg_type == WS_MSG_BATCH_START:
            self.accumulator.start(
                mime_type=data.get("mimeType"),
                processing_mode=data.get("processingMode"),
                context=self._request_context(data),
            )
            await self._ack(WS_MSG_BATCH_START)

        elif msg_type == WS_MSG_BATCH_APPEND:
            audio = data.get("audio")
            if not isinstance(audio, str):
                await send_ws_error(self.websocket, ErrorCode.WS_MESSAGE_INVALID, "batch_append requires audio")
                return
            await self.append(decode_base64_audio(audio), data.get("timestamp"))

        elif msg_type == WS_MSG_BATCH_COMMIT:
            batch, context = self.accumulator.commit()
            logger.info(
                f"Committing audio batch of {len(batch.chunks)} chunks",
                chunks_count=len(batch.chunks),
                processing_mode=batch.batch_metadata.processing_mode.value,
            )
            await self._stream(batch, context)

        elif msg_type == WS_MSG_BATCH_RESET:
            dropped = self.accumulator.reset()
            await self._ack(WS_MSG_BATCH_RESET, droppedChunks=dropped)

        elif msg_type == WS_MSG_MESSAGE:
            await self._stream(data.get("input"), self._request_context(data))

        else:
            await send_ws_error(
                self.websocket,
                ErrorCode.WS_MESSAGE_INVALID,
                f"Unknown message type: {msg_type}",
                details={"type": msg_type},
            )

    async def append(self, audio: bytes, timestamp: float | None = None) -> None:
        check_audio_size(AUDIO_FILENAME_FALLBACK, audio, self.settings)
        count = self.accumulator.append(audio, timestamp)
        await self._ack(WS_MSG_BATCH_APPEND, chunksCount=count)

    def close(self) -> int:
        return self.accumulator.reset()


@router.websocket("/ws/agents/supervisor")
async def supervisor_websocket(websocket: WebSocket) -> None:
    """WebSocket endpoint for batch audio and text streaming."""
    create_websocket_context(path=websocket.url.path, client_ip=client_ip_from(websocket.headers, websocket.client))

    await websocket.accept()
    session = RealtimeSession(websocket, websocket.app.state.coordinator, get_settings())
    logger.info("Realtime supervisor WebSocket connected")

    try:
        while not session.sink.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            try:
                if message.get("bytes") is not None:
                    await session.append(message["bytes"])
                    continue

                try:
                    data = json.loads(message.get("text") or "")
                except json.JSONDecodeError:
                    data = None
                if not isinstance(data, dict):
                    await send_ws_error(websocket, ErrorCode.WS_MESSAGE_INVALID, "Messages must be JSON objects")
                    continue

                await session.handle(data)
            except AppException as e:
                await send_ws_error(websocket, e.code, e.message, details=e.details)
    except WebSocketDisconnect:
        pass  # Normal client disconnect
    except Exception as e:
        if "not connected" in str(e).lower():
            logger.debug("Client disconnected mid-send")
        else:
            logger.error(f"Realtime WebSocket error: {type(e).__name__}: {e}", exc_info=True)
            await close_with_error(websocket, ErrorCode.INTERNAL_ERROR, "Internal server error")
    finally:
        dropped = session.close()
        if dropped:
            logger.info(f"WebSocket closed with an open batch; dropped {dropped} chunks")
        logger.info("Realtime supervisor WebSocket disconnected")
