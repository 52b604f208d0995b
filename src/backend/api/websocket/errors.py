"""
WebSocket error utilities.

Control-message failures (bad JSON, batch lifecycle violations) are
reported with a non-terminal ``{"type": "error", ...}`` message and the
connection stays open. Stream failures use the ``error`` stream event.
"""

from __future__ import annotations

import contextlib

from enum import IntEnum
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from api.middleware.request_context import get_request_id
from models.error_models import ErrorCode, WebSocketError
from utils.logger import logger


class WSCloseCode(IntEnum):
    """Close codes used by the WebSocket endpoints."""

    NORMAL = 1000
    INTERNAL_ERROR = 1011


async def send_ws_error(
    websocket: WebSocket,
    code: ErrorCode,
    message: str,
    recoverable: bool = True,
    details: dict[str, Any] | None = None,
) -> bool:
    """Send an error message to the client.

    Returns:
        True if the message was sent, False if the socket is already gone
    """
    if websocket.client_state != WebSocketState.CONNECTED:
        return False

    error = WebSocketError(
        code=code,
        message=message,
        request_id=get_request_id(),
        recoverable=recoverable,
        details=details,
    )
    try:
        await websocket.send_json(error.to_dict())
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
        logger.warning(f"Could not deliver WebSocket error {code.value}: {e}")
        return False
    return True


async def close_with_error(
    websocket: WebSocket,
    code: ErrorCode,
    message: str,
    close_code: WSCloseCode = WSCloseCode.INTERNAL_ERROR,
) -> None:
    """Send a non-recoverable error message, then close the connection."""
    await send_ws_error(websocket, code, message, recoverable=False)
    # Close reasons are limited to 123 bytes
    reason = message.encode("utf-8")[:123].decode("utf-8", errors="ignore")
    with contextlib.suppress(RuntimeError, OSError):
        await websocket.close(code=close_code, reason=reason)


__all__ = ["WSCloseCode", "close_with_error", "send_ws_error"]
