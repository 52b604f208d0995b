"""WebSocket utilities for Agent Relay.

Provides close codes and error reporting for the realtime endpoint.
"""

from __future__ import annotations

from api.websocket.errors import WSCloseCode, close_with_error, send_ws_error

__all__ = [
    "WSCloseCode",
    "close_with_error",
    "send_ws_error",
]
