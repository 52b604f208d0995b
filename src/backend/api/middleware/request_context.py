"""
Request-scoped context for Agent Relay.

Every HTTP request and every WebSocket connection gets a ``RequestContext``
stored in a context variable. Loggers and error payloads read it to attach
the request ID, and the supervisor records the conversation and agent it
resolved so later log lines carry them too.
"""

from __future__ import annotations

import secrets
import time

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.datastructures import Address
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_PREFIX = "req_"
WEBSOCKET_ID_PREFIX = "ws_"
REQUEST_ID_HEADER = "X-Request-ID"

_current: ContextVar[RequestContext | None] = ContextVar("agent_relay_request", default=None)


@dataclass
class RequestContext:
    request_id: str
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    conversation_id: str | None = None
    agent: str | None = None
    started: float = field(default_factory=time.monotonic)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Flatten the context into logging ``extra`` fields, skipping unset values."""
        ctx: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        for key in ("client_ip", "conversation_id", "agent"):
            value = getattr(self, key)
            if value:
                ctx[key] = value
        ctx.update(self.extra)
        return ctx


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """Return ``prefix`` followed by 16 random hex characters."""
    return f"{prefix}{secrets.token_hex(8)}"


def client_ip_from(headers: Mapping[str, str], client: Address | None) -> str | None:
    """Resolve the originating client address, preferring the first X-Forwarded-For hop."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return client.host if client else None


def get_request_context() -> RequestContext | None:
    return _current.get()


def get_request_id() -> str | None:
    ctx = _current.get()
    return ctx.request_id if ctx else None


def set_request_context(context: RequestContext) -> None:
    _current.set(context)


def clear_request_context() -> None:
    _current.set(None)


@contextmanager
def request_scope(context: RequestContext) -> Iterator[RequestContext]:
    """Bind ``context`` for the duration of the block and restore the previous one after."""
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def update_request_context(**kwargs: Any) -> None:
    """Record values on the active context.

    Known fields are set directly; anything else lands in ``extra``.
    Does nothing outside a request.
    """
    ctx = _current.get()
    if ctx is None:
        return
    for key, value in kwargs.items():
        if key != "extra" and key in ctx.__dataclass_fields__:
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a context per HTTP request and echo the request ID back to the client."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or generate_request_id(),
            path=request.url.path,
            method=request.method,
            client_ip=client_ip_from(request.headers, request.client),
        )
        with request_scope(context):
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            # For SSE this is time to first byte, not stream duration
            response.headers["X-Response-Time"] = f"{context.elapsed_ms:.2f}ms"
            return response


def create_websocket_context(path: str, client_ip: str | None = None) -> RequestContext:
    """Bind a context for a WebSocket connection.

    The context lives as long as the connection, so every message handled
    on it shares one ``ws_`` request ID.
    """
    context = RequestContext(
        request_id=generate_request_id(WEBSOCKET_ID_PREFIX),
        path=path,
        method="WEBSOCKET",
        client_ip=client_ip,
    )
    set_request_context(context)
    return context


__all__ = [
    "REQUEST_ID_HEADER",
    "REQUEST_ID_PREFIX",
    "WEBSOCKET_ID_PREFIX",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_request_context",
    "client_ip_from",
    "create_websocket_context",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "request_scope",
    "set_request_context",
    "update_request_context",
]
