"""
HTTP request/response logging for debugging provider API traffic.

Captures request metadata and JSON payloads using httpx event hooks.
Multipart bodies (audio and file uploads) are summarized by size only.
"""

from __future__ import annotations

import json

from typing import Any

import httpx

from utils.logger import logger

#: Header names whose values are masked in logs
SENSITIVE_HEADERS = frozenset({"authorization", "api-key", "x-api-key"})


class HTTPLogger:
    """Logs HTTP requests and responses for debugging."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._request_data: dict[int, dict[str, Any]] = {}

    def _describe_body(self, request: httpx.Request) -> Any:
        content_type = request.headers.get("content-type", "")
        if "multipart/form-data" in content_type:
            return {"_note": "multipart body", "bytes": len(request.content)}
        if not request.content:
            return {}
        try:
            return json.loads(request.content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {"_note": "non-JSON body", "bytes": len(request.content)}

    async def log_request(self, request: httpx.Request) -> None:
        """Log outgoing HTTP request."""
        if not self.enabled:
            return

        try:
            body = self._describe_body(request)
        except httpx.RequestNotRead:
            body = {"_note": "streaming request - body not captured"}

        self._request_data[id(request)] = {"method": request.method, "url": str(request.url)}

        logger.info(
            f"HTTP Request: {request.method} {request.url}",
            http_request=True,
            http_method=request.method,
            url=str(request.url),
            headers=self._sanitize_headers(dict(request.headers)),
            payload=body,
        )

    async def log_response(self, response: httpx.Response) -> None:
        """Log HTTP response status (bodies are usually streamed and left unread)."""
        if not self.enabled:
            return

        request_data = self._request_data.pop(id(response.request), {})
        logger.info(
            f"HTTP Response: {response.status_code} "
            f"{request_data.get('method', 'UNKNOWN')} {request_data.get('url', 'UNKNOWN')}",
            http_response=True,
            status_code=response.status_code,
            request=request_data,
        )

    def _sanitize_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Mask sensitive header values, keeping the last 4 characters."""
        sanitized = headers.copy()
        for key, value in headers.items():
            if key.lower() in SENSITIVE_HEADERS:
                sanitized[key] = f"***{value[-4:]}" if len(value) > 4 else "***"
        return sanitized


def create_logging_client(
    enabled: bool = True,
    timeout: httpx.Timeout | None = None,
) -> httpx.AsyncClient:
    """Create an httpx client with request/response logging.

    Args:
        enabled: Whether to enable HTTP logging
        timeout: Optional timeout configuration

    Returns:
        Configured httpx.AsyncClient with event hooks
    """
    http_logger = HTTPLogger(enabled=enabled)
    event_hooks: dict[str, list[Any]] = {
        "request": [http_logger.log_request],
        "response": [http_logger.log_response],
    }
    return httpx.AsyncClient(event_hooks=event_hooks, timeout=timeout)
