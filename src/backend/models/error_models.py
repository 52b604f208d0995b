"""
Standardized error response models for Agent Relay API.

Provides consistent error formatting across REST, SSE and WebSocket endpoints
with support for request tracking and error categorization.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"
    VALIDATION_MISSING_FIELD = "VAL_2002"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"
    RESOURCE_CONFLICT = "RES_3003"

    # File errors (5xxx)
    FILE_TOO_LARGE = "FILE_5002"

    # WebSocket errors (6xxx)
    WS_MESSAGE_INVALID = "WS_6002"

    # External service errors (7xxx)
    EXTERNAL_SERVICE_ERROR = "EXT_7001"
    EXTERNAL_TIMEOUT = "EXT_7002"
    EXTERNAL_RATE_LIMITED = "EXT_7003"
    OPENAI_ERROR = "EXT_7010"
    OPENAI_AUTH_FAILED = "EXT_7011"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_UNEXPECTED = "INT_9999"

    # Audio ingestion errors (10xxx)
    TRANSCRIPTION_FAILED = "AUD_10001"
    EMPTY_TRANSCRIPT = "AUD_10002"
    NO_CHUNKS_TRANSCRIBED = "AUD_10003"
    BATCH_ALREADY_ACTIVE = "AUD_10004"
    BATCH_NOT_STARTED = "AUD_10005"

    # Agent errors (11xxx)
    INVALID_INPUT_TYPE = "AGT_11001"
    MISSING_VECTOR_STORES = "AGT_11002"
    UNSUPPORTED_INPUT_TYPE = "AGT_11003"
    ROUTING_MALFORMED = "AGT_11004"
    UNKNOWN_AGENT = "AGT_11005"


class ErrorDetail(BaseModel):
    """Detailed information about a specific validation or sub-error."""

    field: str | None = None
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    """Standardized error response model for REST endpoints.

    Example response:
    {
        "error": {
            "code": "AGT_11002",
            "message": "RAG agent requires at least one vector store id",
            "request_id": "req_abc123",
            "timestamp": "2025-01-15T10:30:00Z",
            "details": null,
            "path": "/api/v1/agents/supervisor"
        }
    }
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    details: list[ErrorDetail] | None = None
    path: str | None = None
    # Debug info - only included in development mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """Convert to dictionary for JSON response.

        Args:
            include_debug: Include debug information (only in development)
        """
        data = self.model_dump(mode="json", exclude_none=True)
        if include_debug and self.debug:
            data["debug"] = self.debug
        return {"error": data}


class WebSocketError(BaseModel):
    """Non-terminal error format for WebSocket control messages.

    Stream failures use the ``error`` stream event instead; this model covers
    rejected client messages (malformed JSON, batch lifecycle violations).
    """

    type: str = "error"
    code: ErrorCode
    message: str
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    recoverable: bool = True
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for WebSocket JSON message."""
        return self.model_dump(mode="json", exclude_none=True)


#: HTTP status per error code; anything unlisted is a 500
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    # 404 Not Found
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.UNKNOWN_AGENT: 404,
    # 409 Conflict
    ErrorCode.RESOURCE_CONFLICT: 409,
    ErrorCode.BATCH_ALREADY_ACTIVE: 409,
    ErrorCode.BATCH_NOT_STARTED: 409,
    # 413 Payload Too Large
    ErrorCode.FILE_TOO_LARGE: 413,
    # 422 Unprocessable Entity
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.VALIDATION_MISSING_FIELD: 422,
    ErrorCode.WS_MESSAGE_INVALID: 422,
    ErrorCode.EMPTY_TRANSCRIPT: 422,
    ErrorCode.NO_CHUNKS_TRANSCRIBED: 422,
    ErrorCode.MISSING_VECTOR_STORES: 422,
    ErrorCode.UNSUPPORTED_INPUT_TYPE: 422,
    ErrorCode.ROUTING_MALFORMED: 422,
    # 429 Too Many Requests
    ErrorCode.EXTERNAL_RATE_LIMITED: 429,
    # 500 Internal Server Error
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_UNEXPECTED: 500,
    ErrorCode.INVALID_INPUT_TYPE: 500,
    # 502 Bad Gateway
    ErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ErrorCode.OPENAI_ERROR: 502,
    ErrorCode.OPENAI_AUTH_FAILED: 502,
    ErrorCode.TRANSCRIPTION_FAILED: 502,
    # 503 Service Unavailable
    ErrorCode.EXTERNAL_TIMEOUT: 503,
}


def get_status_code(error_code: ErrorCode) -> int:
    return ERROR_CODE_TO_STATUS.get(error_code, 500)


__all__ = [
    "ERROR_CODE_TO_STATUS",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "WebSocketError",
    "get_status_code",
]
