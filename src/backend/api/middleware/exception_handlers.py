"""
Global exception handlers and application error taxonomy for Agent Relay API.

Provides centralized error handling with consistent response formatting,
proper logging, and request context integration.
"""

from __future__ import annotations

import traceback

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from openai import (
    APIError as OpenAIAPIError,
    AuthenticationError as OpenAIAuthError,
    RateLimitError as OpenAIRateLimitError,
)
from pydantic import ValidationError

from api.middleware.request_context import get_request_context, get_request_id
from core.constants import ERROR_TRANSCRIPTION_FAILED, get_settings
from models.error_models import (
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    get_status_code,
)
from utils.logger import logger


class AppException(Exception):
    """Base application exception with error code support.

    Use this for business logic errors that should return a specific
    error code and message to the client.

    Example:
        raise AppException(
            code=ErrorCode.UNKNOWN_AGENT,
            message="Unknown agent",
            details={"agent": name}
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        super().__init__(message)


class ValidationException(AppException):
    """Request-level validation errors raised outside pydantic parsing."""

    def __init__(self, message: str = "Validation error", field: str | None = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={field: message} if field else None,
        )


class PayloadTooLargeError(AppException):
    """An uploaded file exceeds the configured size limit."""

    def __init__(self, filename: str, size: int, limit: int):
        super().__init__(
            code=ErrorCode.FILE_TOO_LARGE,
            message=f"File '{filename}' exceeds the {limit} byte limit",
            details={"filename": filename, "size": size, "limit": limit},
        )


class ExternalServiceError(AppException):
    """External service errors (OpenAI, etc.)."""

    def __init__(
        self,
        service: str,
        message: str,
        code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR,
        cause: Exception | None = None,
    ):
        super().__init__(
            code=code,
            message=f"{service}: {message}",
            details={"service": service},
            cause=cause,
        )


# ============================================================================
# Input normalization errors
# ============================================================================


class UnsupportedInputTypeError(AppException):
    """Input is neither text nor a recognized audio shape."""

    def __init__(self, input_type: str):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_INPUT_TYPE,
            message=f"Unsupported input type: {input_type}",
            details={"input_type": input_type},
        )


class TranscriptionFailedError(AppException):
    """Transport or provider error during speech-to-text.

    The message shown to callers is generic; the provider error is kept as
    ``cause`` and logged where the failure is handled.
    """

    def __init__(self, cause: Exception | None = None):
        super().__init__(
            code=ErrorCode.TRANSCRIPTION_FAILED,
            message=ERROR_TRANSCRIPTION_FAILED,
            cause=cause,
        )


class EmptyTranscriptError(AppException):
    """Single-audio transcription produced no usable text."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.EMPTY_TRANSCRIPT,
            message="Audio transcription produced no text",
        )


class NoChunksTranscribedError(AppException):
    """Batch transcription produced no usable text from any chunk."""

    def __init__(self, chunks_count: int = 0):
        super().__init__(
            code=ErrorCode.NO_CHUNKS_TRANSCRIBED,
            message="No audio chunks could be transcribed",
            details={"chunks_count": chunks_count},
        )


class BatchAlreadyActiveError(AppException):
    """A batch was started while another batch is still open."""

    def __init__(self, chunks_buffered: int):
        super().__init__(
            code=ErrorCode.BATCH_ALREADY_ACTIVE,
            message="An audio batch is already in progress; commit or reset it first",
            details={"chunks_buffered": chunks_buffered},
        )


class BatchNotStartedError(AppException):
    """Append or commit was called without an open batch."""

    def __init__(self, operation: str):
        super().__init__(
            code=ErrorCode.BATCH_NOT_STARTED,
            message=f"Cannot {operation}: no audio batch in progress",
            details={"operation": operation},
        )


# ============================================================================
# Agent errors
# ============================================================================


class InvalidInputTypeError(AppException):
    """Non-text input reached a sub-agent.

    Normalization belongs to the supervisor, so this signals a programming
    error rather than bad user input.
    """

    def __init__(self, agent: str, input_type: str):
        super().__init__(
            code=ErrorCode.INVALID_INPUT_TYPE,
            message=f"{agent} agent only accepts text input, got {input_type}",
            details={"agent": agent, "input_type": input_type},
        )


class MissingVectorStoresError(AppException):
    """Retrieval agent invoked without any vector store ids."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.MISSING_VECTOR_STORES,
            message="RAG agent requires at least one vector store id",
        )


class RoutingClassificationMalformedError(AppException):
    """Routing model output was not a valid ``{"route", "query"}`` object.

    Always recovered by the supervisor's heuristic fallback.
    """

    def __init__(self, reason: str, raw_output: str | None = None):
        super().__init__(
            code=ErrorCode.ROUTING_MALFORMED,
            message=f"Malformed routing decision: {reason}",
            details={"reason": reason},
        )
        self.raw_output = raw_output


class UnknownAgentError(AppException):
    """A caller named an agent that is not registered."""

    def __init__(self, name: str):
        super().__init__(
            code=ErrorCode.UNKNOWN_AGENT,
            message=f"Agent '{name}' not found",
            details={"agent": name},
        )


# ============================================================================
# Handlers
# ============================================================================


#: Codes used for bare HTTPException raised by FastAPI or Starlette
HTTP_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.VALIDATION_ERROR,
    409: ErrorCode.RESOURCE_CONFLICT,
    413: ErrorCode.FILE_TOO_LARGE,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.EXTERNAL_RATE_LIMITED,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.EXTERNAL_TIMEOUT,
}


def _log_error(error: Exception, code: ErrorCode, status_code: int) -> None:
    """Log at ERROR for 5xx (with the cause, if any) and WARNING for 4xx."""
    ctx = get_request_context()
    log_context = ctx.to_log_context() if ctx else {}
    log_context.update(error_code=code.value, status_code=status_code)

    if status_code >= 500:
        cause = getattr(error, "cause", None)
        suffix = f" (cause: {cause!r})" if cause else ""
        logger.error(f"Server error: {code.value} - {error}{suffix}", exc_info=True, **log_context)
    else:
        logger.warning(f"Client error: {code.value} - {error}", **log_context)


def _respond(
    request: Request,
    exc: Exception,
    code: ErrorCode,
    message: str,
    status_code: int | None = None,
    details: list[ErrorDetail] | None = None,
    debug_info: dict[str, Any] | None = None,
    log: bool = True,
) -> JSONResponse:
    """Build the ``{"error": {...}}`` envelope shared by every handler."""
    status_code = status_code or get_status_code(code)
    include_debug = get_settings().debug and debug_info is not None
    if log:
        _log_error(exc, code, status_code)

    error_response = ErrorResponse(
        code=code,
        message=message,
        request_id=get_request_id(),
        path=request.url.path,
        details=details,
        debug=debug_info if include_debug else None,
    )
    return JSONResponse(status_code=status_code, content=error_response.to_dict(include_debug=include_debug))


def _validation_details(errors: Any) -> list[ErrorDetail]:
    return [
        ErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            code=error["type"],
        )
        for error in errors
    ]


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle the application taxonomy; ``details`` become per-field entries."""
    details = [ErrorDetail(message=str(v), field=k) for k, v in exc.details.items()] if exc.details else None
    return _respond(
        request,
        exc,
        exc.code,
        exc.message,
        details=details,
        debug_info={
            "exception_type": type(exc).__name__,
            "cause": str(exc.cause) if exc.cause else None,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _respond(request, exc, code, message, status_code=exc.status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI request parsing errors (body, query, path)."""
    return _respond(
        request,
        exc,
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        details=_validation_details(exc.errors()),
    )


async def pydantic_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle model validation errors raised inside route code."""
    return _respond(
        request,
        exc,
        ErrorCode.VALIDATION_ERROR,
        "Data validation failed",
        details=_validation_details(exc.errors()),
    )


async def openai_exception_handler(request: Request, exc: OpenAIAPIError) -> JSONResponse:
    """Map OpenAI SDK errors from model or vector-store calls to EXT_* codes."""
    if isinstance(exc, OpenAIAuthError):
        code, message = ErrorCode.OPENAI_AUTH_FAILED, "OpenAI authentication failed"
    elif isinstance(exc, OpenAIRateLimitError):
        code, message = ErrorCode.EXTERNAL_RATE_LIMITED, "OpenAI rate limit exceeded"
    else:
        code, message = ErrorCode.OPENAI_ERROR, f"OpenAI API error: {exc.message}"

    return _respond(
        request,
        exc,
        code,
        message,
        debug_info={
            "openai_error_type": type(exc).__name__,
            "openai_error_code": getattr(exc, "code", None),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        request_id=get_request_id(),
        path=request.url.path,
    )
    return _respond(
        request,
        exc,
        ErrorCode.INTERNAL_UNEXPECTED,
        "An unexpected error occurred",
        status_code=500,
        debug_info={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        },
        log=False,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    handlers: list[tuple[type[Exception], Any]] = [
        (AppException, app_exception_handler),
        (HTTPException, http_exception_handler),
        (RequestValidationError, validation_exception_handler),
        (ValidationError, pydantic_exception_handler),
        (OpenAIAPIError, openai_exception_handler),
        (Exception, generic_exception_handler),
    ]
    for exc_class, handler in handlers:
        app.add_exception_handler(exc_class, handler)


__all__ = [
    "AppException",
    "BatchAlreadyActiveError",
    "BatchNotStartedError",
    "EmptyTranscriptError",
    "ExternalServiceError",
    "InvalidInputTypeError",
    "MissingVectorStoresError",
    "NoChunksTranscribedError",
    "PayloadTooLargeError",
    "RoutingClassificationMalformedError",
    "TranscriptionFailedError",
    "UnknownAgentError",
    "UnsupportedInputTypeError",
    "ValidationException",
    "app_exception_handler",
    "generic_exception_handler",
    "http_exception_handler",
    "openai_exception_handler",
    "pydantic_exception_handler",
    "register_exception_handlers",
    "validation_exception_handler",
]
