from unittest.mock import MagicMock, patch

import pytest

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from openai import AuthenticationError, RateLimitError
from pydantic import BaseModel, ValidationError

from api.middleware.exception_handlers import (
    AppException,
    BatchAlreadyActiveError,
    EmptyTranscriptError,
    ExternalServiceError,
    InvalidInputTypeError,
    NoChunksTranscribedError,
    PayloadTooLargeError,
    TranscriptionFailedError,
    UnknownAgentError,
    ValidationException,
    register_exception_handlers,
)
from models.error_models import ErrorCode


# Setup a test app
@pytest.fixture
def test_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    return app


@pytest.fixture
def client(test_app: FastAPI) -> TestClient:
    # raise_server_exceptions=False ensures that we get the 500 response
    # instead of the client re-raising the exception.
    return TestClient(test_app, raise_server_exceptions=False)


def test_app_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/app_error")
    def raise_app_error() -> None:
        raise AppException(code=ErrorCode.INTERNAL_ERROR, message="Test error", details={"foo": "bar"})

    response = client.get("/app_error")
    assert response.status_code == 500
    data = response.json()["error"]
    assert data["code"] == ErrorCode.INTERNAL_ERROR.value
    assert data["message"] == "Test error"
    # exclude_none=True removes code/value if None
    assert data["details"] == [{"field": "foo", "message": "bar"}]


def test_unknown_agent(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/unknown_agent")
    def raise_unknown_agent() -> None:
        raise UnknownAgentError("web")

    response = client.get("/unknown_agent")
    assert response.status_code == 404
    data = response.json()["error"]
    assert data["code"] == ErrorCode.UNKNOWN_AGENT.value
    assert data["message"] == "Agent 'web' not found"
    assert data["path"] == "/unknown_agent"


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (TranscriptionFailedError(), 502, ErrorCode.TRANSCRIPTION_FAILED),
        (EmptyTranscriptError(), 422, ErrorCode.EMPTY_TRANSCRIPT),
        (NoChunksTranscribedError(3), 422, ErrorCode.NO_CHUNKS_TRANSCRIBED),
        (BatchAlreadyActiveError(2), 409, ErrorCode.BATCH_ALREADY_ACTIVE),
        (PayloadTooLargeError("clip.webm", 10, 5), 413, ErrorCode.FILE_TOO_LARGE),
        (InvalidInputTypeError("direct", "bytes"), 500, ErrorCode.INVALID_INPUT_TYPE),
        (ExternalServiceError("OpenAI", "stream broke", code=ErrorCode.OPENAI_ERROR), 502, ErrorCode.OPENAI_ERROR),
    ],
)
def test_domain_error_status(
    test_app: FastAPI, client: TestClient, exc: AppException, status: int, code: ErrorCode
) -> None:
    @test_app.get("/domain_error")
    def raise_domain_error() -> None:
        raise exc

    with patch("api.middleware.exception_handlers.logger"):
        response = client.get("/domain_error")
    assert response.status_code == status
    assert response.json()["error"]["code"] == code.value


def test_transcription_failure_hides_provider_message(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/transcription")
    def raise_transcription() -> None:
        raise TranscriptionFailedError(cause=RuntimeError("upstream said sk-secret"))

    with patch("api.middleware.exception_handlers.logger"):
        response = client.get("/transcription")
    data = response.json()["error"]
    assert data["message"] == "Audio transcription failed"
    assert "sk-secret" not in response.text


def test_validation_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/validation_error")
    def raise_validation_error() -> None:
        raise ValidationException(message="Invalid data", field="input")

    response = client.get("/validation_error")
    assert response.status_code == 422
    data = response.json()["error"]
    assert data["code"] == ErrorCode.VALIDATION_ERROR.value
    assert data["message"] == "Invalid data"
    assert data["details"] == [{"field": "input", "message": "Invalid data"}]


def test_pydantic_request_validation_error(test_app: FastAPI, client: TestClient) -> None:
    """Test FastAPI RequestValidationError handler (auto-triggered by bad body)."""

    class Item(BaseModel):
        name: str
        age: int

    @test_app.post("/pydantic")
    def create_item(item: Item) -> Item:
        return item

    # Send invalid data (string for int)
    response = client.post("/pydantic", json={"name": "foo", "age": "not_an_int"})
    assert response.status_code == 422
    data = response.json()["error"]
    assert data["code"] == ErrorCode.VALIDATION_ERROR.value
    # FastAPI request validation raises RequestValidationError -> validation_exception_handler
    assert data["message"] == "Request validation failed"
    assert len(data["details"]) > 0
    assert data["details"][0]["field"] == "body.age"


def test_pydantic_manual_validation_error(test_app: FastAPI, client: TestClient) -> None:
    """Test manual Pydantic ValidationError handler."""

    class User(BaseModel):
        email: str

    @test_app.get("/manual_pydantic")
    def manual_error() -> None:
        User(email=123)  # type: ignore[arg-type]

    response = client.get("/manual_pydantic")
    assert response.status_code == 422
    data = response.json()["error"]
    assert data["code"] == ErrorCode.VALIDATION_ERROR.value
    assert data["message"] == "Data validation failed"  # Pydantic handler message
    assert len(data["details"]) > 0


def test_openai_auth_error(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/openai_auth")
    def raise_openai_auth() -> None:
        raise AuthenticationError("Invalid key", response=MagicMock(), body=None)

    with patch("api.middleware.exception_handlers.logger"):
        response = client.get("/openai_auth")
    assert response.status_code == 502
    data = response.json()["error"]
    assert data["code"] == ErrorCode.OPENAI_AUTH_FAILED.value
    assert "OpenAI authentication failed" in data["message"]


def test_openai_rate_limit(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/openai_rate")
    def raise_openai_rate() -> None:
        raise RateLimitError("Too many", response=MagicMock(), body=None)

    response = client.get("/openai_rate")
    assert response.status_code == 429
    data = response.json()["error"]
    assert data["code"] == ErrorCode.EXTERNAL_RATE_LIMITED.value


def test_generic_exception(test_app: FastAPI, client: TestClient) -> None:
    @test_app.get("/generic")
    def raise_generic() -> None:
        raise ValueError("Boom")

    with patch("api.middleware.exception_handlers.logger"):
        response = client.get("/generic")
        assert response.status_code == 500
        data = response.json()["error"]
        assert data["code"] == ErrorCode.INTERNAL_UNEXPECTED.value
        assert data["message"] == "An unexpected error occurred"
        assert "debug" not in data


def test_debug_mode_info(test_app: FastAPI, client: TestClient) -> None:
    # Mock settings to enable debug
    mock_settings = MagicMock()
    mock_settings.debug = True

    with patch("api.middleware.exception_handlers.get_settings", return_value=mock_settings):

        @test_app.get("/debug_test")
        def raise_val_error() -> None:
            raise ValueError("Debug boom")

        # Suppress logging
        with patch("api.middleware.exception_handlers.logger"):
            response = client.get("/debug_test")
            assert response.status_code == 500
            data = response.json()["error"]
            assert "debug" in data
            assert data["debug"]["exception_type"] == "ValueError"
            assert data["debug"]["exception_message"] == "Debug boom"


def test_debug_mode_app_exception_cause(test_app: FastAPI, client: TestClient) -> None:
    mock_settings = MagicMock()
    mock_settings.debug = True

    @test_app.get("/debug_cause")
    def raise_with_cause() -> None:
        raise TranscriptionFailedError(cause=RuntimeError("timeout"))

    with (
        patch("api.middleware.exception_handlers.get_settings", return_value=mock_settings),
        patch("api.middleware.exception_handlers.logger"),
    ):
        response = client.get("/debug_cause")
    debug = response.json()["error"]["debug"]
    assert debug == {"exception_type": "TranscriptionFailedError", "cause": "timeout"}


@pytest.mark.parametrize(
    ("status_code", "code"),
    [(409, ErrorCode.RESOURCE_CONFLICT), (418, ErrorCode.INTERNAL_ERROR)],
)
def test_http_exception(test_app: FastAPI, client: TestClient, status_code: int, code: ErrorCode) -> None:
    @test_app.get("/http_error")
    def raise_http_error() -> None:
        raise HTTPException(status_code=status_code, detail="Nope")

    response = client.get("/http_error")

    assert response.status_code == status_code
    data = response.json()["error"]
    assert data["code"] == code.value
    assert data["message"] == "Nope"
    assert data["path"] == "/http_error"
