from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from fastapi import FastAPI

from api.main import app, build_supervisor, lifespan
from api.routes import realtime
from api.services.streaming import StreamingCoordinator
from api.services.supervisor import Supervisor
from integrations.model_client import ModelClient
from integrations.realtime_sessions import RealtimeSessionClient
from integrations.transcription import TranscriptionClient
from integrations.vector_stores import VectorStoreClient


@pytest.mark.asyncio
async def test_lifespan_wires_state_and_closes_client(mock_settings: MagicMock) -> None:
    mock_app = Mock(spec=FastAPI)
    mock_app.state = Mock()
    mock_client = Mock()
    mock_client.close = AsyncMock()

    with (
        patch("api.main.settings", mock_settings),
        patch("api.main.create_openai_client_from_settings", return_value=mock_client) as mock_create,
        patch("api.main.set_tracing_disabled") as mock_tracing,
    ):
        async with lifespan(mock_app):
            mock_create.assert_called_once_with(mock_settings)
            mock_tracing.assert_called_once_with(True)

            state = mock_app.state
            assert state.openai_client is mock_client
            assert isinstance(state.model_client, ModelClient)
            assert isinstance(state.transcriber, TranscriptionClient)
            assert isinstance(state.vector_stores, VectorStoreClient)
            assert isinstance(state.realtime_sessions, RealtimeSessionClient)
            assert state.realtime_sessions.model == mock_settings.realtime_model
            assert isinstance(state.supervisor, Supervisor)
            assert isinstance(state.coordinator, StreamingCoordinator)
            assert state.coordinator._supervisor is state.supervisor
            mock_client.close.assert_not_awaited()

    mock_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_lifespan_closes_client_on_error(mock_settings: MagicMock) -> None:
    mock_app = Mock(spec=FastAPI)
    mock_app.state = Mock()
    mock_client = Mock()
    mock_client.close = AsyncMock()

    with (
        patch("api.main.settings", mock_settings),
        patch("api.main.create_openai_client_from_settings", return_value=mock_client),
        patch("api.main.set_tracing_disabled"),
    ):
        with pytest.raises(RuntimeError):
            async with lifespan(mock_app):
                raise RuntimeError("boom")

    mock_client.close.assert_awaited_once()


def test_build_supervisor_uses_routing_model(mock_settings: MagicMock) -> None:
    mock_settings.effective_routing_model = "gpt-4.1-mini"

    supervisor = build_supervisor(Mock(spec=ModelClient), Mock(spec=TranscriptionClient), mock_settings)

    assert supervisor._routing_model == "gpt-4.1-mini"
    assert [agent["name"] for agent in supervisor.list_agents()] == ["supervisor", "direct", "rag"]


def test_http_routes_registered() -> None:
    paths = set(app.openapi()["paths"])

    assert {
        "/api/v1/health",
        "/api/v1/health/live",
        "/api/v1/agents",
        "/api/v1/agents/conversation/new",
        "/api/v1/agents/supervisor",
        "/api/v1/agents/supervisor/stream",
        "/api/v1/vector-stores",
        "/api/v1/vector-stores/{vector_store_id}/files",
        "/api/v1/chat",
        "/api/v1/realtime/session",
    } <= paths


def test_websocket_route_registered() -> None:
    # WebSocket routes are not part of the OpenAPI document
    assert "/ws/agents/supervisor" in [route.path for route in realtime.router.routes]


def test_openapi_metadata() -> None:
    assert app.title == "Agent Relay API"
    assert app.openapi_url == "/api/v1/openapi.json"
