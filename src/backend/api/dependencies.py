from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from api.services.streaming import StreamingCoordinator
from api.services.supervisor import Supervisor
from core.constants import Settings, get_settings
from integrations.model_client import ModelClient
from integrations.realtime_sessions import RealtimeSessionClient
from integrations.vector_stores import VectorStoreClient


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Settings are validated at startup and cached.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


def get_model_client(request: Request) -> ModelClient:
    """Get the Model Client from application state."""
    return request.app.state.model_client


def get_supervisor(request: Request) -> Supervisor:
    """Get the Supervisor from application state."""
    return request.app.state.supervisor


def get_coordinator(request: Request) -> StreamingCoordinator:
    """Get the Streaming Coordinator from application state."""
    return request.app.state.coordinator


def get_vector_stores(request: Request) -> VectorStoreClient:
    return request.app.state.vector_stores


def get_realtime_sessions(request: Request) -> RealtimeSessionClient:
    return request.app.state.realtime_sessions


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
ModelClientDep = Annotated[ModelClient, Depends(get_model_client)]
SupervisorDep = Annotated[Supervisor, Depends(get_supervisor)]
CoordinatorDep = Annotated[StreamingCoordinator, Depends(get_coordinator)]
VectorStoresDep = Annotated[VectorStoreClient, Depends(get_vector_stores)]
RealtimeSessionsDep = Annotated[RealtimeSessionClient, Depends(get_realtime_sessions)]
