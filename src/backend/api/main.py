from __future__ import annotations

import time

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from agents import set_tracing_disabled
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes import realtime
from api.routes.v1 import router as v1_router
from api.services.audio_batch import AudioBatchProcessor
from api.services.streaming import StreamingCoordinator
from api.services.sub_agents import AgentRegistry
from api.services.supervisor import Supervisor
from core.constants import Settings, get_settings
from integrations.model_client import ModelClient
from integrations.realtime_sessions import RealtimeSessionClient
from integrations.transcription import TranscriptionClient
from integrations.vector_stores import VectorStoreClient
from utils.client_factory import create_openai_client_from_settings
from utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local) - no manual dotenv loading needed
settings = get_settings()

# Log loaded settings in debug mode
if settings.debug:
    from core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(
        f"Settings: app_env={settings.app_env}, provider={settings.api_provider}, "
        f"model={settings.openai_model}, transcription_model={settings.transcription_model}"
    )

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


def build_supervisor(model_client: ModelClient, transcriber: TranscriptionClient, settings: Settings) -> Supervisor:
    """Wire the supervisor and its sub-agents around shared clients."""
    return Supervisor(
        model_client=model_client,
        transcriber=transcriber,
        batch_processor=AudioBatchProcessor(transcriber),
        agents=AgentRegistry.default(model_client),
        routing_model=settings.effective_routing_model,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: create provider clients on startup, close them on shutdown."""
    app.state.started_at = time.monotonic()

    # Tracing exports to the OpenAI platform and fails with Azure keys
    set_tracing_disabled(True)

    client = create_openai_client_from_settings(settings)
    logger.info(f"Configured {settings.api_provider} client (model: {settings.openai_model})")

    model_client = ModelClient(client, model=settings.openai_model)
    transcriber = TranscriptionClient(
        client,
        model=settings.transcription_model,
        language=settings.transcription_language,
    )
    supervisor = build_supervisor(model_client, transcriber, settings)

    app.state.openai_client = client
    app.state.model_client = model_client
    app.state.transcriber = transcriber
    app.state.vector_stores = VectorStoreClient(client)
    app.state.realtime_sessions = RealtimeSessionClient(
        client,
        model=settings.realtime_model,
        voice=settings.realtime_voice,
    )
    app.state.supervisor = supervisor
    app.state.coordinator = StreamingCoordinator(supervisor)

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")
        await client.close()
        logger.info("OpenAI client closed")


app = FastAPI(
    title="Agent Relay API",
    description="""
## Agent Relay API

Supervisor service that routes text or audio input to a direct or
retrieval-augmented (RAG) agent on OpenAI or Azure OpenAI.

### Features
- **Supervisor**: Transcribes audio, classifies the request, dispatches to a sub-agent
- **Streaming**: Server-Sent Events with transcript, text deltas and a final result
- **Batch Audio**: WebSocket recording sessions with sequential, parallel or merged transcription
- **Vector Stores**: Create and fill knowledge bases for the RAG agent
- **Chat**: Direct model calls with optional file search and response chaining
- **Realtime Sessions**: Ephemeral secrets for browser voice clients

### Versioning
API uses URL path versioning: `/api/v1/...`
Breaking changes will increment the version number.
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Health",
            "description": "Health check endpoints for monitoring and orchestration",
        },
        {
            "name": "Agents",
            "description": "Supervisor runs, streaming and conversation creation",
        },
        {
            "name": "Vector Stores",
            "description": "Knowledge bases searched by the RAG agent",
        },
        {
            "name": "Chat",
            "description": "Direct model calls outside the supervisor",
        },
        {
            "name": "Realtime",
            "description": "Ephemeral session secrets for the Realtime API",
        },
        {
            "name": "WebSocket",
            "description": "Realtime batch audio and text streaming",
        },
    ],
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Request context middleware (adds request ID tracking)
# Note: Middleware is executed in reverse order of registration
app.add_middleware(RequestContextMiddleware)

# CORS configuration (uses Settings for origin control)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)

# Routes - API v1
app.include_router(v1_router, prefix="/api/v1")

# WebSocket routes (not versioned - protocol-level)
app.include_router(realtime.router, tags=["WebSocket"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        reload_dirs=["src"],
        log_config=None,
    )
