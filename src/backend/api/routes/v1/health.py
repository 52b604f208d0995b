"""
Health check endpoints (v1).

Liveness plus the configured provider and model names.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from api.dependencies import AppSettings
from models.schemas.health import HealthResponse, LivenessResponse, ModelsHealth

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Service status with the configured provider and models.",
    responses={
        200: {
            "description": "Service health status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "provider": "openai",
                        "uptime_seconds": 12.5,
                        "models": {"generation": "gpt-4.1", "routing": "gpt-4.1", "transcription": "whisper-1"},
                    }
                }
            },
        }
    },
    tags=["Health"],
)
async def health_check(request: Request, settings: AppSettings) -> HealthResponse:
    """Health check endpoint."""
    started_at = getattr(request.app.state, "started_at", None)
    supervisor = getattr(request.app.state, "supervisor", None)

    return HealthResponse(
        status="healthy" if supervisor is not None else "degraded",
        version=settings.app_version,
        provider=settings.api_provider,
        uptime_seconds=round(time.monotonic() - started_at, 2) if started_at is not None else 0.0,
        models=ModelsHealth(
            generation=settings.openai_model,
            routing=settings.effective_routing_model,
            transcription=settings.transcription_model,
        ),
    )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Confirms the process is running.",
    tags=["Health"],
)
async def liveness_check() -> LivenessResponse:
    return LivenessResponse(alive=True)
