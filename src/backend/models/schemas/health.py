"""
Health check API schemas.

Provides response models for health and liveness probes.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ModelsHealth(BaseModel):
    """Configured model names."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "generation": "gpt-4.1",
                "routing": "gpt-4.1",
                "transcription": "whisper-1",
            }
        }
    )

    generation: str = Field(..., description="Model used by the sub-agents")
    routing: str = Field(..., description="Model used for routing classification")
    transcription: str = Field(..., description="Speech-to-text model")


class HealthResponse(BaseModel):
    """Health check response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "provider": "openai",
                "uptime_seconds": 3600.5,
                "models": {"generation": "gpt-4.1", "routing": "gpt-4.1", "transcription": "whisper-1"},
            }
        }
    )

    status: Literal["healthy", "degraded"] = Field(..., description="Overall service status")
    version: str = Field(..., description="Application version")
    provider: str = Field(..., description="Configured API provider")
    uptime_seconds: float = Field(..., ge=0, description="Seconds since startup")
    models: ModelsHealth


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    alive: bool = Field(default=True, description="Process is running")


__all__ = ["HealthResponse", "LivenessResponse", "ModelsHealth"]
