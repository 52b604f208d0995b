"""
Constants and configuration for Agent Relay.
Centralizes protocol values, defaults and environment-driven settings.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

import os
import threading

from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
)

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of rotated agent-turn log files to keep.
LOG_BACKUP_COUNT_AGENTS = 5

#: Number of rotated error log files to keep.
LOG_BACKUP_COUNT_ERRORS = 3

#: Characters of user input / model output shown in log previews.
LOG_PREVIEW_LENGTH = 50

#: Length of the per-process logger instance id.
LOGGER_INSTANCE_ID_LENGTH = 8

# ============================================================================
# Conversations
# ============================================================================

#: Prefix every provider-side conversation id starts with.
#: Caller-supplied ids without it are treated as absent.
CONVERSATION_ID_PREFIX = "conv_"

# ============================================================================
# Agents
# ============================================================================

#: Name of the routing agent (also the default target agent)
AGENT_SUPERVISOR = "supervisor"

#: Sub-agent answering without tools
AGENT_DIRECT = "direct"

#: Sub-agent answering with file search over vector stores
AGENT_RAG = "rag"

#: Values accepted for an explicit target agent
TARGET_AGENTS: tuple[str, ...] = (AGENT_SUPERVISOR, AGENT_DIRECT, AGENT_RAG)

# ============================================================================
# Audio
# ============================================================================

#: MIME type assumed for audio uploads that do not declare one
DEFAULT_AUDIO_MIME_TYPE = "audio/webm"

#: Batch processing modes
PROCESSING_MODE_SEQUENTIAL = "sequential"
PROCESSING_MODE_PARALLEL = "parallel"
PROCESSING_MODE_MERGED = "merged"

#: Mode used when a batch does not name one (or names an unknown one)
DEFAULT_PROCESSING_MODE = PROCESSING_MODE_SEQUENTIAL

#: File extension used for the upload name when a MIME type has no known mapping
AUDIO_FILENAME_FALLBACK = "audio.webm"

#: MIME types the standard ``mimetypes`` table does not know about
AUDIO_EXTENSION_OVERRIDES: dict[str, str] = {
    "audio/webm": ".webm",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/flac": ".flac",
}

# ============================================================================
# Agents SDK Event Types
# ============================================================================

#: Raw model response event (token deltas) from Runner.run_streamed
RAW_RESPONSE_EVENT = "raw_response_event"

#: Response API delta carrying output text
RESPONSE_OUTPUT_TEXT_DELTA = "response.output_text.delta"

# ============================================================================
# Stream Event Names (SSE / WebSocket)
# ============================================================================

#: Conversation id assigned to the request
EVENT_CONVERSATION = "conversation"

#: Transcript produced from the audio input
EVENT_TRANSCRIPT = "transcript"

#: Incremental model output
EVENT_TEXT_DELTA = "text_delta"

#: Complete model output
EVENT_FINAL = "final"

#: Terminal failure (mutually exclusive with done)
EVENT_ERROR = "error"

#: Terminal success
EVENT_DONE = "done"

#: Comment frame sent first so buffering proxies flush the response headers
SSE_PADDING = ":\n\n"

# ============================================================================
# Stream Error Messages
# ============================================================================

#: Shown when the audio stage of a streaming request fails
ERROR_AUDIO_PROCESSING_FAILED = "Audio processing failed"

#: Shown when routing or generation of a streaming request fails
ERROR_TEXT_PROCESSING_FAILED = "Text processing failed"

#: Shown when a request carries neither text nor audio
ERROR_NO_INPUT = "No input provided (text or audio)"

#: Generic message for provider-side transcription failures
ERROR_TRANSCRIPTION_FAILED = "Audio transcription failed"

# ============================================================================
# WebSocket Client Message Types
# ============================================================================

WS_MSG_BATCH_START = "batch_start"
WS_MSG_BATCH_APPEND = "batch_append"
WS_MSG_BATCH_COMMIT = "batch_commit"
WS_MSG_BATCH_RESET = "batch_reset"
WS_MSG_MESSAGE = "message"

#: Server acknowledgement for batch lifecycle messages
WS_MSG_BATCH_ACK = "batch_ack"

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================

#: Valid environment names for configuration loading
Environment = Literal["development", "production", "test"]

#: Backend source directory for .env file resolution
_BACKEND_DIR = Path(__file__).parent.parent


def _get_env_files() -> list[Path]:
    """Determine which .env files to load based on APP_ENV.

    Load order (later files override earlier - pydantic-settings last-wins):
    1. .env (base defaults) - lowest priority
    2. .env.{environment} (environment-specific overrides)
    3. .env.local (local developer overrides, gitignored) - highest priority

    Returns:
        List of Path objects for env files that exist.
    """
    env_name = os.getenv("APP_ENV", "development").lower()
    if env_name not in ("development", "production", "test"):
        env_name = "development"

    candidates = [
        _BACKEND_DIR / ".env",
        _BACKEND_DIR / f".env.{env_name}",
        _BACKEND_DIR / ".env.local",
    ]
    return [p for p in candidates if p.exists()]


class Settings(BaseSettings):
    """Environment settings with validation and environment-specific file support.

    Configuration priority (highest to lowest):
    1. Values passed to Settings() constructor
    2. Environment variables
    3. .env.local > .env.{APP_ENV} > .env (dotenv files, last wins)

    Validates at startup to fail fast on configuration errors.
    Supports both Azure OpenAI and base OpenAI API providers.
    """

    # Environment identification
    app_env: Environment = Field(default="development", description="Application environment")

    # API provider selection
    api_provider: str = Field(default="openai", description="API provider: 'azure' or 'openai'")

    # Base OpenAI settings (required if provider=openai)
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for authentication")
    openai_api_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API base URL")

    # Azure OpenAI settings (required if provider=azure)
    azure_openai_api_key: str | None = Field(default=None, description="Azure OpenAI API key for authentication")
    azure_openai_endpoint: HttpUrl | None = Field(default=None, description="Azure OpenAI endpoint URL")

    # Models
    openai_model: str = Field(default="gpt-4.1", description="Model used by the sub-agents")
    routing_model: str | None = Field(default=None, description="Model used for routing (defaults to openai_model)")
    transcription_model: str = Field(default="whisper-1", description="Speech-to-text model")
    transcription_language: str = Field(default="en", description="ISO-639-1 language hint for transcription")
    realtime_model: str = Field(default="gpt-realtime", description="Model for browser Realtime API sessions")
    realtime_voice: str = Field(default="alloy", description="Voice for browser Realtime API sessions")

    # Audio ingestion
    default_processing_mode: str = Field(
        default=DEFAULT_PROCESSING_MODE,
        description="Batch mode used when a request does not name one",
    )
    max_audio_upload_bytes: int = Field(
        default=25 * 1024 * 1024,
        description="Maximum size of a single uploaded audio file (bytes)",
    )

    # Debug and logging
    debug: bool = Field(default=False, description="Enable debug logging")
    http_request_logging: bool = Field(default=False, description="Enable HTTP request/response logging")
    enable_content_logging: bool = Field(
        default=False,
        description="Include (redacted) user input and model output previews in logs",
    )

    # HTTP client timeouts
    http_read_timeout: float = Field(default=600.0, description="HTTP read timeout for streaming (seconds)")

    # API server
    api_port: int = Field(default=8000, description="FastAPI port")
    api_host: str = Field(default="0.0.0.0", description="FastAPI host")
    app_version: str = Field(default="1.0.0", description="Application version")

    # CORS
    cors_allow_origins: str = Field(default="*", description="Comma-separated list of allowed CORS origins")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority for environment-specific config.

        Priority (highest to lowest):
        1. init_settings - Values passed to Settings() constructor
        2. env_settings - Environment variables
        3. dotenv files - .env.local > .env.{APP_ENV} > .env (last-wins in list)
        """
        dotenv_source = DotEnvSettingsSource(
            settings_cls,
            env_file=_get_env_files(),
            env_file_encoding="utf-8",
        )
        return (init_settings, env_settings, dotenv_source)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | None) -> str:
        """Validate and normalize APP_ENV value."""
        if v is None:
            return "development"
        normalized = str(v).lower()
        if normalized not in ("development", "production", "test"):
            raise ValueError(f"app_env must be 'development', 'production', or 'test', got '{v}'")
        return normalized

    @field_validator("api_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate API provider selection."""
        value = v.lower()
        if value not in ("azure", "openai"):
            raise ValueError("api_provider must be 'azure' or 'openai'")
        return value

    @field_validator("azure_openai_endpoint")
    @classmethod
    def ensure_endpoint_format(cls, v: HttpUrl | None) -> HttpUrl | None:
        """Ensure endpoint URL ends with trailing slash for OpenAI client."""
        if v is None:
            return None
        url_str = str(v)
        if not url_str.endswith("/"):
            return HttpUrl(url_str + "/")
        return v

    @field_validator("openai_api_key", "azure_openai_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Basic validation of API key format."""
        if v is not None and len(v) < 10:
            raise ValueError("Invalid API key format")
        return v

    @field_validator("default_processing_mode")
    @classmethod
    def validate_processing_mode(cls, v: str) -> str:
        """Validate the default batch processing mode."""
        allowed = {PROCESSING_MODE_SEQUENTIAL, PROCESSING_MODE_PARALLEL, PROCESSING_MODE_MERGED}
        value = v.lower()
        if value not in allowed:
            raise ValueError(f"default_processing_mode must be one of {sorted(allowed)}")
        return value

    @model_validator(mode="after")
    def validate_provider_credentials(self) -> Settings:
        """Validate that required credentials are present for the selected provider."""
        if self.api_provider == "azure":
            if not self.azure_openai_api_key:
                raise ValueError(
                    "Configuration Error: azure_openai_api_key is required when api_provider='azure'.\n"
                    "Set AZURE_OPENAI_API_KEY in your .env file or environment."
                )
            if not self.azure_openai_endpoint:
                raise ValueError(
                    "Configuration Error: azure_openai_endpoint is required when api_provider='azure'.\n"
                    "Set AZURE_OPENAI_ENDPOINT in your .env file or environment."
                )
        elif not self.openai_api_key:
            raise ValueError(
                "Configuration Error: openai_api_key is required when api_provider='openai'.\n"
                "Set OPENAI_API_KEY in your .env file or environment."
            )
        return self

    @property
    def azure_endpoint_str(self) -> str:
        """Get endpoint as string for OpenAI client."""
        if self.azure_openai_endpoint is None:
            return ""
        return str(self.azure_openai_endpoint)

    @property
    def effective_routing_model(self) -> str:
        """Model used for routing classification."""
        return self.routing_model or self.openai_model

    @property
    def cors_origins_list(self) -> list[str]:
        """CORS origins parsed from the comma-separated setting."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"


# ============================================================================
# Settings Management (Thread-safe)
# ============================================================================


class _SettingsManager:
    """Thread-safe settings singleton.

    Uses a class to avoid global statement warnings from linters.
    """

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def get(self) -> Settings:
        """Get the cached settings instance, loading it on first use.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        if self._instance is not None:
            return self._instance

        with self._lock:
            if self._instance is None:
                self._instance = Settings()
            return self._instance

    def reload(self) -> Settings:
        """Force reload settings from environment files."""
        with self._lock:
            self._instance = Settings()
            return self._instance

    def clear(self) -> None:
        """Clear cached settings instance."""
        with self._lock:
            self._instance = None


# Module-level singleton manager
_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """Get settings instance.

    This is the primary entry point for accessing application settings.
    Settings are validated on first access and cached for performance.

    Raises:
        ValueError: If required configuration is missing or invalid.
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Force reload settings from environment files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    """Clear cached settings instance.

    Primarily useful for testing to ensure fresh settings on each test.
    """
    _settings_manager.clear()
