"""Shared test fixtures for the Agent Relay test suite.

This module provides common fixtures used across all test modules,
including mocks for the OpenAI SDK and the Agents SDK.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before test collection
# ============================================================================


#: Every settings field the application reads, set explicitly on the double
SETTINGS_VALUES: dict[str, Any] = {
    "app_env": "test",
    "api_provider": "openai",
    "openai_api_key": "test-openai-key",
    "openai_api_base_url": "https://api.openai.com/v1",
    "azure_openai_api_key": "test-azure-key",
    "azure_openai_endpoint": "https://test.openai.azure.com/",
    "azure_endpoint_str": "https://test.openai.azure.com/",
    "openai_model": "gpt-4.1",
    "routing_model": None,
    "effective_routing_model": "gpt-4.1",
    "transcription_model": "whisper-1",
    "transcription_language": "en",
    "realtime_model": "gpt-realtime",
    "realtime_voice": "alloy",
    "default_processing_mode": "sequential",
    "max_audio_upload_bytes": 25 * 1024 * 1024,
    "debug": False,
    "http_request_logging": False,
    "enable_content_logging": False,
    "http_read_timeout": 600.0,
    "api_host": "127.0.0.1",
    "api_port": 8000,
    "app_version": "1.0.0-test",
    "cors_allow_origins": "*",
    "cors_origins_list": ["*"],
    "is_development": False,
}


def build_mock_settings() -> MagicMock:
    mock_settings = MagicMock()
    for name, value in SETTINGS_VALUES.items():
        setattr(mock_settings, name, value)
    return mock_settings


def pytest_configure(config: pytest.Config) -> None:
    """Configure settings mock before any test modules are imported.

    This hook runs before test collection, which is when module-level
    imports happen. We patch get_settings here to prevent ValidationError
    on CI where .env is not available.
    """
    mock_settings = build_mock_settings()

    # Store for later use - cast to Any to avoid mypy attr-defined errors
    cfg: Any = config
    cfg._mock_settings = mock_settings

    # Patch get_settings at the module level BEFORE any imports
    patcher = patch("core.constants.get_settings", return_value=mock_settings)
    patcher.start()
    cfg._settings_patcher = patcher


def pytest_unconfigure(config: pytest.Config) -> None:
    """Clean up settings mock after all tests complete."""
    patcher = getattr(config, "_settings_patcher", None)
    if patcher:
        patcher.stop()


# ============================================================================
# Test Isolation: Settings Management (MUST BE FIRST)
# ============================================================================


@pytest.fixture(autouse=True, scope="function")
def reset_settings_singleton() -> Generator[None, None, None]:
    """Reset settings singleton before each test to prevent state pollution."""
    from core import constants

    constants._settings_manager.clear()
    yield
    constants._settings_manager.clear()


@pytest.fixture
def mock_settings(request: pytest.FixtureRequest) -> MagicMock:
    """The settings double installed by pytest_configure."""
    settings: MagicMock = request.config._mock_settings  # type: ignore[attr-defined]
    return settings


@pytest.fixture(autouse=True)
def restore_mock_settings(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Undo per-test changes to the shared settings double."""
    settings: MagicMock = request.config._mock_settings  # type: ignore[attr-defined]
    yield
    for name, value in SETTINGS_VALUES.items():
        setattr(settings, name, list(value) if isinstance(value, list) else value)


# ============================================================================
# Mock External Dependencies
# ============================================================================


@pytest.fixture
def mock_openai_client() -> Mock:
    """Mock AsyncOpenAI client covering the endpoints the app calls."""
    client = Mock()
    client.conversations.create = AsyncMock(return_value=Mock(id="conv_test123"))
    client.audio.transcriptions.create = AsyncMock(return_value=Mock(text="hello world"))
    client.vector_stores.create = AsyncMock()
    client.vector_stores.list = AsyncMock()
    client.vector_stores.files.list = AsyncMock()
    client.vector_stores.files.create = AsyncMock()
    client.files.create = AsyncMock()
    client.realtime.client_secrets.create = AsyncMock(return_value=Mock(value="ek_test123", expires_at=1760000000))
    client.close = AsyncMock()
    return client

