"""Shared test fixtures for the Agent Relay test suite.

Fixtures here do not depend on application imports; anything that needs
the patched settings lives in tests/backend/conftest.py.
"""

from __future__ import annotations

import struct

from collections.abc import Generator

import pytest

# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture
def mock_env(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, str], None, None]:
    """Mock environment variables for testing."""
    env_vars = {
        "API_PROVIDER": "openai",
        "OPENAI_API_KEY": "test-key-123456",
        "OPENAI_MODEL": "gpt-4.1",
        "AZURE_OPENAI_API_KEY": "test-azure-key",
        "AZURE_OPENAI_ENDPOINT": "https://test.openai.azure.com",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    yield env_vars


# ============================================================================
# Audio Fixtures
# ============================================================================


@pytest.fixture
def webm_bytes() -> bytes:
    """A few bytes starting with the EBML magic number; content is never decoded."""
    return b"\x1a\x45\xdf\xa3" + b"\x00" * 28


@pytest.fixture
def wav_bytes() -> bytes:
    """Minimal RIFF/WAVE header with an empty data chunk."""
    fmt = struct.pack("<HHIIHH", 1, 1, 16000, 32000, 2, 16)
    return b"RIFF" + struct.pack("<I", 36) + b"WAVE" + b"fmt " + struct.pack("<I", 16) + fmt + b"data" + b"\x00" * 4
