"""Pytest configuration and fixtures."""

import os
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from cortexlite.structured import SchemaTransformer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clean environment variables before each test."""
    # Remove any CORTEXLITE_ env vars that might interfere
    for key in list(os.environ.keys()):
        if key.startswith("CORTEXLITE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def transformer() -> SchemaTransformer:
    """A transformer with a cold cache."""
    return SchemaTransformer()


@pytest.fixture
def person_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "age": {"type": "number"},
        },
    }


@pytest.fixture
def mock_generate_text() -> AsyncMock:
    """An async text generator replying with a fixed JSON object."""
    return AsyncMock(
        return_value={
            "text": '{"name": "John", "age": 30}',
            "finish_reason": "stop",
            "usage": {"prompt_tokens": 100, "completion_tokens": 50},
        }
    )


@pytest.fixture
def mock_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary .env file."""
    # Registered so monkeypatch unsets whatever the file loads
    for key in ("SNOWFLAKE_API_KEY", "CORTEXLITE_DEFAULT_MODEL", "CORTEXLITE_LOG_LEVEL",
                "CORTEXLITE_MIN_TOKENS"):
        monkeypatch.delenv(key, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        """
SNOWFLAKE_API_KEY=test-pat
CORTEXLITE_DEFAULT_MODEL=cortex/llama3.1-70b
CORTEXLITE_LOG_LEVEL=DEBUG
CORTEXLITE_MIN_TOKENS=4096
"""
    )
    return env_file
