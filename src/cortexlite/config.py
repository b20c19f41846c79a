"""Configuration management and environment loading."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .types import ConfigError


@dataclass
class CortexliteConfig:
    """Main configuration for the Cortexlite client."""

    # Default model to use if not specified per-request
    default_model: str | None = None

    # litellm provider prefix prepended to normalized model ids
    provider_prefix: str = "snowflake/"

    # Token budget for structured output when the caller gives none
    default_max_tokens: int = 2048

    # Floor applied to every request's max_tokens (None = no floor)
    min_tokens: int | None = None

    # Sampling temperature (dropped for models that reject it)
    temperature: float | None = None

    # Logging
    log_level: str = "INFO"

    # Default kwargs to pass to every litellm call
    default_kwargs: dict[str, Any] = field(default_factory=dict)

    # Timeout in seconds
    timeout: float = 600.0

    @classmethod
    def from_env(cls) -> "CortexliteConfig":
        """Create config from environment variables."""
        config = cls()

        # Read config from CORTEXLITE_ prefixed env vars
        if model := os.getenv("CORTEXLITE_DEFAULT_MODEL"):
            config.default_model = model

        prefix = os.getenv("CORTEXLITE_PROVIDER_PREFIX")
        if prefix is not None:
            config.provider_prefix = prefix

        if max_tokens := os.getenv("CORTEXLITE_MAX_TOKENS"):
            try:
                config.default_max_tokens = int(max_tokens)
            except ValueError:
                raise ConfigError(f"Invalid CORTEXLITE_MAX_TOKENS: {max_tokens}")

        if min_tokens := os.getenv("CORTEXLITE_MIN_TOKENS"):
            try:
                config.min_tokens = int(min_tokens)
            except ValueError:
                raise ConfigError(f"Invalid CORTEXLITE_MIN_TOKENS: {min_tokens}")

        if temp := os.getenv("CORTEXLITE_TEMPERATURE"):
            try:
                config.temperature = float(temp)
            except ValueError:
                raise ConfigError(f"Invalid CORTEXLITE_TEMPERATURE: {temp}")

        if log_level := os.getenv("CORTEXLITE_LOG_LEVEL"):
            config.log_level = log_level.upper()

        if timeout := os.getenv("CORTEXLITE_TIMEOUT"):
            try:
                config.timeout = float(timeout)
            except ValueError:
                raise ConfigError(f"Invalid CORTEXLITE_TIMEOUT: {timeout}")

        return config


def load_env_files(
    env_file: str | Path | None = None,
    env_files: list[str | Path] | None = None,
) -> None:
    """
    Load environment variables from .env files.

    Args:
        env_file: Single env file to load
        env_files: Multiple env files to load (later files override earlier)
    """
    files_to_load: list[Path] = []

    if env_files:
        files_to_load.extend(Path(f) for f in env_files)
    elif env_file:
        files_to_load.append(Path(env_file))
    else:
        # Default: try to load .env from current directory
        default_env = Path(".env")
        if default_env.exists():
            files_to_load.append(default_env)

    for file_path in files_to_load:
        if file_path.exists():
            load_dotenv(file_path, override=True)
