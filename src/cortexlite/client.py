"""Main Cortexlite client class."""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .config import CortexliteConfig, load_env_files
from .core.completion import litellm_text_generator
from .core.messages import format_messages
from .core.request import transform_request_body
from .structured import StructuredOutputGenerator, check_object_request, validate_object
from .structured.schema import SchemaTransformer
from .templating.engine import TemplateEngine
from .types import (
    ConfigError,
    GenerateTextFn,
    GenerationResult,
    Messages,
    TextGenerationResult,
)

logger = logging.getLogger(__name__)


class Cortexlite:
    """
    Client for Snowflake Cortex models through litellm.

    Features:
    - Schema cleaning for Cortex's restricted JSON schema dialect
    - Prompt-engineered structured output for models without native support
    - Jinja templating for the structured output prompt
    - Async-first with sync wrappers
    """

    def __init__(
        self,
        # Environment
        env_file: str | Path | None = None,
        env_files: list[str | Path] | None = None,
        # Configuration
        config: CortexliteConfig | None = None,
        default_model: str | None = None,
        provider_prefix: str | None = None,
        min_tokens: int | None = None,
        temperature: float | None = None,
        # Logging
        log_level: str = "INFO",
        # Defaults
        default_kwargs: dict[str, Any] | None = None,
        timeout: float = 600.0,
        # Structured output
        transformer: SchemaTransformer | None = None,
        template_engine: TemplateEngine | None = None,
    ):
        """
        Initialize the Cortexlite client.

        Args:
            env_file: Path to .env file to load
            env_files: Multiple .env files to load (later overrides earlier)
            config: Full configuration object (overrides individual params)
            default_model: Default model to use if not specified per-request
            provider_prefix: litellm provider prefix (default "snowflake/")
            min_tokens: Floor applied to every request's max_tokens
            temperature: Default sampling temperature
            log_level: Logging level
            default_kwargs: Default kwargs for all litellm calls
            timeout: Request timeout in seconds
            transformer: Schema transformer (defaults to a client-owned one)
            template_engine: Engine holding the structured output prompt
        """
        # Load environment files
        load_env_files(env_file, env_files)

        # Build configuration
        if config:
            self._config = config
        else:
            # Start with env-based config, then override with explicit params
            self._config = CortexliteConfig.from_env()

            if default_model:
                self._config.default_model = default_model
            if provider_prefix is not None:
                self._config.provider_prefix = provider_prefix
            if min_tokens is not None:
                self._config.min_tokens = min_tokens
            if temperature is not None:
                self._config.temperature = temperature
            if log_level != "INFO":
                self._config.log_level = log_level
            if default_kwargs:
                self._config.default_kwargs = default_kwargs
            if timeout != 600.0:
                self._config.timeout = timeout

        # Setup logging
        logging.basicConfig(level=getattr(logging, self._config.log_level))

        self._generator = StructuredOutputGenerator(
            transformer=transformer,
            engine=template_engine,
        )

    def _resolve_model(self, model: str | None) -> str:
        resolved = model or self._config.default_model
        if not resolved:
            raise ConfigError(
                "No model specified. Either pass model= or set default_model "
                "in config or CORTEXLITE_DEFAULT_MODEL env var."
            )
        return resolved

    def text_generator(
        self,
        model: str | None = None,
        temperature: float | None = None,
        structured_output: bool = False,
        **kwargs: Any,
    ) -> GenerateTextFn:
        """
        Build a litellm-backed text-generation function for a model.

        Client defaults (provider prefix, min_tokens, timeout, default_kwargs)
        apply; explicit kwargs override default_kwargs.
        """
        extra_kwargs = {**self._config.default_kwargs, **kwargs}
        timeout = extra_kwargs.pop("timeout", self._config.timeout)
        return litellm_text_generator(
            self._resolve_model(model),
            provider_prefix=self._config.provider_prefix,
            temperature=temperature if temperature is not None else self._config.temperature,
            min_tokens=self._config.min_tokens,
            timeout=timeout,
            structured_output=structured_output,
            **extra_kwargs,
        )

    async def generate_text(
        self,
        messages: Messages | None = None,
        *,
        model: str | None = None,
        system: str | None = None,
        user: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> TextGenerationResult:
        """
        Generate plain text.

        Args:
            messages: Conversation so far
            model: Model to use (defaults to config.default_model)
            system: System prompt (prepended if provided)
            user: User message (appended if provided)
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            **kwargs: Additional litellm kwargs

        Returns:
            TextGenerationResult with the reply text and usage
        """
        final_messages = format_messages(messages=messages, system=system, user=user)
        generate_text = self.text_generator(model, temperature=temperature, **kwargs)
        return await generate_text(messages=final_messages, max_tokens=max_tokens)

    async def generate_object(
        self,
        schema: Any,
        object_name: str,
        messages: Messages | None = None,
        *,
        model: str | None = None,
        system: str | None = None,
        user: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        generate_text: GenerateTextFn | None = None,
        on_warning: Callable[[str], None] | None = None,
        **kwargs: Any,
    ) -> GenerationResult:
        """
        Generate a schema-shaped object through prompt engineering.

        Args:
            schema: JSON schema dict or Pydantic model class
            object_name: Name of the object being generated
            messages: Conversation so far
            model: Model to use (defaults to config.default_model)
            system: System prompt (prepended if provided)
            user: User message (appended if provided)
            max_tokens: Token budget (defaults to config.default_max_tokens)
            temperature: Sampling temperature
            generate_text: Custom text-generation function (defaults to litellm)
            on_warning: Receives capability warnings
            **kwargs: Additional litellm kwargs

        Returns:
            GenerationResult; when schema is a Pydantic model class the object
            is a validated instance of it

        Raises:
            InvalidRequestError: If schema or object_name is missing
            StructuredOutputError: If the reply cannot be parsed or validated
        """
        check_object_request(schema, object_name)

        model_id = model or self._config.default_model
        if generate_text is None:
            generate_text = self.text_generator(
                model, temperature=temperature, structured_output=True, **kwargs
            )

        final_messages = format_messages(messages=messages, system=system, user=user)

        def warn(message: str) -> None:
            logger.warning(message)
            if on_warning is not None:
                on_warning(message)

        result = await self._generator.generate_object(
            generate_text,
            schema,
            object_name,
            final_messages,
            max_tokens=max_tokens or self._config.default_max_tokens,
            model_id=model_id,
            on_warning=warn,
        )

        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return GenerationResult(
                object=validate_object(result.object, schema),
                finish_reason=result.finish_reason,
                usage=result.usage,
                warnings=result.warnings,
            )
        return result

    def generate_object_sync(self, *args: Any, **kwargs: Any) -> GenerationResult:
        """
        Synchronous version of generate_object().

        Creates a new event loop if needed. Use generate_object() in async code.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # We're already in an async context - need to use a new thread
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor() as executor:
                future = executor.submit(asyncio.run, self.generate_object(*args, **kwargs))
                return future.result()
        else:
            return asyncio.run(self.generate_object(*args, **kwargs))

    def transform_request_body(self, body: dict[str, Any]) -> tuple[bool, dict[str, Any]]:
        """Prepare an outgoing chat-completions body for Cortex."""
        return transform_request_body(body, transformer=self._generator.transformer)

    def register_template(self, name: str, template: str) -> None:
        """Register (or replace) a prompt template, e.g. "structured_output"."""
        self._generator.engine.register(name, template)

    @property
    def config(self) -> CortexliteConfig:
        """Get the client configuration."""
        return self._config

    @property
    def transformer(self) -> SchemaTransformer:
        return self._generator.transformer

    @property
    def template_engine(self) -> TemplateEngine:
        return self._generator.engine
