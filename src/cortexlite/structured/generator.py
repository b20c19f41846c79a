"""Prompt-engineered structured output for models without native schema support."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from ..core.models import (
    normalize_model_id,
    supports_structured_outputs,
    unsupported_structured_outputs_warning,
)
from ..templating import TemplateEngine
from ..types import (
    GenerateTextFn,
    GenerationResult,
    InvalidRequestError,
    Message,
    Messages,
    TextGenerationResult,
    UsageInfo,
)
from .outputs import extract_and_parse
from .schema import SchemaTransformer, coerce_schema, get_default_transformer

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2048

SYSTEM_PROMPT_TEMPLATE = "structured_output"

STRUCTURED_OUTPUT_PROMPT = """\
You must respond with ONLY a valid JSON object that conforms to this schema.

CRITICAL: Return ONLY the JSON object itself - no code blocks, no variable declarations, \
no markdown, no explanations.

Schema for {{ object_name }}:
{{ schema | json_pretty }}

Example correct response format:
{"key": "value", "number": 123}

DO NOT wrap in markdown code blocks.
DO NOT use const/let/var declarations.
DO NOT add semicolons.
Just return the raw JSON object."""


def default_template_engine() -> TemplateEngine:
    """A template engine holding the built-in structured output prompt."""
    return TemplateEngine({SYSTEM_PROMPT_TEMPLATE: STRUCTURED_OUTPUT_PROMPT})


_default_engine = default_template_engine()


def build_system_prompt(
    schema: Any,
    object_name: str,
    engine: TemplateEngine | None = None,
) -> str:
    """
    Build the system instruction for prompt-engineered JSON output.

    Args:
        schema: The (already cleaned) JSON schema to embed
        object_name: Name of the object being generated
        engine: Template engine to render with (defaults to the built-in prompt)

    Returns:
        System prompt string
    """
    engine = engine or _default_engine
    return engine.render(
        SYSTEM_PROMPT_TEMPLATE,
        {"schema": schema, "object_name": object_name},
    )


def check_object_request(schema: Any, object_name: Any) -> None:
    """
    Reject a generation request that lacks a schema or an object name.

    Raises:
        InvalidRequestError: Naming the missing argument
    """
    if schema is None:
        raise InvalidRequestError("schema is required for object generation")
    if not object_name or not isinstance(object_name, str):
        raise InvalidRequestError("object_name is required for object generation")


def prepare_messages(
    schema: Any,
    object_name: str,
    messages: Messages | None = None,
    transformer: SchemaTransformer | None = None,
    engine: TemplateEngine | None = None,
) -> list[Message]:
    """
    Clean the schema and prepend the schema instructions as a system message.

    The caller's messages (none when omitted) follow unchanged, including
    their own system messages.
    """
    messages = list(messages or [])
    transformer = transformer or get_default_transformer()
    cleaned = transformer.clean(coerce_schema(schema))
    system_prompt = build_system_prompt(cleaned, object_name, engine=engine)
    logger.debug(
        "Prepared structured output prompt for %s (%d caller messages)",
        object_name,
        len(messages),
    )
    return [{"role": "system", "content": system_prompt}, *messages]


async def generate_object(
    generate_text: GenerateTextFn | None,
    schema: Any,
    object_name: str,
    messages: Messages | None = None,
    max_tokens: int | None = None,
    model_id: str | None = None,
    on_warning: Callable[[str], None] | None = None,
    transformer: SchemaTransformer | None = None,
    engine: TemplateEngine | None = None,
) -> GenerationResult:
    """
    Generate a schema-shaped object by prompting a plain text model.

    Args:
        generate_text: Text-generation function, called exactly once
        schema: JSON schema (or Pydantic model class) the object must follow
        object_name: Name of the object being generated, shown to the model
        messages: Conversation so far
        max_tokens: Token budget (defaults to DEFAULT_MAX_TOKENS)
        model_id: Model identifier, used only to warn about models without
                  native structured output
        on_warning: Receives the capability warning, if any
        transformer: Schema transformer (defaults to the process-wide one)
        engine: Template engine for the system prompt

    Returns:
        GenerationResult with the parsed object and usage metadata

    Raises:
        InvalidRequestError: If schema, object_name or generate_text is missing
        JSONExtractionError: If the reply holds no JSON object
        JSONParseError: If the reply's JSON object does not parse

    Example:
        async def generate_text(*, messages, max_tokens=None):
            return {"text": '{"name": "John", "age": 30}'}

        result = await generate_object(
            generate_text,
            schema={"type": "object", "properties": {"name": {"type": "string"}}},
            object_name="Person",
            messages=[{"role": "user", "content": "Generate a person"}],
        )
        result.object  # {"name": "John", "age": 30}
    """
    check_object_request(schema, object_name)
    if generate_text is None:
        raise InvalidRequestError("generate_text function is required")

    if model_id:
        normalized = normalize_model_id(model_id)
        if not supports_structured_outputs(normalized):
            warning = unsupported_structured_outputs_warning(normalized)
            logger.debug(warning)
            if on_warning is not None:
                on_warning(warning)

    effective_max_tokens = max_tokens or DEFAULT_MAX_TOKENS
    messages_with_schema = prepare_messages(
        schema, object_name, messages, transformer=transformer, engine=engine
    )

    raw = generate_text(messages=messages_with_schema, max_tokens=effective_max_tokens)
    if inspect.isawaitable(raw):
        raw = await raw
    text_result = TextGenerationResult.from_value(raw)

    parsed = extract_and_parse(text_result.text)

    return GenerationResult(
        object=parsed,
        finish_reason=text_result.finish_reason or "stop",
        usage=UsageInfo.from_value(text_result.usage),
        warnings=text_result.warnings,
    )


def generate_object_sync(*args: Any, **kwargs: Any) -> GenerationResult:
    """
    Synchronous version of generate_object().

    Runs the coroutine in an event loop, or in a worker thread when called
    from inside a running loop.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # We're already in an async context - need to use a new thread
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as executor:
            future = executor.submit(asyncio.run, generate_object(*args, **kwargs))
            return future.result()
    else:
        return asyncio.run(generate_object(*args, **kwargs))


class StructuredOutputGenerator:
    """
    Structured output generation bound to its own schema cache and prompt.

    Useful when the process-wide cache is unwanted (tests) or when the
    system prompt should be customized.

    Example:
        generator = StructuredOutputGenerator()
        generator.engine.register("structured_output", "Reply as JSON: {{ schema | json }}")
        result = await generator.generate_object(generate_text, schema, "Task", messages)
    """

    def __init__(
        self,
        transformer: SchemaTransformer | None = None,
        engine: TemplateEngine | None = None,
    ):
        self.transformer = transformer or SchemaTransformer()
        self.engine = engine or default_template_engine()

    def build_system_prompt(self, schema: Any, object_name: str) -> str:
        return build_system_prompt(schema, object_name, engine=self.engine)

    def prepare_messages(
        self, schema: Any, object_name: str, messages: Messages | None = None
    ) -> list[Message]:
        return prepare_messages(
            schema, object_name, messages, transformer=self.transformer, engine=self.engine
        )

    async def generate_object(
        self,
        generate_text: GenerateTextFn | None,
        schema: Any,
        object_name: str,
        messages: Messages | None = None,
        max_tokens: int | None = None,
        model_id: str | None = None,
        on_warning: Callable[[str], None] | None = None,
    ) -> GenerationResult:
        return await generate_object(
            generate_text,
            schema,
            object_name,
            messages,
            max_tokens=max_tokens,
            model_id=model_id,
            on_warning=on_warning,
            transformer=self.transformer,
            engine=self.engine,
        )
