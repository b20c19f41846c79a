"""Schema cleaning, JSON extraction and prompt-engineered structured output."""

from .generator import (
    DEFAULT_MAX_TOKENS,
    StructuredOutputGenerator,
    build_system_prompt,
    check_object_request,
    generate_object,
    generate_object_sync,
    prepare_messages,
)
from .outputs import (
    JSONExtractionError,
    JSONParseError,
    StructuredOutputError,
    clean_json_text,
    extract_and_parse,
    extract_first_json_object,
    extract_json,
    is_valid_json,
    parse_json_lines,
    parse_stream_output,
    parse_with_fallback,
    validate_object,
)
from .schema import (
    UNSUPPORTED_KEYWORDS,
    SchemaTransformer,
    build_constraint_description,
    clean_schema,
    coerce_schema,
    generate_json_schema,
    get_default_transformer,
)

__all__ = [
    # Schema transformation
    "UNSUPPORTED_KEYWORDS",
    "SchemaTransformer",
    "build_constraint_description",
    "clean_schema",
    "coerce_schema",
    "generate_json_schema",
    "get_default_transformer",
    # JSON extraction
    "extract_first_json_object",
    "parse_with_fallback",
    "extract_and_parse",
    "extract_json",
    "parse_json_lines",
    "parse_stream_output",
    "is_valid_json",
    "clean_json_text",
    "validate_object",
    "StructuredOutputError",
    "JSONExtractionError",
    "JSONParseError",
    # Generation
    "DEFAULT_MAX_TOKENS",
    "StructuredOutputGenerator",
    "build_system_prompt",
    "check_object_request",
    "prepare_messages",
    "generate_object",
    "generate_object_sync",
]
