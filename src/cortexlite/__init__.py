"""
cortexlite - Snowflake Cortex schema compatibility and structured output.

Cleans JSON schemas down to the subset Cortex accepts and generates
schema-shaped objects from models without native structured output.
"""

from .client import Cortexlite
from .config import CortexliteConfig, load_env_files
from .core.messages import (
    assistant_message,
    format_messages,
    system_message,
    user_message,
)
from .core.models import (
    normalize_model_id,
    supports_structured_outputs,
    supports_temperature,
)
from .structured import (
    JSONExtractionError,
    JSONParseError,
    SchemaTransformer,
    StructuredOutputError,
    StructuredOutputGenerator,
    clean_schema,
    extract_and_parse,
    extract_first_json_object,
    generate_object,
    generate_object_sync,
    parse_with_fallback,
)
from .templating import TemplateEngine
from .types import (
    CompletionError,
    ConfigError,
    CortexliteError,
    GenerateTextFn,
    GenerationResult,
    InvalidRequestError,
    TemplateError,
    TextGenerationResult,
    UsageInfo,
)

__version__ = "0.1.0"

__all__ = [
    # Main client
    "Cortexlite",
    # Configuration
    "CortexliteConfig",
    "load_env_files",
    # Schema and structured output
    "SchemaTransformer",
    "StructuredOutputGenerator",
    "clean_schema",
    "generate_object",
    "generate_object_sync",
    "extract_first_json_object",
    "parse_with_fallback",
    "extract_and_parse",
    # Model capabilities
    "normalize_model_id",
    "supports_structured_outputs",
    "supports_temperature",
    # Messages
    "user_message",
    "system_message",
    "assistant_message",
    "format_messages",
    # Templating
    "TemplateEngine",
    # Types
    "GenerateTextFn",
    "GenerationResult",
    "TextGenerationResult",
    "UsageInfo",
    # Errors
    "CortexliteError",
    "InvalidRequestError",
    "CompletionError",
    "TemplateError",
    "ConfigError",
    "StructuredOutputError",
    "JSONExtractionError",
    "JSONParseError",
]
