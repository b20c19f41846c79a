"""Model rules, messages, request shaping and the litellm backend."""

from .models import (
    normalize_model_id,
    supports_structured_outputs,
    supports_temperature,
    unsupported_structured_outputs_warning,
)
from .messages import (
    assistant_message,
    create_prompt_from_messages,
    format_conversation_context,
    format_messages,
    system_message,
    user_message,
)
from .request import normalize_max_tokens, transform_request_body
from .completion import complete, litellm_text_generator

__all__ = [
    "normalize_model_id",
    "supports_structured_outputs",
    "supports_temperature",
    "unsupported_structured_outputs_warning",
    "format_messages",
    "user_message",
    "system_message",
    "assistant_message",
    "create_prompt_from_messages",
    "format_conversation_context",
    "normalize_max_tokens",
    "transform_request_body",
    "complete",
    "litellm_text_generator",
]
