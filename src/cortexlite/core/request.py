"""Shaping OpenAI-compatible request bodies for the Cortex REST endpoint."""

import copy
import logging
import re
from typing import Any

from ..structured.schema import SchemaTransformer, get_default_transformer
from .models import normalize_model_id, supports_temperature

logger = logging.getLogger(__name__)

# Optional sign and digits at the start of a string
LEADING_INT_PATTERN = re.compile(r"\s*([+-]?\d+)")


def normalize_max_tokens(max_tokens: int | str | None, minimum: int | None = None) -> int | None:
    """
    Coerce a max_tokens value and apply an optional floor.

    String values are read up to their first non-digit, so "4096.5" and
    "4096 tokens" both give 4096. A missing or unparseable value falls back
    to the minimum (or None when there is no minimum).

    Examples:
        normalize_max_tokens("4096") -> 4096
        normalize_max_tokens(1000, minimum=8192) -> 8192
        normalize_max_tokens(None, minimum=8192) -> 8192
    """
    value: int | None
    if isinstance(max_tokens, str):
        match = LEADING_INT_PATTERN.match(max_tokens)
        value = int(match.group(1)) if match else None
    else:
        value = max_tokens

    if value is None:
        return minimum
    if minimum is not None:
        return max(value, minimum)
    return value


def transform_request_body(
    body: dict[str, Any],
    transformer: SchemaTransformer | None = None,
) -> tuple[bool, dict[str, Any]]:
    """
    Make a chat-completions request body acceptable to Cortex.

    - Strips the cortex/ or snowflake/ prefix from ``model``
    - Cleans ``response_format.json_schema.schema`` into the Cortex dialect
    - Drops ``temperature`` for models that reject it with structured output

    Args:
        body: The request body; not mutated
        transformer: Schema transformer (defaults to the process-wide one)

    Returns:
        (modified, new_body)
    """
    transformer = transformer or get_default_transformer()
    result = copy.copy(body)
    modified = False

    model = result.get("model")
    normalized = normalize_model_id(model)
    if normalized != model:
        result["model"] = normalized
        modified = True

    response_format = result.get("response_format")
    is_structured = False
    if isinstance(response_format, dict) and isinstance(response_format.get("json_schema"), dict):
        json_schema = response_format["json_schema"]
        if "schema" in json_schema:
            is_structured = True
            cleaned = transformer.clean(json_schema["schema"])
            if cleaned is not json_schema["schema"]:
                result["response_format"] = {
                    **response_format,
                    "json_schema": {**json_schema, "schema": cleaned},
                }
                modified = True

    if "temperature" in result and not supports_temperature(normalized, is_structured):
        logger.debug("Dropping temperature for %s (structured output)", normalized)
        del result["temperature"]
        modified = True

    return modified, result
