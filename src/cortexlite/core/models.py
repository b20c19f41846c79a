"""Model capability rules for Snowflake Cortex models.

Only OpenAI and Claude models served by Cortex enforce a JSON schema
natively. Everything else (Llama, Mistral, DeepSeek, ...) has to go through
the prompt-engineered fallback in ``cortexlite.structured.generator``.
"""

from typing import Any

# Leading segments callers use to address Cortex models
KNOWN_PREFIXES = ("cortex/", "snowflake/")

STRUCTURED_OUTPUT_MARKERS = ("openai", "claude", "gpt-")


def normalize_model_id(model_id: Any) -> Any:
    """
    Strip one known provider prefix and lowercase the rest.

    Args:
        model_id: Model identifier, e.g. "cortex/CLAUDE-SONNET-4-5"

    Returns:
        The normalized id ("claude-sonnet-4-5"), or the input unchanged
        when it is not a non-empty string
    """
    if not model_id or not isinstance(model_id, str):
        return model_id

    for prefix in KNOWN_PREFIXES:
        if model_id.lower().startswith(prefix):
            model_id = model_id[len(prefix) :]
            break
    return model_id.lower()


def supports_structured_outputs(model_id: Any) -> bool:
    """Check whether a model enforces JSON schemas natively."""
    if not model_id or not isinstance(model_id, str):
        return False

    normalized = normalize_model_id(model_id)
    return any(marker in normalized for marker in STRUCTURED_OUTPUT_MARKERS)


def supports_temperature(model_id: Any, is_structured_output: bool = False) -> bool:
    """
    Check whether a model accepts the temperature parameter.

    OpenAI models on Cortex reject temperature together with structured
    output. Anything unrecognized is assumed to accept it.
    """
    if not model_id or not isinstance(model_id, str):
        return True

    normalized = normalize_model_id(model_id)
    if "openai" in normalized and is_structured_output:
        return False
    return True


def unsupported_structured_outputs_warning(model_id: str) -> str:
    """Build the advisory emitted when a model lacks native structured output."""
    return (
        f"Model '{model_id}' does not support structured outputs. "
        "Attempting JSON mode fallback. For best results, use OpenAI or Claude models."
    )
