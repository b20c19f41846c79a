"""Text generation through litellm, the default GenerateTextFn."""

import logging
from typing import Any

import litellm

from ..types import (
    CompletionError,
    CompletionRequest,
    GenerateTextFn,
    Message,
    TextGenerationResult,
    UsageInfo,
)
from .models import normalize_model_id, supports_temperature
from .request import normalize_max_tokens

logger = logging.getLogger(__name__)


def _usage_from_response(usage: Any) -> UsageInfo:
    if usage is None:
        return UsageInfo()
    if isinstance(usage, dict):
        return UsageInfo.from_value(usage)
    return UsageInfo(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )


async def complete(request: CompletionRequest) -> TextGenerationResult:
    """
    Execute a completion request using litellm.

    Args:
        request: The completion request

    Returns:
        TextGenerationResult with the model's reply

    Raises:
        CompletionError: If the API call fails
    """
    kwargs = request.to_litellm_kwargs()

    try:
        response = await litellm.acompletion(**kwargs)
    except litellm.exceptions.APIConnectionError as e:
        raise CompletionError(f"API connection error: {e}", response=e) from e
    except litellm.exceptions.RateLimitError as e:
        raise CompletionError(
            f"Rate limit exceeded: {e}",
            status_code=429,
            response=e,
        ) from e
    except litellm.exceptions.APIError as e:
        raise CompletionError(
            f"API error: {e}",
            status_code=getattr(e, "status_code", None),
            response=e,
        ) from e
    except Exception as e:
        raise CompletionError(f"Completion failed: {e}", response=e) from e

    text = ""
    finish_reason = None
    if response.choices:
        choice = response.choices[0]
        if choice.message and choice.message.content:
            text = choice.message.content
        finish_reason = getattr(choice, "finish_reason", None)

    return TextGenerationResult(
        text=text,
        finish_reason=finish_reason,
        usage=_usage_from_response(getattr(response, "usage", None)),
    )


def litellm_text_generator(
    model: str,
    provider_prefix: str = "snowflake/",
    temperature: float | None = None,
    min_tokens: int | None = None,
    timeout: float | None = None,
    structured_output: bool = False,
    **kwargs: Any,
) -> GenerateTextFn:
    """
    Build a GenerateTextFn that calls a Cortex model through litellm.

    Args:
        model: Model identifier, with or without a cortex/ or snowflake/ prefix
        provider_prefix: litellm provider prefix to route with
        temperature: Sampling temperature, dropped for models that reject it
        min_tokens: Floor applied to each call's max_tokens
        timeout: Request timeout in seconds
        structured_output: Whether calls are made on behalf of structured output
        **kwargs: Extra litellm kwargs (api_base, mock_response, ...)

    Returns:
        An async function usable as generate_object()'s generate_text
    """
    normalized = normalize_model_id(model)
    litellm_model = f"{provider_prefix}{normalized}"

    effective_temperature = temperature
    if temperature is not None and not supports_temperature(normalized, structured_output):
        logger.debug("Model %s does not accept temperature here; omitting it", normalized)
        effective_temperature = None

    async def generate_text(
        *,
        messages: list[Message],
        max_tokens: int | None = None,
    ) -> TextGenerationResult:
        request = CompletionRequest(
            model=litellm_model,
            messages=messages,
            temperature=effective_temperature,
            max_tokens=normalize_max_tokens(max_tokens, min_tokens),
            timeout=timeout,
            extra_kwargs=dict(kwargs),
        )
        logger.debug("Completion request: model=%s", litellm_model)
        result = await complete(request)
        logger.debug(
            "Completion response: model=%s, tokens=%d",
            litellm_model,
            result.usage.total_tokens if result.usage else 0,
        )
        return result

    return generate_text
