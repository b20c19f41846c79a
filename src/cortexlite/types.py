"""Shared types and protocols for cortexlite."""

from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, TypedDict

# Type aliases for messages
Role = Literal["system", "user", "assistant"]


class MessageDict(TypedDict, total=False):
    """A chat message in dictionary form."""

    role: Role
    content: str


Message = MessageDict | dict[str, Any]
Messages = Sequence[Message]

JSONSchema = dict[str, Any]


def _first_present(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the value of the first key present in data, else None."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass
class UsageInfo:
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @classmethod
    def from_value(cls, usage: "UsageInfo | Mapping[str, Any] | None") -> "UsageInfo":
        """
        Normalize a usage report into UsageInfo.

        Accepts an existing UsageInfo, or a mapping using either the
        snake_case keys litellm reports or camelCase keys. Absent or
        falsy counts become 0.
        """
        if usage is None:
            return cls()
        if isinstance(usage, UsageInfo):
            return cls(usage.prompt_tokens or 0, usage.completion_tokens or 0)
        return cls(
            prompt_tokens=_first_present(usage, "prompt_tokens", "promptTokens") or 0,
            completion_tokens=_first_present(usage, "completion_tokens", "completionTokens")
            or 0,
        )


@dataclass
class TextGenerationResult:
    """What a text-generation function hands back to the generator."""

    text: str
    finish_reason: str | None = None
    usage: UsageInfo | None = None
    warnings: list[str] | None = None

    @classmethod
    def from_value(cls, value: "TextGenerationResult | Mapping[str, Any]") -> "TextGenerationResult":
        """Coerce a text-generation return value into a TextGenerationResult."""
        if isinstance(value, TextGenerationResult):
            return value
        if not isinstance(value, Mapping):
            raise TypeError(
                "generate_text must return a TextGenerationResult or a mapping, "
                f"got {type(value).__name__}"
            )
        usage = value.get("usage")
        return cls(
            text=value.get("text") or "",
            finish_reason=_first_present(value, "finish_reason", "finishReason"),
            usage=UsageInfo.from_value(usage) if usage is not None else None,
            warnings=value.get("warnings"),
        )


@dataclass(frozen=True)
class GenerationResult:
    """The outcome of one generate_object call."""

    object: Any
    finish_reason: str = "stop"
    usage: UsageInfo = field(default_factory=UsageInfo)
    warnings: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary, omitting absent warnings."""
        result: dict[str, Any] = {
            "object": self.object,
            "finish_reason": self.finish_reason,
            "usage": {
                "prompt_tokens": self.usage.prompt_tokens,
                "completion_tokens": self.usage.completion_tokens,
            },
        }
        if self.warnings is not None:
            result["warnings"] = list(self.warnings)
        return result


@dataclass
class CompletionRequest:
    """A text-generation request for the litellm backend."""

    model: str
    messages: Messages = field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None
    timeout: float | None = None
    # Additional kwargs passed through to litellm
    extra_kwargs: dict[str, Any] = field(default_factory=dict)

    def to_litellm_kwargs(self) -> dict[str, Any]:
        """Convert to kwargs dict for litellm.acompletion()."""
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": list(self.messages),
        }

        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout

        kwargs.update(self.extra_kwargs)

        return kwargs


class GenerateTextFn(Protocol):
    """
    A caller-supplied text-generation function.

    Called with keyword arguments only. May be a coroutine function or a
    plain function; either way the result is a TextGenerationResult or a
    mapping with ``text`` and optional ``finish_reason``, ``usage`` and
    ``warnings`` keys.
    """

    def __call__(
        self,
        *,
        messages: list[Message],
        max_tokens: int | None = None,
    ) -> Awaitable[Any] | Any:
        ...


# Exceptions
class CortexliteError(Exception):
    """Base exception for cortexlite errors."""

    pass


class InvalidRequestError(CortexliteError, ValueError):
    """A required argument was missing or malformed."""

    pass


class CompletionError(CortexliteError):
    """Error during a text-generation request."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class TemplateError(CortexliteError):
    """Template rendering error."""

    pass


class ConfigError(CortexliteError):
    """Configuration error."""

    pass
