"""Extracting JSON from free-form model output."""

import json
import logging
import re
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..types import CortexliteError, TextGenerationResult, UsageInfo

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# ```json ... ``` or ``` ... ```
CODE_BLOCK_PATTERN = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")

# Crude unquoted-key repair: rewrites any `word:` including ones inside string
# values, so "time: 10:30" style content can be corrupted. Only tried after a
# strict parse has already failed.
UNQUOTED_KEY_PATTERN = re.compile(r"(\w+):")

EXCERPT_LENGTH = 500
CANDIDATE_EXCERPT_LENGTH = 300


class StructuredOutputError(CortexliteError):
    """Error extracting, parsing or validating structured output."""

    def __init__(
        self,
        message: str,
        raw_content: str | None = None,
        validation_errors: list[dict] | None = None,
    ):
        super().__init__(message)
        self.raw_content = raw_content
        self.validation_errors = validation_errors or []


class JSONExtractionError(StructuredOutputError):
    """No JSON object could be located in the response."""

    pass


class JSONParseError(StructuredOutputError):
    """A JSON candidate was found but could not be parsed, even after repair."""

    pass


def extract_first_json_object(text: str) -> str | None:
    """
    Find the first balanced {...} span in text.

    Braces inside double-quoted strings are ignored, and backslash escapes
    are honoured so that \\" does not end a string.

    Args:
        text: Text potentially containing JSON

    Returns:
        The substring from the first "{" to its matching "}", or None
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i in range(start, len(text)):
        char = text[i]

        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return None


def parse_with_fallback(json_text: str) -> Any:
    """
    Parse JSON, retrying once with unquoted object keys quoted.

    Args:
        json_text: Text to parse as JSON

    Returns:
        The parsed value

    Raises:
        JSONParseError: If both the strict parse and the repaired parse fail
    """
    try:
        return json.loads(json_text)
    except json.JSONDecodeError as parse_error:
        logger.debug("Strict JSON parse failed, retrying with quoted keys: %s", parse_error)
        fixed = UNQUOTED_KEY_PATTERN.sub(r'"\1":', json_text)
        try:
            return json.loads(fixed)
        except json.JSONDecodeError:
            excerpt = json_text[:CANDIDATE_EXCERPT_LENGTH] if json_text else "null"
            raise JSONParseError(
                f"Failed to parse JSON response: {parse_error}.\n"
                "Tried to fix JavaScript object syntax but still failed.\n"
                f"Text (first {CANDIDATE_EXCERPT_LENGTH} chars): {excerpt}",
                raw_content=json_text,
            ) from parse_error


def extract_and_parse(response_text: str) -> Any:
    """
    Pull the JSON object out of a model response and parse it.

    Tries the raw (trimmed) text first, then the contents of the first
    markdown code block.

    Raises:
        JSONExtractionError: If no JSON object is found
        JSONParseError: If the object found does not parse
    """
    trimmed = response_text.strip()

    json_text = extract_first_json_object(trimmed)

    if json_text is None:
        match = CODE_BLOCK_PATTERN.search(trimmed)
        if match:
            json_text = extract_first_json_object(match.group(1))

    if json_text is None:
        raise JSONExtractionError(
            "Could not extract JSON object from response.\n"
            f"Response (first {EXCERPT_LENGTH} chars): {trimmed[:EXCERPT_LENGTH]}",
            raw_content=response_text,
        )

    return parse_with_fallback(json_text)


def extract_json(text: str) -> Any | None:
    """
    Best-effort parse of a whole response as JSON.

    Tries, in order: the entire text, the first markdown code block, the
    widest {...} span, the widest [...] span.

    Returns:
        The parsed value, or None if nothing parses
    """
    if not text or not isinstance(text, str):
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = CODE_BLOCK_PATTERN.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    for open_char, close_char in (("{", "}"), ("[", "]")):
        first = text.find(open_char)
        last = text.rfind(close_char)
        if first != -1 and last > first:
            try:
                return json.loads(text[first : last + 1])
            except json.JSONDecodeError:
                continue

    return None


def parse_json_lines(text: str) -> list[Any]:
    """
    Parse newline-delimited JSON, skipping blank and malformed lines.

    Args:
        text: NDJSON text

    Returns:
        Parsed values in line order
    """
    if not text or not isinstance(text, str):
        return []

    results: list[Any] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            results.append(json.loads(stripped))
        except json.JSONDecodeError:
            logger.debug("Skipping malformed JSON line: %s", stripped[:100])
            continue
    return results


def is_valid_json(text: str) -> bool:
    """Check whether text is a complete JSON document."""
    if not text or not isinstance(text, str):
        return False
    try:
        json.loads(text)
        return True
    except json.JSONDecodeError:
        return False


def clean_json_text(text: str) -> str:
    """
    Strip comments and trailing commas from JSON-ish text.

    Like the key repair above this is textual, so "//" inside a string
    value (a URL, say) is treated as a comment.
    """
    if not text or not isinstance(text, str):
        return ""

    cleaned = text.strip()
    cleaned = re.sub(r"//.*$", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"/\*[\s\S]*?\*/", "", cleaned)
    cleaned = re.sub(r",(\s*[}\]])", r"\1", cleaned)
    return cleaned


def parse_stream_output(stdout: str) -> TextGenerationResult:
    """
    Fold a Cortex Code ``--output-format stream-json`` transcript into one result.

    Recognized events:
        {"type": "assistant", "message": {"content": [{"type": "text", "text": ...}]}}
        {"type": "result", "result": ...}   (used only if no assistant text was seen)
        {"type": "usage", "usage": {"prompt_tokens": ..., "completion_tokens": ...}}
        {"type": "error", ...}
    """
    text = ""
    usage: UsageInfo | None = None
    finish_reason = "stop"

    for event in parse_json_lines(stdout.strip() if stdout else ""):
        if not isinstance(event, dict):
            continue
        event_type = event.get("type")

        if event_type == "assistant" and isinstance(event.get("message"), dict):
            content = event["message"].get("content")
            parts = content if isinstance(content, list) else [content]
            for part in parts:
                if isinstance(part, dict) and part.get("type") == "text" and part.get("text"):
                    text += part["text"]
        elif event_type == "result" and event.get("result"):
            if not text:
                text = str(event["result"])
        elif event_type == "usage" and isinstance(event.get("usage"), dict):
            usage = UsageInfo.from_value(event["usage"])
        elif event_type == "error":
            finish_reason = "error"

    return TextGenerationResult(text=text, finish_reason=finish_reason, usage=usage)


def validate_object(data: Any, model: type[T]) -> T:
    """
    Validate a parsed object against a Pydantic model.

    Args:
        data: The parsed JSON value
        model: The Pydantic model class to validate against

    Returns:
        A validated instance of the model

    Raises:
        StructuredOutputError: If validation fails
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        error_messages = []
        for err in errors:
            loc = ".".join(str(x) for x in err["loc"])
            error_messages.append(f"  - {loc}: {err['msg']}")

        raise StructuredOutputError(
            "Validation failed:\n" + "\n".join(error_messages),
            raw_content=json.dumps(data, default=str),
            validation_errors=[dict(err) for err in errors],
        ) from e
