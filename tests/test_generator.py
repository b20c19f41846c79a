"""Tests for prompt-engineered structured output generation."""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import BaseModel

from cortexlite.structured import (
    DEFAULT_MAX_TOKENS,
    JSONExtractionError,
    SchemaTransformer,
    StructuredOutputGenerator,
    build_system_prompt,
    generate_object,
    generate_object_sync,
    prepare_messages,
)
from cortexlite.types import (
    GenerationResult,
    InvalidRequestError,
    TextGenerationResult,
    UsageInfo,
)

PERSON_SCHEMA = {
    "type": "object",
    "properties": {"name": {"type": "string"}, "age": {"type": "number"}},
    "required": ["name", "age"],
}


class TestSystemPrompt:
    """Tests for the structured output instructions."""

    def test_contents(self) -> None:
        prompt = build_system_prompt({"type": "object"}, "Person")

        assert "ONLY a valid JSON object" in prompt
        assert "Schema for Person:" in prompt
        assert json.dumps({"type": "object"}, indent=2) in prompt
        assert '{"key": "value", "number": 123}' in prompt
        assert "DO NOT wrap in markdown code blocks." in prompt
        assert "DO NOT use const/let/var declarations." in prompt
        assert "DO NOT add semicolons." in prompt

    def test_prepare_messages_prepends_system(self, transformer: SchemaTransformer) -> None:
        caller_messages = [
            {"role": "system", "content": "You are terse."},
            {"role": "user", "content": "Generate a person"},
        ]
        snapshot = [dict(m) for m in caller_messages]

        messages = prepare_messages(
            PERSON_SCHEMA, "Person", caller_messages, transformer=transformer
        )

        assert len(messages) == 3
        assert messages[0]["role"] == "system"
        assert "Schema for Person:" in messages[0]["content"]
        assert messages[1:] == caller_messages
        assert caller_messages == snapshot

    def test_prepare_messages_embeds_cleaned_schema(self, transformer: SchemaTransformer) -> None:
        schema = {
            "type": "object",
            "properties": {"email": {"type": "string", "format": "email"}},
        }
        messages = prepare_messages(schema, "Contact", [], transformer=transformer)

        content = messages[0]["content"]
        assert '"additionalProperties": false' in content
        assert "format: email" in content
        assert '"format"' not in content

    async def test_messages_optional(self, mock_generate_text: AsyncMock) -> None:
        assert len(prepare_messages(PERSON_SCHEMA, "Person")) == 1
        assert len(prepare_messages(PERSON_SCHEMA, "Person", None)) == 1

        result = await generate_object(mock_generate_text, PERSON_SCHEMA, "Person", None)
        assert result.object == {"name": "John", "age": 30}
        assert len(mock_generate_text.call_args.kwargs["messages"]) == 1


class TestGenerateObject:
    """Tests for generate_object."""

    async def test_end_to_end(self) -> None:
        generate_text = AsyncMock(return_value={"text": '{"name": "John", "age": 30}'})

        result = await generate_object(
            generate_text,
            schema=PERSON_SCHEMA,
            object_name="Person",
            messages=[{"role": "user", "content": "Generate a person"}],
        )

        assert result == GenerationResult(
            object={"name": "John", "age": 30},
            finish_reason="stop",
            usage=UsageInfo(prompt_tokens=0, completion_tokens=0),
        )
        assert result.to_dict() == {
            "object": {"name": "John", "age": 30},
            "finish_reason": "stop",
            "usage": {"prompt_tokens": 0, "completion_tokens": 0},
        }
        generate_text.assert_awaited_once()

    async def test_default_max_tokens(self, mock_generate_text: AsyncMock) -> None:
        await generate_object(mock_generate_text, PERSON_SCHEMA, "Person", [])

        kwargs = mock_generate_text.call_args.kwargs
        assert kwargs["max_tokens"] == DEFAULT_MAX_TOKENS == 2048

    async def test_explicit_max_tokens(self, mock_generate_text: AsyncMock) -> None:
        await generate_object(mock_generate_text, PERSON_SCHEMA, "Person", [], max_tokens=512)
        assert mock_generate_text.call_args.kwargs["max_tokens"] == 512

    async def test_messages_passed(self, mock_generate_text: AsyncMock) -> None:
        caller_messages = [{"role": "user", "content": "Generate a person"}]
        await generate_object(mock_generate_text, PERSON_SCHEMA, "Person", caller_messages)

        sent = mock_generate_text.call_args.kwargs["messages"]
        assert sent[0]["role"] == "system"
        assert sent[1:] == caller_messages

    async def test_usage_and_finish_reason_passed_through(self) -> None:
        generate_text = AsyncMock(
            return_value={
                "text": '{"ok": true}',
                "finishReason": "length",
                "usage": {"promptTokens": 12},
                "warnings": ["truncated"],
            }
        )
        result = await generate_object(generate_text, {"type": "object"}, "Flag", [])

        assert result.object == {"ok": True}
        assert result.finish_reason == "length"
        assert result.usage == UsageInfo(prompt_tokens=12, completion_tokens=0)
        assert result.warnings == ["truncated"]

    async def test_text_generation_result_accepted(self) -> None:
        generate_text = AsyncMock(
            return_value=TextGenerationResult(
                text='{"a": 1}',
                usage=UsageInfo(prompt_tokens=3, completion_tokens=4),
            )
        )
        result = await generate_object(generate_text, {"type": "object"}, "A", [])

        assert result.object == {"a": 1}
        assert result.usage.total_tokens == 7

    async def test_sync_generate_text(self) -> None:
        def generate_text(*, messages: list, max_tokens: int | None = None) -> dict[str, Any]:
            return {"text": "```json\n{\"a\": 1}\n```"}

        result = await generate_object(generate_text, {"type": "object"}, "A", [])
        assert result.object == {"a": 1}

    async def test_extraction_failure_propagates(self) -> None:
        generate_text = AsyncMock(return_value={"text": "Sorry, I can't do that."})
        with pytest.raises(JSONExtractionError):
            await generate_object(generate_text, {"type": "object"}, "A", [])
        generate_text.assert_awaited_once()

    async def test_pydantic_schema(self, mock_generate_text: AsyncMock) -> None:
        class Person(BaseModel):
            name: str
            age: int

        result = await generate_object(mock_generate_text, Person, "Person", [])

        assert result.object == {"name": "John", "age": 30}
        system_prompt = mock_generate_text.call_args.kwargs["messages"][0]["content"]
        assert '"additionalProperties": false' in system_prompt


class TestPreconditions:
    """Missing arguments fail before any generation call."""

    async def test_missing_schema(self, mock_generate_text: AsyncMock) -> None:
        with pytest.raises(InvalidRequestError, match="schema"):
            await generate_object(mock_generate_text, None, "Test", [])
        mock_generate_text.assert_not_called()

    @pytest.mark.parametrize("object_name", ["", None])
    async def test_missing_object_name(
        self, mock_generate_text: AsyncMock, object_name: Any
    ) -> None:
        with pytest.raises(InvalidRequestError, match="object_name"):
            await generate_object(mock_generate_text, PERSON_SCHEMA, object_name, [])
        mock_generate_text.assert_not_called()

    async def test_missing_generate_text(self) -> None:
        with pytest.raises(InvalidRequestError, match="generate_text"):
            await generate_object(None, PERSON_SCHEMA, "Person", [])

    async def test_precondition_error_is_value_error(self, mock_generate_text: AsyncMock) -> None:
        with pytest.raises(ValueError):
            await generate_object(mock_generate_text, None, "Test", [])

    async def test_empty_schema_allowed(self, mock_generate_text: AsyncMock) -> None:
        result = await generate_object(mock_generate_text, {}, "Anything", [])
        assert result.object == {"name": "John", "age": 30}


class TestCapabilityWarning:
    """Models without native structured output get an advisory warning."""

    async def test_warning_for_llama(self, mock_generate_text: AsyncMock) -> None:
        on_warning = MagicMock()
        await generate_object(
            mock_generate_text,
            PERSON_SCHEMA,
            "Person",
            [],
            model_id="cortex/Llama3.1-70B",
            on_warning=on_warning,
        )

        on_warning.assert_called_once_with(
            "Model 'llama3.1-70b' does not support structured outputs. "
            "Attempting JSON mode fallback. For best results, use OpenAI or Claude models."
        )
        mock_generate_text.assert_awaited_once()

    async def test_no_warning_for_claude(self, mock_generate_text: AsyncMock) -> None:
        on_warning = MagicMock()
        await generate_object(
            mock_generate_text,
            PERSON_SCHEMA,
            "Person",
            [],
            model_id="cortex/claude-sonnet-4-5",
            on_warning=on_warning,
        )
        on_warning.assert_not_called()

    async def test_warning_without_callback(self, mock_generate_text: AsyncMock) -> None:
        result = await generate_object(
            mock_generate_text, PERSON_SCHEMA, "Person", [], model_id="mistral-large2"
        )
        assert result.object == {"name": "John", "age": 30}


class TestStructuredOutputGenerator:
    """Tests for the instance wrapper."""

    async def test_own_cache(self, mock_generate_text: AsyncMock) -> None:
        generator = StructuredOutputGenerator()
        await generator.generate_object(mock_generate_text, PERSON_SCHEMA, "Person", [])

        assert generator.transformer.cache_size() > 0
        assert StructuredOutputGenerator().transformer.cache_size() == 0

    async def test_cache_flat_for_repeated_model_class(
        self, mock_generate_text: AsyncMock
    ) -> None:
        class Person(BaseModel):
            name: str
            age: int

        generator = StructuredOutputGenerator()
        sizes = []
        for _ in range(3):
            await generator.generate_object(mock_generate_text, Person, "Person", [])
            sizes.append(generator.transformer.cache_size())

        assert sizes[0] > 0
        assert sizes == [sizes[0]] * 3

    async def test_custom_prompt(self, mock_generate_text: AsyncMock) -> None:
        generator = StructuredOutputGenerator()
        generator.engine.register(
            "structured_output", "Reply with {{ object_name }} JSON: {{ schema | json }}"
        )
        await generator.generate_object(mock_generate_text, {"type": "string"}, "Name", [])

        system_prompt = mock_generate_text.call_args.kwargs["messages"][0]["content"]
        assert system_prompt == 'Reply with Name JSON: {"type": "string"}'

    def test_prepare_messages(self) -> None:
        generator = StructuredOutputGenerator()
        messages = generator.prepare_messages(PERSON_SCHEMA, "Person", [])
        assert len(messages) == 1
        assert "Schema for Person:" in messages[0]["content"]


class TestGenerateObjectSync:
    """Tests for the synchronous wrapper."""

    def test_outside_event_loop(self, mock_generate_text: AsyncMock) -> None:
        result = generate_object_sync(mock_generate_text, PERSON_SCHEMA, "Person", [])
        assert result.object == {"name": "John", "age": 30}
        assert result.usage == UsageInfo(prompt_tokens=100, completion_tokens=50)

    async def test_inside_event_loop(self, mock_generate_text: AsyncMock) -> None:
        result = generate_object_sync(mock_generate_text, PERSON_SCHEMA, "Person", [])
        assert result.object == {"name": "John", "age": 30}
