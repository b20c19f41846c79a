"""Tests for message formatting."""

from cortexlite.core.messages import (
    IMAGE_PLACEHOLDER,
    assistant_message,
    create_prompt_from_messages,
    extract_content,
    format_conversation_context,
    format_messages,
    system_message,
    user_message,
    validate_messages,
)


class TestMessageBuilders:
    """Tests for message builder functions."""

    def test_builders(self) -> None:
        assert user_message("hi") == {"role": "user", "content": "hi"}
        assert system_message("be brief") == {"role": "system", "content": "be brief"}
        assert assistant_message("ok") == {"role": "assistant", "content": "ok"}


class TestFormatMessages:
    """Tests for format_messages."""

    def test_string_becomes_user_message(self) -> None:
        assert format_messages("Hello") == [{"role": "user", "content": "Hello"}]

    def test_system_and_user(self) -> None:
        result = format_messages(system="Be brief", user="Hi")
        assert result == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
        ]

    def test_list_copied(self) -> None:
        messages = [{"role": "user", "content": "a"}]
        result = format_messages(messages, user="b")

        assert result == [
            {"role": "user", "content": "a"},
            {"role": "user", "content": "b"},
        ]
        assert len(messages) == 1

    def test_empty(self) -> None:
        assert format_messages() == []


class TestExtractContent:
    """Tests for extract_content."""

    def test_string(self) -> None:
        assert extract_content({"role": "user", "content": "plain"}) == "plain"

    def test_parts(self) -> None:
        message = {
            "role": "user",
            "content": [
                {"type": "text", "text": "Describe this"},
                {"type": "image", "image": "data:..."},
                "raw part",
            ],
        }
        assert extract_content(message) == f"Describe this\n{IMAGE_PLACEHOLDER}\nraw part"

    def test_missing_and_none(self) -> None:
        assert extract_content({"role": "user"}) == ""
        assert extract_content({"role": "user", "content": None}) == ""

    def test_other_values_json_encoded(self) -> None:
        assert extract_content({"role": "user", "content": {"a": 1}}) == '{"a": 1}'


class TestValidateMessages:
    """Tests for validate_messages."""

    def test_valid(self) -> None:
        assert validate_messages([user_message("hi"), assistant_message("hello")]) == []

    def test_invalid(self) -> None:
        errors = validate_messages(
            [{"role": "tool", "content": "x"}, {"role": "user"}, "not a dict"]
        )
        assert len(errors) == 3
        assert "invalid role 'tool'" in errors[0]
        assert "must have 'content'" in errors[1]
        assert "must be a dict" in errors[2]


class TestPromptFlattening:
    """Tests for flattening conversations into a single prompt."""

    def test_create_prompt_from_messages(self) -> None:
        messages = [
            system_message("Be brief"),
            user_message("Hi"),
            {"role": "tool", "content": "ignored"},
            assistant_message("Hello"),
        ]
        assert create_prompt_from_messages(messages) == (
            "System: Be brief\n\nUser: Hi\n\nAssistant: Hello"
        )

    def test_format_conversation_context(self) -> None:
        messages = [user_message("Hi"), assistant_message("Hello")]
        assert format_conversation_context(messages) == "User: Hi\n\nAssistant: Hello"
