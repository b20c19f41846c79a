"""Message formatting utilities."""

import json

from ..types import Message, Messages, Role

IMAGE_PLACEHOLDER = "[Image content not supported in CLI mode]"


def user_message(content: str) -> Message:
    """Create a user message."""
    return {"role": "user", "content": content}


def system_message(content: str) -> Message:
    """Create a system message."""
    return {"role": "system", "content": content}


def assistant_message(content: str) -> Message:
    """Create an assistant message."""
    return {"role": "assistant", "content": content}


def format_messages(
    messages: Messages | str | None = None,
    system: str | None = None,
    user: str | None = None,
) -> list[Message]:
    """
    Flexibly format messages into a standard list format.

    This allows multiple ways to specify messages:
    - As a list of message dicts (pass through)
    - As a single string (converted to user message)
    - Using system/user kwargs for simple single-turn

    Args:
        messages: Existing messages list or single string
        system: System prompt to prepend
        user: User message to append

    Returns:
        Normalized list of message dicts
    """
    result: list[Message] = []

    if system:
        result.append(system_message(system))

    if messages is not None:
        if isinstance(messages, str):
            result.append(user_message(messages))
        else:
            # Copy to avoid mutating the caller's list
            result.extend(list(messages))

    if user:
        result.append(user_message(user))

    return result


def extract_content(message: Message) -> str:
    """
    Extract text content from a message.

    Multimodal content lists keep their text parts, joined by newlines;
    image parts become a placeholder since the CLI only takes text.
    """
    content = message.get("content", "")
    if isinstance(content, str):
        return content
    elif isinstance(content, list):
        text_parts = []
        for part in content:
            if isinstance(part, str):
                text_parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                text_parts.append(part.get("text", ""))
            elif isinstance(part, dict) and part.get("type") == "image":
                text_parts.append(IMAGE_PLACEHOLDER)
        return "\n".join(text_parts)
    elif content is None:
        return ""
    return json.dumps(content)


def validate_messages(messages: Messages) -> list[str]:
    """
    Validate a list of messages.

    Returns list of validation errors (empty if valid).
    """
    errors: list[str] = []
    valid_roles: set[Role] = {"system", "user", "assistant"}

    for i, msg in enumerate(messages):
        if not isinstance(msg, dict):
            errors.append(f"Message {i}: must be a dict, got {type(msg).__name__}")
            continue

        role = msg.get("role")
        if role not in valid_roles:
            errors.append(f"Message {i}: invalid role '{role}', must be one of {sorted(valid_roles)}")

        if "content" not in msg:
            errors.append(f"Message {i}: must have 'content'")

    return errors


def format_conversation_context(messages: Messages) -> str:
    """Render messages as "Role: content" blocks separated by blank lines."""
    return "\n\n".join(
        f"{str(msg.get('role', '')).capitalize()}: {extract_content(msg)}" for msg in messages
    )


def create_prompt_from_messages(messages: Messages) -> str:
    """
    Flatten a conversation into the single prompt string a CLI takes.

    Only system, user and assistant messages are kept.
    """
    labels = {"system": "System", "user": "User", "assistant": "Assistant"}
    parts = [
        f"{labels[msg['role']]}: {extract_content(msg)}"
        for msg in messages
        if msg.get("role") in labels
    ]
    return "\n\n".join(parts)
