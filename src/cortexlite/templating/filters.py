"""Custom Jinja filters for prompt templating."""

import json
from typing import Any

from jinja2 import Environment


def json_encode(value: Any, indent: int | None = None) -> str:
    """
    Encode a value as JSON string.

    Usage in template: {{ data | json }}
    """
    return json.dumps(value, indent=indent, ensure_ascii=False)


def json_encode_pretty(value: Any) -> str:
    """
    Encode a value as pretty-printed JSON.

    Usage in template: {{ schema | json_pretty }}
    """
    return json.dumps(value, indent=2, ensure_ascii=False)


def register_default_filters(env: Environment) -> None:
    """Register all default filters with a Jinja environment."""
    env.filters["json"] = json_encode
    env.filters["json_pretty"] = json_encode_pretty
