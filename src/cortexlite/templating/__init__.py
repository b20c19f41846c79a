"""Jinja templating for prompts."""

from .engine import TemplateEngine
from .filters import register_default_filters

__all__ = [
    "TemplateEngine",
    "register_default_filters",
]
