"""Jinja template engine for prompt templating."""

from typing import Any

from jinja2 import (
    DictLoader,
    Environment,
    StrictUndefined,
    TemplateNotFound,
    UndefinedError,
)

from ..types import TemplateError
from .filters import register_default_filters


class TemplateEngine:
    """
    Renders named prompt templates.

    Templates live in memory and are looked up by name; a name that is not
    registered is rendered as an inline template string. Undefined variables
    raise instead of rendering as empty text.
    """

    def __init__(self, templates: dict[str, str] | None = None):
        """
        Initialize the template engine.

        Args:
            templates: Initial name -> source mapping
        """
        self._sources: dict[str, str] = dict(templates or {})
        self.env = Environment(
            loader=DictLoader(self._sources),
            undefined=StrictUndefined,
            autoescape=False,  # Don't HTML-escape (we're making prompts, not HTML)
            trim_blocks=True,
            lstrip_blocks=True,
        )
        register_default_filters(self.env)

    def register(self, name: str, template: str) -> None:
        """Register (or replace) a named template."""
        # DictLoader shares this dict and reloads a template once its source changes
        self._sources[name] = template

    def has(self, name: str) -> bool:
        return name in self._sources

    def render(self, template: str, variables: dict[str, Any] | None = None) -> str:
        """
        Render a template with variables.

        Args:
            template: Template name or inline template string
            variables: Variables to pass to the template

        Returns:
            Rendered template string

        Raises:
            TemplateError: If rendering fails
        """
        variables = variables or {}
        try:
            try:
                tpl = self.env.get_template(template)
            except TemplateNotFound:
                tpl = self.env.from_string(template)
            return tpl.render(**variables)
        except UndefinedError as e:
            raise TemplateError(f"Missing template variable: {e}") from e
        except Exception as e:
            raise TemplateError(f"Template rendering failed: {e}") from e
