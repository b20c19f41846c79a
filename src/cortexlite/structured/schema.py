"""JSON Schema cleaning for the Snowflake Cortex structured-output dialect.

Cortex accepts only a subset of JSON Schema. Constraint keywords outside that
subset are folded into ``description`` as plain-language hints and then
removed, nullable unions become optional properties, and every object is
closed with ``additionalProperties: false`` and an explicit ``required`` list.

Reference: https://docs.snowflake.com/en/user-guide/snowflake-cortex/complete-structured-outputs
"""

import functools
import logging
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from ..types import JSONSchema

logger = logging.getLogger(__name__)

# Keywords Cortex rejects; removed from every node
UNSUPPORTED_KEYWORDS = (
    # General
    "default",
    "$schema",
    # Number constraints
    "multipleOf",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    # String constraints
    "minLength",
    "maxLength",
    "format",
    "pattern",
    # Array constraints
    "uniqueItems",
    "contains",
    "minContains",
    "maxContains",
    "minItems",
    "maxItems",
    # Object constraints
    "patternProperties",
    "minProperties",
    "maxProperties",
    "propertyNames",
)


def _format_value(value: Any) -> str:
    """Render a constraint value the way it appears in JSON."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _bounds_clause(
    schema: Mapping[str, Any],
    low_key: str,
    high_key: str,
    both: str,
    low_only: str,
    high_only: str,
) -> str | None:
    low = schema.get(low_key)
    high = schema.get(high_key)
    if low is not None and high is not None:
        return both.format(low=_format_value(low), high=_format_value(high))
    if low is not None:
        return low_only.format(low=_format_value(low))
    if high is not None:
        return high_only.format(high=_format_value(high))
    return None


def build_constraint_description(schema: Mapping[str, Any]) -> str:
    """
    Describe a node's unsupported constraints in plain language.

    Args:
        schema: A JSON Schema node

    Returns:
        A suffix such as " (3-10 characters, format: email)", or "" when
        the node carries no describable constraint
    """
    constraints: list[str] = []

    def add(clause: str | None) -> None:
        if clause:
            constraints.append(clause)

    # String constraints
    add(
        _bounds_clause(
            schema,
            "minLength",
            "maxLength",
            "{low}-{high} characters",
            "minimum {low} characters",
            "maximum {high} characters",
        )
    )
    if schema.get("format"):
        constraints.append(f"format: {schema['format']}")
    if schema.get("pattern"):
        constraints.append(f"pattern: {schema['pattern']}")

    # Number constraints
    add(
        _bounds_clause(
            schema,
            "minimum",
            "maximum",
            "range: {low}-{high}",
            "minimum: {low}",
            "maximum: {high}",
        )
    )
    # Draft-4 boolean exclusive bounds carry no value to describe
    exclusive_min = schema.get("exclusiveMinimum")
    if exclusive_min is not None and not isinstance(exclusive_min, bool):
        constraints.append(f"> {_format_value(exclusive_min)}")
    exclusive_max = schema.get("exclusiveMaximum")
    if exclusive_max is not None and not isinstance(exclusive_max, bool):
        constraints.append(f"< {_format_value(exclusive_max)}")
    if schema.get("multipleOf") is not None:
        constraints.append(f"multiple of {_format_value(schema['multipleOf'])}")

    # Array constraints
    add(
        _bounds_clause(
            schema,
            "minItems",
            "maxItems",
            "{low}-{high} items",
            "minimum {low} items",
            "maximum {high} items",
        )
    )
    if schema.get("uniqueItems"):
        constraints.append("unique items")

    # Object constraints
    add(
        _bounds_clause(
            schema,
            "minProperties",
            "maxProperties",
            "{low}-{high} properties",
            "minimum {low} properties",
            "maximum {high} properties",
        )
    )

    return f" ({', '.join(constraints)})" if constraints else ""


def _is_null_type(alternative: Any) -> bool:
    """True for {"type": "null"} and for type arrays that include "null"."""
    if not isinstance(alternative, Mapping):
        return False
    node_type = alternative.get("type")
    if node_type == "null":
        return True
    return isinstance(node_type, list) and "null" in node_type


class SchemaTransformer:
    """
    Rewrites JSON Schemas into the Cortex dialect.

    Results are memoized by node identity: cleaning the same node twice, or
    cleaning a node this transformer produced, returns the identical object.
    The cache lives as long as the transformer, so tests that need a cold
    cache construct a fresh instance.

    Example:
        transformer = SchemaTransformer()
        cleaned = transformer.clean({
            "type": "object",
            "properties": {
                "email": {"type": "string", "format": "email", "maxLength": 100},
                "age": {"anyOf": [{"type": "number"}, {"type": "null"}]},
            },
        })
        # cleaned["required"] == ["email"]; "age" became optional
    """

    def __init__(self) -> None:
        # id(source) -> (source, cleaned, is_optional); holding source keeps its id reserved
        self._cache: dict[int, tuple[Any, Any, bool]] = {}
        self._lock = threading.Lock()

    def clean(self, schema: Any) -> Any:
        """
        Return a Cortex-compatible copy of a schema.

        Dicts and lists are transformed; any other value (None, strings,
        numbers) is returned as-is. The input is never mutated.
        """
        cleaned, _ = self._clean_node(schema)
        return cleaned

    def cache_size(self) -> int:
        """Number of memoized nodes."""
        with self._lock:
            return len(self._cache)

    def clear_cache(self) -> None:
        """Forget every memoized node."""
        with self._lock:
            self._cache.clear()

    def _lookup(self, node: Any) -> tuple[Any, bool] | None:
        with self._lock:
            entry = self._cache.get(id(node))
        if entry is not None and entry[0] is node:
            return entry[1], entry[2]
        return None

    def _store(self, node: Any, cleaned: Any, is_optional: bool) -> tuple[Any, bool]:
        """Memoize a result; when two threads race, the first writer wins."""
        with self._lock:
            entry = self._cache.setdefault(id(node), (node, cleaned, is_optional))
            self._cache.setdefault(id(entry[1]), (entry[1], entry[1], False))
        return entry[1], entry[2]

    def _clean_node(self, node: Any) -> tuple[Any, bool]:
        """Clean one node, reporting whether its parent should treat it as optional."""
        if isinstance(node, list):
            cached = self._lookup(node)
            if cached is not None:
                return cached
            return self._store(node, [self.clean(item) for item in node], False)

        if not isinstance(node, Mapping):
            return node, False

        cached = self._lookup(node)
        if cached is not None:
            return cached

        cleaned: JSONSchema = dict(node)

        # anyOf runs first so a merged alternative's constraints are handled below
        is_optional = self._flatten_any_of(cleaned)

        constraint_desc = build_constraint_description(cleaned)
        if constraint_desc:
            description = cleaned.get("description")
            if not isinstance(description, str):
                description = ""
            if constraint_desc not in description:
                cleaned["description"] = description + constraint_desc

        for keyword in UNSUPPORTED_KEYWORDS:
            cleaned.pop(keyword, None)

        # ["string", "null"] -> "string"
        node_type = cleaned.get("type")
        if isinstance(node_type, list) and "null" in node_type:
            remaining = [t for t in node_type if t != "null"]
            if len(remaining) == 1:
                cleaned["type"] = remaining[0]
            elif remaining:
                cleaned["type"] = remaining
            else:
                cleaned["type"] = "null"
            is_optional = True

        if cleaned.get("type") == "object":
            self._normalize_object(cleaned)

        if cleaned.get("type") == "array" and "items" in cleaned:
            cleaned["items"] = self.clean(cleaned["items"])

        for keyword in ("oneOf", "allOf"):
            if isinstance(cleaned.get(keyword), list):
                cleaned[keyword] = [self.clean(item) for item in cleaned[keyword]]

        for keyword in ("$defs", "definitions"):
            if isinstance(cleaned.get(keyword), Mapping):
                cleaned[keyword] = {
                    name: self.clean(definition)
                    for name, definition in cleaned[keyword].items()
                }

        return self._store(node, cleaned, is_optional)

    def _flatten_any_of(self, cleaned: JSONSchema) -> bool:
        """Collapse nullable anyOf unions in place; returns True if the field became optional."""
        is_optional = False
        while isinstance(cleaned.get("anyOf"), list):
            non_null = [alt for alt in cleaned["anyOf"] if not _is_null_type(alt)]

            if not non_null:
                del cleaned["anyOf"]
                cleaned["type"] = "null"
                return True

            if len(non_null) == 1 and isinstance(non_null[0], Mapping):
                del cleaned["anyOf"]
                cleaned.update(non_null[0])
                is_optional = True
                # The merged alternative may itself be a nullable union
                continue

            cleaned["anyOf"] = [self.clean(alt) for alt in non_null]
            break
        return is_optional

    def _normalize_object(self, cleaned: JSONSchema) -> None:
        # Cortex requires every object to be closed
        cleaned["additionalProperties"] = False

        properties = cleaned.get("properties")
        if not isinstance(properties, Mapping):
            cleaned["required"] = []
            return

        cleaned_props: dict[str, Any] = {}
        optional_fields: set[str] = set()
        for key, value in properties.items():
            child, child_optional = self._clean_node(value)
            cleaned_props[key] = child
            if child_optional:
                optional_fields.add(key)
        cleaned["properties"] = cleaned_props

        required = cleaned.get("required")
        if not isinstance(required, list) or not required:
            cleaned["required"] = [key for key in cleaned_props if key not in optional_fields]
        else:
            cleaned["required"] = [
                key for key in required if key in cleaned_props and key not in optional_fields
            ]


_default_transformer = SchemaTransformer()


def get_default_transformer() -> SchemaTransformer:
    """The process-wide transformer behind clean_schema()."""
    return _default_transformer


def clean_schema(schema: Any) -> Any:
    """Clean a schema with the process-wide transformer."""
    return _default_transformer.clean(schema)


@functools.cache
def generate_json_schema(model: type[BaseModel]) -> JSONSchema:
    """
    Generate a JSON schema from a Pydantic model.

    Pydantic's ``$defs`` references are inlined, since Cortex does not
    resolve ``$ref``, and ``title`` annotations are dropped. A reference
    back into a definition that is already being expanded (a recursive
    model) becomes a plain object stub.

    The result is memoized per model class, so repeated calls return the
    same dict and hit the SchemaTransformer cache. Do not mutate it.

    Args:
        model: A Pydantic BaseModel class

    Returns:
        A self-contained JSON schema dict
    """
    schema = model.model_json_schema()
    defs = schema.get("$defs", schema.get("definitions", {}))

    def resolve_refs(
        obj: Any,
        in_properties: bool = False,
        expanding: tuple[str, ...] = (),
    ) -> Any:
        """Recursively resolve $ref references."""
        if isinstance(obj, dict):
            if in_properties:
                # Keys here are field names, not keywords
                return {k: resolve_refs(v, expanding=expanding) for k, v in obj.items()}
            ref_path = obj.get("$ref")
            if isinstance(ref_path, str) and ref_path.startswith(("#/$defs/", "#/definitions/")):
                def_name = ref_path.split("/")[-1]
                if def_name in defs:
                    merged = {k: v for k, v in obj.items() if k != "$ref"}
                    if def_name in expanding:
                        logger.debug("Recursive reference to %s replaced with a stub", def_name)
                        stub = {
                            "type": "object",
                            "description": f"Nested {def_name} (same shape as its parent)",
                        }
                        return resolve_refs({**stub, **merged}, expanding=expanding)
                    return resolve_refs(
                        {**defs[def_name], **merged},
                        expanding=(*expanding, def_name),
                    )
            return {
                k: resolve_refs(v, in_properties=(k == "properties"), expanding=expanding)
                for k, v in obj.items()
                if k not in ("title", "$defs", "definitions")
            }
        elif isinstance(obj, list):
            return [resolve_refs(item, expanding=expanding) for item in obj]
        return obj

    return resolve_refs(schema)


def coerce_schema(schema: Any) -> Any:
    """Accept a pydantic model class wherever a plain schema is expected."""
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return generate_json_schema(schema)
    return schema
