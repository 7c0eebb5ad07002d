from __future__ import annotations

from typing import Any, List, Optional

from .errors import PathItem, ValidationError
from .schema import SchemaNode


def json_type_name(value: Any) -> str:
    """Name of the JSON type `value` would serialize as."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_kind(kind: str, value: Any) -> bool:
    # bool is an int subclass but never a JSON number.
    if kind == "object":
        return isinstance(value, dict)
    if kind == "array":
        return isinstance(value, (list, tuple))
    if kind == "string":
        return isinstance(value, str)
    if kind == "boolean":
        return isinstance(value, bool)
    if kind == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind == "integer":
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, float) and value.is_integer()
    return False


def validate(schema: SchemaNode, value: Any) -> None:
    """
    Check `value` against `schema`, raising `ValidationError` on the first
    mismatch.

    Object properties not declared in the schema are accepted. The value is
    only read, never modified.
    """
    _validate(schema, value, [])


def check(schema: SchemaNode, value: Any) -> Optional[ValidationError]:
    """Like `validate`, but returns the error instead of raising it."""
    try:
        validate(schema, value)
    except ValidationError as exc:
        return exc
    return None


def _validate(schema: SchemaNode, value: Any, path: List[PathItem]) -> None:
    if not _matches_kind(schema.kind, value):
        raise ValidationError(path, f"expected {schema.kind}, got {json_type_name(value)}")

    if schema.enum is not None and value not in schema.enum:
        allowed = ", ".join(repr(option) for option in schema.enum)
        raise ValidationError(path, f"value {value!r} is not one of {allowed}")

    if schema.kind == "object":
        for name in schema.required:
            if name not in value:
                raise ValidationError(path + [name], f"missing required property '{name}'")
        for name, node in schema.properties.items():
            if name in value:
                _validate(node, value[name], path + [name])
    elif schema.kind == "array" and schema.items is not None:
        for index, element in enumerate(value):
            _validate(schema.items, element, path + [index])
