"""
Input schema model for tool arguments.

Tool modules declare their schemas as JSON-Schema-style dicts (the form that
is published on discovery); `SchemaNode.from_json_schema` turns them into
the typed tree the validator walks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

KINDS = ("object", "string", "number", "integer", "boolean", "array")


@dataclass(frozen=True)
class SchemaNode:
    kind: str
    properties: Mapping[str, "SchemaNode"] = field(default_factory=dict)
    required: Tuple[str, ...] = ()
    items: Optional["SchemaNode"] = None
    description: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None

    def __post_init__(self) -> None:
        if self.kind not in KINDS:
            raise ValueError(f"Unsupported schema kind '{self.kind}'")
        if self.kind != "object" and (self.properties or self.required):
            raise ValueError(f"Only object schemas may declare properties, got '{self.kind}'")
        if self.kind != "array" and self.items is not None:
            raise ValueError(f"Only array schemas may declare items, got '{self.kind}'")
        undeclared = [name for name in self.required if name not in self.properties]
        if undeclared:
            raise ValueError(
                "Required properties must be declared: " + ", ".join(repr(n) for n in undeclared)
            )

    @classmethod
    def from_json_schema(cls, schema: Mapping[str, Any]) -> "SchemaNode":
        kind = schema.get("type")
        if not isinstance(kind, str):
            raise ValueError(f"Schema is missing a 'type': {dict(schema)!r}")

        properties = {
            name: cls.from_json_schema(sub)
            for name, sub in (schema.get("properties") or {}).items()
        }
        items = schema.get("items")
        enum = schema.get("enum")
        return cls(
            kind=kind,
            properties=properties,
            required=tuple(schema.get("required") or ()),
            items=cls.from_json_schema(items) if items is not None else None,
            description=schema.get("description"),
            enum=tuple(enum) if enum is not None else None,
        )

    def to_json_schema(self) -> Dict[str, Any]:
        rendered: Dict[str, Any] = {"type": self.kind}
        if self.description:
            rendered["description"] = self.description
        if self.enum is not None:
            rendered["enum"] = list(self.enum)
        if self.kind == "object":
            rendered["properties"] = {
                name: node.to_json_schema() for name, node in self.properties.items()
            }
            if self.required:
                rendered["required"] = list(self.required)
        if self.items is not None:
            rendered["items"] = self.items.to_json_schema()
        return rendered
