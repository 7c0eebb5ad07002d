"""Unit tests for schema parsing and argument validation."""

from __future__ import annotations

import copy

import pytest

from github_mcp.errors import ValidationError, format_path
from github_mcp.schema import SchemaNode
from github_mcp.validator import check, json_type_name, validate

FILES_SCHEMA = SchemaNode.from_json_schema(
    {
        "type": "object",
        "properties": {
            "owner": {"type": "string"},
            "count": {"type": "number"},
            "number": {"type": "integer"},
            "draft": {"type": "boolean"},
            "state": {"type": "string", "enum": ["open", "closed", "all"]},
            "files": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {"name": {"type": "string"}},
                    "required": ["name"],
                },
            },
        },
        "required": ["owner"],
    }
)


@pytest.mark.unit
def test_schema_rejects_required_property_that_is_not_declared() -> None:
    with pytest.raises(ValueError, match="'content'"):
        SchemaNode.from_json_schema(
            {"type": "object", "properties": {"path": {"type": "string"}}, "required": ["content"]}
        )


@pytest.mark.unit
def test_schema_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        SchemaNode(kind="date")


@pytest.mark.unit
def test_schema_renders_back_to_json_schema() -> None:
    rendered = FILES_SCHEMA.to_json_schema()
    assert rendered["required"] == ["owner"]
    assert rendered["properties"]["state"]["enum"] == ["open", "closed", "all"]
    assert rendered["properties"]["files"]["items"]["required"] == ["name"]


@pytest.mark.unit
def test_valid_value_passes() -> None:
    validate(FILES_SCHEMA, {"owner": "octo", "count": 1.5, "number": 3, "files": [{"name": "a"}]})


@pytest.mark.unit
def test_unknown_extra_properties_are_accepted() -> None:
    validate(FILES_SCHEMA, {"owner": "octo", "verbose": True})


@pytest.mark.unit
def test_missing_required_property_reports_path_and_reason() -> None:
    error = check(FILES_SCHEMA, {"count": 1})
    assert error is not None
    assert error.path == ("owner",)
    assert error.reason == "missing required property 'owner'"


@pytest.mark.unit
def test_type_mismatch_names_both_types() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate(FILES_SCHEMA, {"owner": 12})
    assert excinfo.value.path == ("owner",)
    assert excinfo.value.reason == "expected string, got number"


@pytest.mark.unit
def test_top_level_value_must_be_object() -> None:
    error = check(FILES_SCHEMA, ["owner"])
    assert error is not None
    assert error.path == ()
    assert str(error) == "expected object, got array"


@pytest.mark.unit
def test_nested_array_element_path_includes_index() -> None:
    error = check(FILES_SCHEMA, {"owner": "o", "files": [{"name": "a"}, {}]})
    assert error is not None
    assert error.path == ("files", 1, "name")
    assert "files[1].name" in str(error)


@pytest.mark.unit
def test_boolean_is_not_a_number() -> None:
    error = check(FILES_SCHEMA, {"owner": "o", "count": True})
    assert error is not None
    assert error.reason == "expected number, got boolean"


@pytest.mark.unit
def test_integer_accepts_whole_numbers_only() -> None:
    assert check(FILES_SCHEMA, {"owner": "o", "number": 42}) is None
    assert check(FILES_SCHEMA, {"owner": "o", "number": 42.0}) is None
    error = check(FILES_SCHEMA, {"owner": "o", "number": 4.2})
    assert error is not None
    assert error.reason == "expected integer, got number"


@pytest.mark.unit
def test_enum_rejects_values_outside_the_set() -> None:
    error = check(FILES_SCHEMA, {"owner": "o", "state": "merged"})
    assert error is not None
    assert error.path == ("state",)
    assert "'merged'" in error.reason


@pytest.mark.unit
def test_first_failure_short_circuits() -> None:
    # Required properties are checked before property values.
    error = check(FILES_SCHEMA, {"count": "many"})
    assert error is not None
    assert error.path == ("owner",)


@pytest.mark.unit
def test_validation_does_not_mutate_input() -> None:
    value = {"owner": "o", "files": [{"name": "a", "extra": [1, 2]}]}
    snapshot = copy.deepcopy(value)
    validate(FILES_SCHEMA, value)
    check(FILES_SCHEMA, {"files": value["files"]})
    assert value == snapshot


@pytest.mark.unit
def test_json_type_names() -> None:
    assert json_type_name(None) == "null"
    assert json_type_name(False) == "boolean"
    assert json_type_name(3) == "number"
    assert json_type_name({}) == "object"


@pytest.mark.unit
def test_format_path() -> None:
    assert format_path(("files", 0, "name")) == "files[0].name"
    assert format_path((2,)) == "[2]"
    assert format_path(()) == ""
