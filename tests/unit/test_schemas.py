"""Tests for argument validation."""

from typing import Annotated

import pytest
from pydantic import Field

from solidworks_mcp.errors import ToolValidationError
from solidworks_mcp.features import SimpleExtrudeParameters
from solidworks_mcp.schemas import (
    ROOT_PATH,
    OpenToolArguments,
    ToolArguments,
    tool_input_schema,
    validate_arguments,
    validate_nested,
)


class PointArguments(ToolArguments):
    x: float
    y: float
    label: Annotated[str, Field(min_length=1)] = "P"


class TaggedArguments(OpenToolArguments):
    name: str


class TestValidateArguments:
    """Tests for validate_arguments."""

    def test_valid_payload(self):
        """A conforming payload should produce the model."""
        args = validate_arguments(PointArguments, {"x": 1.5, "y": 2})

        assert args.x == 1.5
        assert args.y == 2.0
        assert args.label == "P"

    def test_none_means_no_arguments(self):
        """None should validate like an empty object."""

        class Empty(ToolArguments):
            pass

        args = validate_arguments(Empty, None)

        assert isinstance(args, ToolArguments)

    def test_non_mapping_rejected_at_root(self):
        """A payload that is not an object should fail at the root."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(PointArguments, [1, 2])

        (violation,) = exc_info.value.violations
        assert violation.path == ROOT_PATH
        assert violation.constraint.startswith("mapping_type")
        assert violation.actual == [1, 2]

    def test_numeric_string_not_coerced(self):
        """Strict mode should reject "10" where a number is expected."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(SimpleExtrudeParameters, {"depth": "10"})

        (violation,) = exc_info.value.violations
        assert violation.path == "depth"
        assert violation.actual == "10"

    def test_unknown_field_rejected(self):
        """Closed schemas should reject unknown fields."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(PointArguments, {"x": 1.0, "y": 2.0, "z": 3.0})

        (violation,) = exc_info.value.violations
        assert violation.path == "z"
        assert violation.constraint.startswith("extra_forbidden")

    def test_missing_field_reports_no_value(self):
        """A missing field should be reported without an actual value."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(PointArguments, {"x": 1.0})

        (violation,) = exc_info.value.violations
        assert violation.path == "y"
        assert violation.constraint.startswith("missing")
        assert violation.actual is None

    def test_all_violations_reported(self):
        """Every violated constraint should be listed, not just the first."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(PointArguments, {"x": "a", "label": ""})

        paths = {v.path for v in exc_info.value.violations}
        assert paths == {"x", "y", "label"}

    def test_range_constraint(self):
        """Numeric bounds should be enforced."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(SimpleExtrudeParameters, {"depth": -5})

        (violation,) = exc_info.value.violations
        assert violation.path == "depth"
        assert violation.constraint.startswith("greater_than")

    def test_open_schema_keeps_extras(self):
        """Open schemas should accept and keep unknown fields."""
        args = validate_arguments(TaggedArguments, {"name": "a", "color": "red"})

        assert args.model_extra == {"color": "red"}

    def test_error_detail(self):
        """The error detail should carry the violations."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(PointArguments, {})

        detail = exc_info.value.to_detail()
        assert exc_info.value.kind == "ValidationError"
        assert {v["path"] for v in detail["violations"]} == {"x", "y"}

    def test_nested_paths_prefixed(self):
        """Violations inside a nested payload should carry the field path."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_nested(PointArguments, {"x": "1"}, "parameters")

        paths = {v.path for v in exc_info.value.violations}
        assert paths == {"parameters.x", "parameters.y"}

    def test_nested_root_violation_uses_field_path(self):
        """A non-mapping nested payload should be reported at the field."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_nested(PointArguments, [1, 2], "parameters")

        assert exc_info.value.violations[0].path == "parameters"


class TestToolInputSchema:
    """Tests for published JSON schemas."""

    def test_object_schema(self):
        """Schemas should be objects with properties and required fields."""
        schema = tool_input_schema(PointArguments)

        assert schema["type"] == "object"
        assert set(schema["properties"]) == {"x", "y", "label"}
        assert set(schema["required"]) == {"x", "y"}
        assert schema["additionalProperties"] is False

    def test_empty_schema_has_properties(self):
        """A schema without fields should still publish properties."""

        class Empty(ToolArguments):
            pass

        assert tool_input_schema(Empty)["properties"] == {}
