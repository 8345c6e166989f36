"""Argument schemas and validation for MCP tools.

Every tool declares its arguments as a pydantic model. Closed schemas
derive from ``ToolArguments`` and reject unknown fields; open schemas derive
from ``OpenToolArguments`` and keep them. Both run in strict mode, so a
string is never parsed into a number.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from solidworks_mcp.errors import FieldViolation, ToolValidationError

ROOT_PATH = "<root>"

T = TypeVar("T", bound=BaseModel)


class ToolArguments(BaseModel):
    """Closed argument schema: unknown fields are violations."""

    model_config = ConfigDict(extra="forbid", strict=True, frozen=True)


class OpenToolArguments(BaseModel):
    """Open argument schema: unknown fields are accepted and preserved."""

    model_config = ConfigDict(extra="allow", strict=True, frozen=True)


def validate_arguments(schema: type[T], raw: Any) -> T:
    """Validate a raw argument payload against a tool schema.

    Args:
        schema: The tool's argument model.
        raw: Untrusted payload from the calling boundary. None means no arguments.

    Returns:
        The validated argument model.

    Raises:
        ToolValidationError: Listing every violated constraint.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ToolValidationError(
            [FieldViolation(ROOT_PATH, "mapping_type: arguments must be an object", raw)]
        )

    try:
        return schema.model_validate(dict(raw))
    except PydanticValidationError as e:
        raise ToolValidationError(_violations(e)) from e


def validate_nested(schema: type[T], raw: Any, path: str) -> T:
    """Validate a payload carried in one field of another tool's arguments.

    Raises:
        ToolValidationError: With every violation path prefixed by ``path``.
    """
    try:
        return validate_arguments(schema, raw)
    except ToolValidationError as e:
        violations = [
            FieldViolation(
                path if v.path == ROOT_PATH else f"{path}.{v.path}", v.constraint, v.actual
            )
            for v in e.violations
        ]
        raise ToolValidationError(violations) from None


def _violations(error: PydanticValidationError) -> list[FieldViolation]:
    violations = []
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or ROOT_PATH
        actual = None if item["type"] == "missing" else item.get("input")
        violations.append(
            FieldViolation(path, f"{item['type']}: {item['msg']}", actual)
        )
    return violations


def tool_input_schema(schema: type[BaseModel]) -> dict[str, Any]:
    """JSON schema published to clients for a tool's arguments."""
    json_schema = schema.model_json_schema()
    json_schema.setdefault("properties", {})
    return json_schema
